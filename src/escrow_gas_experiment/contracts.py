"""
Contract registry and ABI tables for the two PaymentEscrow deployments.

Both contracts implement the same authorize/capture/refund/void protocol
on top of USDC's ERC-3009 receiveWithAuthorization, but take their
arguments differently:

    PaymentEscrowCalldataOptimized  -> flat arguments, payment identified by hash
    PaymentEscrowGasOptimized       -> ABI-encoded PaymentDetails bytes

Only the functions this package calls are listed.
"""

from escrow_gas_experiment.errors import ConfigurationError

# ============================================================
# Multi-chain Escrow Contract Registry
# ============================================================
# Keys (the USDC token comes from the network config):
#   calldata_optimized - PaymentEscrowCalldataOptimized contract
#   gas_optimized      - PaymentEscrowGasOptimized contract

ESCROW_CONTRACTS: dict[int, dict[str, str]] = {
    8453: {  # Base Mainnet
        "calldata_optimized": "0x948ca2f66C61a026b4B396EFCE887db811c6e35A",
        "gas_optimized": "0x0a04Bb730896B7bE1CE6c7ac62ecd7F5Daf52788",
    },
}

ESCROW_CHAIN_NAMES: dict[int, str] = {
    8453: "Base Mainnet",
}


def get_escrow_contracts(chain_id: int) -> dict[str, str]:
    """
    Look up escrow contract addresses for a given chain ID.

    Args:
        chain_id: EVM chain ID (e.g. 8453 for Base Mainnet)

    Returns:
        Dict of contract name -> address

    Raises:
        ConfigurationError: If chain_id is not in the registry
    """
    if chain_id not in ESCROW_CONTRACTS:
        supported = ", ".join(
            f"{cid} ({ESCROW_CHAIN_NAMES.get(cid, 'unknown')})"
            for cid in sorted(ESCROW_CONTRACTS)
        )
        raise ConfigurationError(
            f"No escrow contracts for chain {chain_id}. "
            f"Supported chains: {supported}"
        )
    return ESCROW_CONTRACTS[chain_id]


# ============================================================
# ABI tables
# ============================================================

PAYMENT_DETAILS_COMPONENTS = [
    {"name": "operator", "type": "address"},
    {"name": "buyer", "type": "address"},
    {"name": "token", "type": "address"},
    {"name": "captureAddress", "type": "address"},
    {"name": "value", "type": "uint256"},
    {"name": "captureDeadline", "type": "uint48"},
    {"name": "feeRecipient", "type": "address"},
    {"name": "feeBps", "type": "uint16"},
]

CALLDATA_OPTIMIZED_ABI = [
    {
        "type": "function",
        "name": "authorize",
        "inputs": [
            {"name": "salt", "type": "uint256"},
            {
                "name": "details",
                "type": "tuple",
                "components": PAYMENT_DETAILS_COMPONENTS,
            },
            {"name": "validAfter", "type": "uint256"},
            {"name": "validBefore", "type": "uint256"},
            {"name": "value", "type": "uint256"},
            {"name": "signature", "type": "bytes"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "capture",
        "inputs": [
            {"name": "paymentHash", "type": "bytes32"},
            {"name": "value", "type": "uint256"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "refund",
        "inputs": [
            {"name": "paymentHash", "type": "bytes32"},
            {"name": "value", "type": "uint256"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "void",
        "inputs": [
            {"name": "paymentHash", "type": "bytes32"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
]

GAS_OPTIMIZED_ABI = [
    {
        "type": "function",
        "name": "authorize",
        "inputs": [
            {"name": "value", "type": "uint256"},
            {"name": "paymentDetails", "type": "bytes"},
            {"name": "signature", "type": "bytes"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "capture",
        "inputs": [
            {"name": "value", "type": "uint256"},
            {"name": "paymentDetails", "type": "bytes"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "charge",
        "inputs": [
            {"name": "value", "type": "uint256"},
            {"name": "paymentDetails", "type": "bytes"},
            {"name": "signature", "type": "bytes"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "refund",
        "inputs": [
            {"name": "value", "type": "uint256"},
            {"name": "paymentDetails", "type": "bytes"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "void",
        "inputs": [
            {"name": "paymentDetails", "type": "bytes"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
]
