"""
EVM network configurations.

Both escrow variants are deployed on Base, an OP-stack rollup, so every
receipt carries an L1 data-availability fee next to the L2 execution fee.

Important EIP-712 domain considerations:
- Base mainnet USDC uses 'USD Coin' as the domain name
- Base Sepolia USDC uses 'USDC' as the domain name
"""

from escrow_gas_experiment.networks.base import (
    NetworkConfig,
    register_network,
)

# =============================================================================
# EVM Networks Configuration
# =============================================================================

# Base (Layer 2)
BASE = NetworkConfig(
    name="base",
    display_name="Base",
    chain_id=8453,
    usdc_address="0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
    usdc_decimals=6,
    usdc_domain_name="USD Coin",
    usdc_domain_version="2",
    rpc_url="https://mainnet.base.org",
    reports_l1_fee=True,
)

# Base Sepolia (testnet)
# NOTE: Base Sepolia uses 'USDC' (not 'USD Coin') for EIP-712 domain name
BASE_SEPOLIA = NetworkConfig(
    name="base-sepolia",
    display_name="Base Sepolia",
    chain_id=84532,
    usdc_address="0x036CbD53842c5426634e7929541eC2318f3dCF7e",
    usdc_decimals=6,
    usdc_domain_name="USDC",  # Different from mainnet!
    usdc_domain_version="2",
    rpc_url="https://sepolia.base.org",
    reports_l1_fee=True,
)

# =============================================================================
# Register all EVM networks
# =============================================================================

_EVM_NETWORKS = [
    BASE,
    BASE_SEPOLIA,
]

for network in _EVM_NETWORKS:
    register_network(network)


def get_usdc_domain(network: NetworkConfig) -> dict:
    """
    Build the EIP-712 domain of the USDC contract on a network.

    Args:
        network: Network configuration

    Returns:
        Domain dict suitable for eth_account typed-data encoding
    """
    return {
        "name": network.usdc_domain_name,
        "version": network.usdc_domain_version,
        "chainId": network.chain_id,
        "verifyingContract": network.usdc_address,
    }
