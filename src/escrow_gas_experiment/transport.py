"""
Chain transport: submit contract calls and wait for their receipts.
"""

import logging
from typing import Optional, Protocol

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.exceptions import TimeExhausted

from escrow_gas_experiment.errors import InclusionError, SubmissionError
from escrow_gas_experiment.models import ContractCall, GasReceipt


class ChainTransport(Protocol):
    """Protocol for chain transports."""

    def submit(self, call: ContractCall) -> str:
        """Send a call and return its transaction hash."""
        ...

    def wait_for_receipt(self, transaction_hash: str) -> GasReceipt:
        """Block until the transaction is included and return its cost fields."""
        ...


class Web3Transport:
    """
    ChainTransport over a JSON-RPC node.

    Transactions are built from the call's ABI, signed locally and sent raw.
    Retry policy is left to the node provider; this class sends each call
    exactly once.

    Args:
        w3: Connected Web3 instance
        account: Local account paying for gas
        gas_limit: Gas limit for every transaction
        receipt_timeout: Seconds to wait for inclusion before giving up
        logger: Optional logger instance
    """

    def __init__(
        self,
        w3: Web3,
        account: LocalAccount,
        *,
        gas_limit: int = 300000,
        receipt_timeout: float = 120,
        logger: Optional[logging.Logger] = None,
    ):
        self.w3 = w3
        self.account = account
        self.gas_limit = gas_limit
        self.receipt_timeout = receipt_timeout
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_rpc(cls, rpc_url: str, private_key: str, **kwargs) -> "Web3Transport":
        return cls(Web3(Web3.HTTPProvider(rpc_url)), Account.from_key(private_key), **kwargs)

    @property
    def address(self) -> str:
        return self.account.address

    def submit(self, call: ContractCall) -> str:
        """
        Build, sign, and send a transaction.

        Raises:
            SubmissionError: If building, signing or sending fails
        """
        try:
            contract = self.w3.eth.contract(
                address=Web3.to_checksum_address(call.address),
                abi=call.abi,
            )
            func_call = contract.get_function_by_name(call.function)(*call.args)
            gas_price = self.w3.eth.gas_price
            tx = func_call.build_transaction({
                "from": self.account.address,
                "nonce": self.w3.eth.get_transaction_count(self.account.address),
                "gas": self.gas_limit,
                "maxFeePerGas": gas_price * 2,
                "maxPriorityFeePerGas": gas_price,
            })
            signed = self.account.sign_transaction(tx)
            tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        except Exception as e:
            raise SubmissionError(f"Submitting {call.describe()} failed: {e}") from e

        tx_hex = "0x" + bytes(tx_hash).hex()
        self.logger.debug("Submitted %s: %s", call.describe(), tx_hex)
        return tx_hex

    def wait_for_receipt(self, transaction_hash: str) -> GasReceipt:
        """
        Wait for a transaction receipt.

        Raises:
            InclusionError: On timeout, RPC failure, or a reverted transaction
        """
        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(
                transaction_hash, timeout=self.receipt_timeout
            )
        except TimeExhausted as e:
            raise InclusionError(
                f"Transaction not included within {self.receipt_timeout}s",
                transaction_hash=transaction_hash,
            ) from e
        except Exception as e:
            raise InclusionError(
                f"Waiting for receipt failed: {e}", transaction_hash=transaction_hash
            ) from e

        if receipt["status"] != 1:
            raise InclusionError("Transaction reverted", transaction_hash=transaction_hash)
        return GasReceipt.from_web3(receipt)
