"""
Pytest fixtures for the escrow gas experiment tests.
"""
import time

import pytest
from eth_account import Account
from web3 import Web3

from escrow_gas_experiment.contracts import ESCROW_CONTRACTS
from escrow_gas_experiment.models import (
    AuthorizationWindow,
    EncodingVariant,
    GasReceipt,
    PaymentDescriptor,
)
from escrow_gas_experiment.networks import BASE
from escrow_gas_experiment.orchestrator import VariantTarget
from escrow_gas_experiment.signer import AuthorizationSigner, LocalAccountSigner

# Throwaway key, never funded
TEST_PRIV_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
CAPTURE_ADDRESS = Web3.to_checksum_address("0x2D893743B2A94Ac1695b5bB38dA965C49cf68450")
CALLDATA_ESCROW = Web3.to_checksum_address(ESCROW_CONTRACTS[8453]["calldata_optimized"])
GAS_ESCROW = Web3.to_checksum_address(ESCROW_CONTRACTS[8453]["gas_optimized"])


class FakeTransport:
    """ChainTransport returning canned receipts keyed by (contract, function)."""

    def __init__(self, receipts=None, address=None):
        self.receipts = receipts or {}
        self.address = address
        self.calls = []
        self._pending = {}

    def submit(self, call):
        self.calls.append(call)
        tx_hash = "0x" + f"{len(self.calls):064x}"
        self._pending[tx_hash] = call
        return tx_hash

    def wait_for_receipt(self, transaction_hash):
        call = self._pending.pop(transaction_hash)
        fields = self.receipts.get(
            (call.address, call.function),
            {"gasUsed": 50_000, "effectiveGasPrice": 1_000_000},
        )
        return GasReceipt.model_validate({"transactionHash": transaction_hash, **fields})


@pytest.fixture
def now():
    return int(time.time())


@pytest.fixture
def account():
    return Account.from_key(TEST_PRIV_KEY)


@pytest.fixture
def descriptor(account, now):
    return PaymentDescriptor(
        operator=account.address,
        buyer=account.address,
        token=BASE.usdc_address,
        capture_address=CAPTURE_ADDRESS,
        value=10_000,
        capture_deadline=now + 3600,
    )


@pytest.fixture
def window(now):
    return AuthorizationWindow(valid_after=0, valid_before=now + 7200)


@pytest.fixture
def signer(account):
    return AuthorizationSigner(LocalAccountSigner(account), BASE)


@pytest.fixture
def targets():
    return [
        VariantTarget(EncodingVariant.CALLDATA_OPTIMIZED, CALLDATA_ESCROW, salt=123),
        VariantTarget(EncodingVariant.GAS_OPTIMIZED, GAS_ESCROW, salt=456),
    ]


@pytest.fixture
def receipts():
    """Calldata-optimized pays more L1 fee, gas-optimized pays more L2 gas."""
    return {
        (CALLDATA_ESCROW, "authorize"): {
            "gasUsed": 90_000, "effectiveGasPrice": 1_000_000, "l1Fee": "0x2dc6c0",
        },
        (CALLDATA_ESCROW, "capture"): {
            "gasUsed": 60_000, "effectiveGasPrice": 1_000_000, "l1Fee": "0x0f4240",
        },
        (GAS_ESCROW, "authorize"): {
            "gasUsed": 85_000, "effectiveGasPrice": 1_000_000, "l1Fee": "0x1e8480",
        },
        (GAS_ESCROW, "capture"): {
            "gasUsed": 55_000, "effectiveGasPrice": 1_000_000, "l1Fee": "0x0f4240",
        },
    }


@pytest.fixture
def transport(receipts, account):
    return FakeTransport(receipts, address=account.address)
