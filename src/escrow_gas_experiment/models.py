"""
Data models for the escrow gas experiment.

On-chain value objects (payment terms, authorization window, digests) are
frozen dataclasses validated on construction. Receipt and report models are
pydantic models so they can be read straight from web3 receipts and dumped
as JSON.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator
from web3 import Web3

from escrow_gas_experiment.errors import MalformedDescriptorError

# ============================================================
# Constants
# ============================================================

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

UINT256_MAX = 2**256 - 1
UINT48_MAX = 2**48 - 1
UINT16_MAX = 2**16 - 1
MAX_FEE_BPS = 10_000


class EncodingVariant(str, Enum):
    """On-chain encoding scheme of a PaymentEscrow deployment."""

    CALLDATA_OPTIMIZED = "calldata-optimized"  # positional hash, flat calldata
    GAS_OPTIMIZED = "gas-optimized"  # struct hash, ABI-encoded details bytes


def to_checksum(name: str, value: str) -> str:
    """Validate a 20-byte EVM address and return its checksum form."""
    if not isinstance(value, str) or not Web3.is_address(value.lower()):
        raise MalformedDescriptorError(f"{name} is not a 20-byte address: {value!r}")
    return Web3.to_checksum_address(value)


def validate_uint(name: str, value: int, maximum: int = UINT256_MAX) -> int:
    """Check that value is an int in [0, maximum]."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedDescriptorError(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0 or value > maximum:
        raise MalformedDescriptorError(f"{name} out of range [0, {maximum}]: {value}")
    return value


def validate_salt(salt: int) -> int:
    """Salts are arbitrary uint256 values."""
    return validate_uint("salt", salt)


# ============================================================
# Payment terms
# ============================================================


@dataclass(frozen=True)
class PaymentDescriptor:
    """
    Terms of one escrowed payment.

    Matches the PaymentDetails struct of the PaymentEscrow contracts.
    Addresses are normalised to checksum form; value, fee and deadline are
    range-checked so both hash encoders can assume well-formed input.

    The deadline must lie after `created_at`, the Unix time the payment was
    created (the current time when omitted). Pass the original creation
    time to rebuild a past payment, e.g. to refund or void it.
    """

    operator: str
    buyer: str
    token: str
    capture_address: str
    value: int
    capture_deadline: int
    fee_recipient: str = ZERO_ADDRESS
    fee_bps: int = 0
    created_at: Optional[int] = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        for name in ("operator", "buyer", "token", "capture_address", "fee_recipient"):
            object.__setattr__(self, name, to_checksum(name, getattr(self, name)))

        validate_uint("value", self.value)
        if self.value == 0:
            raise MalformedDescriptorError("value must be greater than zero")

        validate_uint("fee_bps", self.fee_bps, UINT16_MAX)
        if self.fee_bps > MAX_FEE_BPS:
            raise MalformedDescriptorError(
                f"fee_bps must not exceed {MAX_FEE_BPS}, got {self.fee_bps}"
            )

        validate_uint("capture_deadline", self.capture_deadline, UINT48_MAX)
        now = int(time.time()) if self.created_at is None else self.created_at
        if self.capture_deadline <= now:
            raise MalformedDescriptorError(
                f"capture_deadline {self.capture_deadline} is not in the future (now={now})"
            )

    def details_tuple(self) -> tuple:
        """PaymentDetails struct in ABI field order."""
        return (
            self.operator,
            self.buyer,
            self.token,
            self.capture_address,
            self.value,
            self.capture_deadline,
            self.fee_recipient,
            self.fee_bps,
        )


@dataclass(frozen=True)
class AuthorizationWindow:
    """ERC-3009 validity window, as absolute Unix timestamps."""

    valid_after: int
    valid_before: int

    def __post_init__(self):
        validate_uint("valid_after", self.valid_after)
        validate_uint("valid_before", self.valid_before)
        if self.valid_after >= self.valid_before:
            raise MalformedDescriptorError(
                f"valid_after ({self.valid_after}) must be before "
                f"valid_before ({self.valid_before})"
            )


# ============================================================
# Digests and signatures
# ============================================================


@dataclass(frozen=True)
class BoundDigest:
    """
    A payment digest tagged with the contract it was computed for.

    The digest doubles as the ERC-3009 nonce, and USDC scopes that nonce to
    the `to` address of the authorization. Carrying the contract with the
    digest keeps the signer from binding it to any other escrow.
    """

    variant: EncodingVariant
    contract: str
    digest: bytes

    def __post_init__(self):
        if len(self.digest) != 32:
            raise ValueError(f"digest must be 32 bytes, got {len(self.digest)}")
        object.__setattr__(self, "contract", Web3.to_checksum_address(self.contract))

    @property
    def hex(self) -> str:
        return "0x" + self.digest.hex()


@dataclass(frozen=True)
class SignedAuthorization:
    """ReceiveWithAuthorization signature over a bound digest."""

    digest: BoundDigest
    signature: bytes

    @property
    def signature_hex(self) -> str:
        return "0x" + self.signature.hex()


# ============================================================
# Receipts and fee reports
# ============================================================


def _to_int(value: Any) -> Any:
    # Unformatted receipt fields (l1Fee & co) arrive as hex quantities
    if isinstance(value, str):
        return int(value, 16) if value.startswith("0x") else int(value)
    return value


class GasReceipt(BaseModel):
    """Cost fields of a confirmed transaction receipt."""

    transaction_hash: Optional[str] = Field(None, alias="transactionHash")
    block_number: Optional[int] = Field(None, alias="blockNumber")
    status: int = 1
    execution_gas_used: int = Field(..., alias="gasUsed")
    execution_gas_price: int = Field(..., alias="effectiveGasPrice")
    data_availability_gas_used: Optional[int] = Field(None, alias="l1GasUsed")
    data_availability_gas_price: Optional[int] = Field(None, alias="l1GasPrice")
    data_availability_fee: Optional[int] = Field(None, alias="l1Fee")

    class Config:
        populate_by_name = True
        frozen = True

    @field_validator(
        "block_number",
        "status",
        "execution_gas_used",
        "execution_gas_price",
        "data_availability_gas_used",
        "data_availability_gas_price",
        "data_availability_fee",
        mode="before",
    )
    @classmethod
    def _parse_quantity(cls, value: Any) -> Any:
        return _to_int(value)

    @field_validator("transaction_hash", mode="before")
    @classmethod
    def _parse_hash(cls, value: Any) -> Any:
        if isinstance(value, (bytes, bytearray)):
            return "0x" + bytes(value).hex()
        return value

    @classmethod
    def from_web3(cls, receipt: Any) -> "GasReceipt":
        """Build from a web3 receipt (AttributeDict or plain dict)."""
        return cls.model_validate(dict(receipt))


class OperationFee(BaseModel):
    """Fee breakdown of one recorded operation."""

    variant: str
    label: str
    execution_fee: int = Field(..., alias="executionFee")
    data_availability_fee: int = Field(..., alias="dataAvailabilityFee")
    total_fee: int = Field(..., alias="totalFee")
    transaction_hash: Optional[str] = Field(None, alias="transactionHash")

    class Config:
        populate_by_name = True
        frozen = True


class FeeReport(BaseModel):
    """Two-variant fee comparison."""

    per_operation_fees: list[OperationFee] = Field(..., alias="perOperationFees")
    per_variant_totals: dict[str, int] = Field(..., alias="perVariantTotals")
    winner: Optional[str] = None
    savings_absolute: int = Field(..., alias="savingsAbsolute")
    savings_percent: float = Field(..., alias="savingsPercent")

    class Config:
        populate_by_name = True
        frozen = True

    def format_lines(self) -> list[str]:
        """Human-readable summary, one line per entry."""
        lines = []
        for op in self.per_operation_fees:
            lines.append(
                f"{op.variant} {op.label}: execution={op.execution_fee} wei, "
                f"data availability={op.data_availability_fee} wei, "
                f"total={op.total_fee} wei"
            )
        for variant, total in self.per_variant_totals.items():
            lines.append(f"{variant} total: {total} wei")
        if self.winner is None:
            lines.append("No difference between variants")
        else:
            lines.append(
                f"Cheaper: {self.winner}, saving {self.savings_absolute} wei "
                f"({self.savings_percent:.2f}%)"
            )
        return lines


@dataclass(frozen=True)
class ContractCall:
    """A contract function call, ready for a chain transport to submit."""

    address: str
    abi: list
    function: str
    args: tuple

    def describe(self) -> str:
        return f"{self.function}@{self.address}"
