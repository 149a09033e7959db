"""
Exceptions for the escrow gas experiment.
"""
from enum import Enum
from typing import Optional


class Phase(str, Enum):
    """Step of a variant run in which a failure happened."""

    SIGN = "sign"
    AUTHORIZE = "authorize"
    CAPTURE = "capture"
    CHARGE = "charge"
    REFUND = "refund"
    VOID = "void"


class EscrowExperimentError(Exception):
    """Base exception for all experiment errors."""
    pass


class MalformedDescriptorError(EscrowExperimentError, ValueError):
    """Raised when payment terms or an authorization window fail validation."""
    pass


class ConfigurationError(EscrowExperimentError):
    """Raised when the experiment configuration is incomplete or inconsistent."""
    pass


class SigningError(EscrowExperimentError):
    """Raised when the signing capability rejects or fails a request."""

    def __init__(self, message: str, variant: Optional[str] = None):
        self.variant = variant
        super().__init__(message)


class TransactionError(EscrowExperimentError):
    """
    Raised when an on-chain operation of a variant fails.

    Carries the variant and phase so a caller can resume by hand. A failure
    in the capture phase means the payment is still authorized on-chain.
    """

    def __init__(
        self,
        message: str,
        variant: Optional[str] = None,
        phase: Optional[Phase] = None,
        transaction_hash: Optional[str] = None,
    ):
        self.message = message
        self.variant = variant
        self.phase = phase
        self.transaction_hash = transaction_hash
        context = ", ".join(
            f"{key}={value}"
            for key, value in (
                ("variant", variant),
                ("phase", phase.value if phase else None),
                ("tx", transaction_hash),
            )
            if value
        )
        super().__init__(f"{message} [{context}]" if context else message)

    def with_context(self, variant: str, phase: Phase) -> "TransactionError":
        """Copy of this error tagged with the variant and phase it happened in."""
        return type(self)(
            self.message,
            variant=variant,
            phase=phase,
            transaction_hash=self.transaction_hash,
        )


class SubmissionError(TransactionError):
    """Raised when the transport rejects a call before it reaches the chain."""
    pass


class InclusionError(TransactionError):
    """Raised when a submitted transaction is never confirmed or reverts."""
    pass


class ArithmeticOverflowError(EscrowExperimentError, ArithmeticError):
    """Raised when a fee falls outside the uint256 range."""
    pass
