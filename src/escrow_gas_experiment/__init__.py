"""
Escrow gas experiment.

Signs and submits authorize/capture requests against two PaymentEscrow
deployments (calldata-optimized and gas-optimized) and compares what each
costs in execution and data-availability fees.
"""

from escrow_gas_experiment.encoding import (
    EscrowEncoding,
    PositionalEncoding,
    StructEncoding,
    get_encoding,
    positional_digest,
    struct_digest,
)
from escrow_gas_experiment.errors import (
    ArithmeticOverflowError,
    ConfigurationError,
    EscrowExperimentError,
    InclusionError,
    MalformedDescriptorError,
    Phase,
    SigningError,
    SubmissionError,
    TransactionError,
)
from escrow_gas_experiment.gas import GasLedger, build_fee_report, compute_operation_fee
from escrow_gas_experiment.models import (
    AuthorizationWindow,
    BoundDigest,
    ContractCall,
    EncodingVariant,
    FeeReport,
    GasReceipt,
    OperationFee,
    PaymentDescriptor,
    SignedAuthorization,
)
from escrow_gas_experiment.orchestrator import ExperimentOrchestrator, VariantRun, VariantTarget
from escrow_gas_experiment.signer import AuthorizationSigner, LocalAccountSigner, TypedDataSigner
from escrow_gas_experiment.transport import ChainTransport, Web3Transport

__version__ = "0.1.0"

__all__ = [
    "PaymentDescriptor",
    "AuthorizationWindow",
    "BoundDigest",
    "SignedAuthorization",
    "ContractCall",
    "EncodingVariant",
    "GasReceipt",
    "OperationFee",
    "FeeReport",
    "EscrowEncoding",
    "PositionalEncoding",
    "StructEncoding",
    "get_encoding",
    "positional_digest",
    "struct_digest",
    "AuthorizationSigner",
    "LocalAccountSigner",
    "TypedDataSigner",
    "ChainTransport",
    "Web3Transport",
    "GasLedger",
    "build_fee_report",
    "compute_operation_fee",
    "ExperimentOrchestrator",
    "VariantRun",
    "VariantTarget",
    "EscrowExperimentError",
    "MalformedDescriptorError",
    "ConfigurationError",
    "SigningError",
    "TransactionError",
    "SubmissionError",
    "InclusionError",
    "ArithmeticOverflowError",
    "Phase",
    "__version__",
]
