"""
Authorize/capture orchestration for the escrow gas experiment.

Flow per variant:
1. DIGEST    - Hash the payment terms with the variant's encoding
2. SIGN      - ERC-3009 ReceiveWithAuthorization over the digest, to = escrow
3. AUTHORIZE - escrow.authorize(), wait for inclusion, record fees
4. CAPTURE   - escrow.capture(), wait for inclusion, record fees

Variants run one after the other, never concurrently, so their transactions
don't compete for the same account nonce or block space. Nothing is retried:
a failed capture leaves the payment authorized on-chain, and the error says
which variant and phase to resume from.

Example:
    >>> orchestrator = ExperimentOrchestrator(transport, signer, sink=print)
    >>> report = orchestrator.run(
    ...     [
    ...         VariantTarget(EncodingVariant.CALLDATA_OPTIMIZED, calldata_address, salt=123),
    ...         VariantTarget(EncodingVariant.GAS_OPTIMIZED, gas_address, salt=456),
    ...     ],
    ...     descriptor,
    ...     window,
    ... )
    >>> print(report.winner, report.savings_percent)
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Callable, Optional

from web3 import Web3

from escrow_gas_experiment.encoding import get_encoding
from escrow_gas_experiment.errors import (
    ConfigurationError,
    InclusionError,
    Phase,
    SigningError,
    SubmissionError,
    TransactionError,
)
from escrow_gas_experiment.gas import GasLedger, build_fee_report
from escrow_gas_experiment.models import (
    AuthorizationWindow,
    BoundDigest,
    ContractCall,
    EncodingVariant,
    FeeReport,
    OperationFee,
    PaymentDescriptor,
    SignedAuthorization,
    validate_salt,
)
from escrow_gas_experiment.signer import AuthorizationSigner
from escrow_gas_experiment.transport import ChainTransport

Sink = Callable[[str], None]


@dataclass(frozen=True)
class VariantTarget:
    """An escrow deployment to run against, with the salt its payment uses."""

    variant: EncodingVariant
    contract: str
    salt: int

    def __post_init__(self):
        object.__setattr__(self, "variant", EncodingVariant(self.variant))
        object.__setattr__(self, "contract", Web3.to_checksum_address(self.contract))
        validate_salt(self.salt)


@dataclass
class VariantRun:
    """Outcome of one variant's authorize/capture sequence."""

    variant: EncodingVariant
    digest: BoundDigest
    authorization: SignedAuthorization
    authorize_fee: OperationFee
    capture_fee: OperationFee

    @property
    def total_fee(self) -> int:
        return self.authorize_fee.total_fee + self.capture_fee.total_fee


class ExperimentOrchestrator:
    """
    Runs authorize/capture against escrow variants and accounts their fees.

    Args:
        transport: Chain transport used to submit calls and wait for receipts
        signer: Authorization signer holding the buyer's key
        sink: Receives human-readable progress lines. Defaults to INFO logging.
        ledger: Gas ledger to record into (a fresh one by default)
        logger: Optional logger instance
    """

    def __init__(
        self,
        transport: ChainTransport,
        signer: AuthorizationSigner,
        *,
        sink: Optional[Sink] = None,
        ledger: Optional[GasLedger] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.transport = transport
        self.signer = signer
        self.logger = logger or logging.getLogger(__name__)
        self.sink: Sink = sink or (lambda line: self.logger.info("%s", line))
        self.ledger = ledger if ledger is not None else GasLedger()

    def run(
        self,
        targets: Sequence[VariantTarget],
        descriptor: PaymentDescriptor,
        window: AuthorizationWindow,
    ) -> FeeReport:
        """
        Run every target in order and report the fee comparison.

        The report covers only the operations of this run; earlier runs,
        refunds and voids stay in the ledger but are not compared.

        Raises:
            ConfigurationError: If variants repeat or two targets share a salt
            SigningError: If signing fails for any variant
            TransactionError: If any submission or inclusion fails
        """
        self._check_targets(targets)
        start = len(self.ledger.entries)
        for target in targets:
            self.run_variant(target, descriptor, window)

        report = build_fee_report(
            self.ledger.entries[start:], [t.variant for t in targets]
        )
        for line in report.format_lines():
            self.sink(line)
        return report

    def run_variant(
        self,
        target: VariantTarget,
        descriptor: PaymentDescriptor,
        window: AuthorizationWindow,
        capture_amount: Optional[int] = None,
    ) -> VariantRun:
        """
        AUTHORIZE then CAPTURE one payment on one escrow variant.

        Args:
            target: Escrow deployment and salt
            descriptor: Payment terms
            window: ERC-3009 validity window
            capture_amount: Amount to capture (defaults to descriptor.value)
        """
        encoding = get_encoding(target.variant)
        name = target.variant.value
        self.sink(f"[{name}] escrow {target.contract}, salt {target.salt}")

        bound = encoding.bind(target.contract, descriptor, window, target.salt)
        self.sink(f"[{name}] Payment hash (nonce): {bound.hex}")

        authorization = self.signer.sign(bound, descriptor, window)
        self._check_binding(target, authorization)
        self.sink(f"[{name}] Signature generated: {authorization.signature_hex}")

        authorize_fee = self._execute(
            target,
            Phase.AUTHORIZE,
            encoding.authorize_call(target.contract, descriptor, window, target.salt, authorization),
        )
        capture_fee = self._execute(
            target,
            Phase.CAPTURE,
            encoding.capture_call(
                target.contract, descriptor, window, target.salt, capture_amount
            ),
        )
        return VariantRun(
            variant=target.variant,
            digest=bound,
            authorization=authorization,
            authorize_fee=authorize_fee,
            capture_fee=capture_fee,
        )

    def charge(
        self,
        target: VariantTarget,
        descriptor: PaymentDescriptor,
        window: AuthorizationWindow,
    ) -> OperationFee:
        """
        CHARGE: authorize and capture the full value in one transaction.

        Raises:
            ConfigurationError: If the variant's escrow has no charge call
        """
        encoding = get_encoding(target.variant)
        name = target.variant.value
        if not encoding.supports_charge:
            raise ConfigurationError(f"{name} escrow does not support charge")

        bound = encoding.bind(target.contract, descriptor, window, target.salt)
        self.sink(f"[{name}] Payment hash (nonce): {bound.hex}")
        authorization = self.signer.sign(bound, descriptor, window)
        self._check_binding(target, authorization)

        call = encoding.charge_call(
            target.contract, descriptor, window, target.salt, authorization
        )
        return self._execute(target, Phase.CHARGE, call)

    def refund(
        self,
        target: VariantTarget,
        descriptor: PaymentDescriptor,
        window: AuthorizationWindow,
        amount: Optional[int] = None,
    ) -> OperationFee:
        """REFUND: return captured funds to the buyer (defaults to the full value)."""
        call = get_encoding(target.variant).refund_call(
            target.contract, descriptor, window, target.salt, amount
        )
        return self._execute(target, Phase.REFUND, call)

    def void(
        self,
        target: VariantTarget,
        descriptor: PaymentDescriptor,
        window: AuthorizationWindow,
    ) -> OperationFee:
        """VOID: cancel an authorized, uncaptured payment."""
        call = get_encoding(target.variant).void_call(
            target.contract, descriptor, window, target.salt
        )
        return self._execute(target, Phase.VOID, call)

    def report(self, variants: Optional[Sequence[EncodingVariant]] = None) -> FeeReport:
        return self.ledger.report(variants)

    def _execute(self, target: VariantTarget, phase: Phase, call: ContractCall) -> OperationFee:
        name = target.variant.value
        self.sink(f"[{name}] Submitting {phase.value} transaction...")
        try:
            try:
                tx_hash = self.transport.submit(call)
            except TransactionError:
                raise
            except Exception as e:
                raise SubmissionError(f"Submitting {call.describe()} failed: {e}") from e
            self.sink(f"[{name}] Transaction submitted: {tx_hash}")

            try:
                receipt = self.transport.wait_for_receipt(tx_hash)
            except TransactionError:
                raise
            except Exception as e:
                raise InclusionError(
                    f"Waiting for receipt failed: {e}", transaction_hash=tx_hash
                ) from e
        except TransactionError as e:
            self.logger.error("%s %s failed: %s", name, phase.value, e.message)
            if phase is Phase.CAPTURE:
                self.sink(f"[{name}] Capture failed; payment remains authorized on-chain")
            raise e.with_context(name, phase) from e

        fee = self.ledger.record(target.variant, phase.value, receipt)
        l1_fee = receipt.data_availability_fee
        self.sink(
            f"[{name}] {phase.value}: gas used {receipt.execution_gas_used}, "
            f"effective gas price {receipt.execution_gas_price}, "
            f"L1 fee {l1_fee if l1_fee is not None else 'N/A'}, "
            f"total {fee.total_fee} wei"
        )
        return fee

    @staticmethod
    def _check_binding(target: VariantTarget, authorization: SignedAuthorization) -> None:
        bound = authorization.digest
        if bound.contract != target.contract or bound.variant != target.variant:
            raise SigningError(
                f"Authorization is bound to {bound.variant.value}@{bound.contract}, "
                f"not {target.variant.value}@{target.contract}",
                variant=target.variant.value,
            )

    @staticmethod
    def _check_targets(targets: Sequence[VariantTarget]) -> None:
        if not targets:
            raise ConfigurationError("No escrow variants to run")
        variants = [t.variant for t in targets]
        if len(set(variants)) != len(variants):
            raise ConfigurationError("Each escrow variant may only run once per experiment")
        salts = [t.salt for t in targets]
        if len(set(salts)) != len(salts):
            raise ConfigurationError(
                "Variants must use different salts to avoid an ERC-3009 nonce collision"
            )
