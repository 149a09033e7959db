"""
Tests for the authorize/capture orchestrator, using a fake chain transport.
"""
import logging
from unittest.mock import MagicMock

import pytest
from eth_account import Account
from eth_account.messages import encode_typed_data

from escrow_gas_experiment.encoding import get_encoding, positional_digest, struct_digest
from escrow_gas_experiment.errors import (
    ConfigurationError,
    InclusionError,
    Phase,
    SigningError,
    SubmissionError,
)
from escrow_gas_experiment.models import BoundDigest, EncodingVariant, SignedAuthorization
from escrow_gas_experiment.networks import BASE
from escrow_gas_experiment.orchestrator import ExperimentOrchestrator, VariantTarget
from escrow_gas_experiment.signer import RECEIVE_WITH_AUTHORIZATION_TYPES, AuthorizationSigner
from tests.conftest import CALLDATA_ESCROW, GAS_ESCROW, FakeTransport


@pytest.fixture
def lines():
    return []


@pytest.fixture
def orchestrator(transport, signer, lines):
    return ExperimentOrchestrator(transport, signer, sink=lines.append)


def test_end_to_end_two_variants(orchestrator, transport, signer, targets, descriptor, window, account):
    report = orchestrator.run(targets, descriptor, window)

    assert [(c.address, c.function) for c in transport.calls] == [
        (CALLDATA_ESCROW, "authorize"),
        (CALLDATA_ESCROW, "capture"),
        (GAS_ESCROW, "authorize"),
        (GAS_ESCROW, "capture"),
    ]

    calldata_digest = positional_digest(descriptor, window, 123)
    gas_digest = struct_digest(descriptor, window, 456)
    assert calldata_digest != gas_digest
    assert transport.calls[1].args == (calldata_digest, 10_000)

    # each authorize carries a signature over its own digest and escrow
    for call, target, digest in (
        (transport.calls[0], targets[0], calldata_digest),
        (transport.calls[2], targets[1], gas_digest),
    ):
        signature = call.args[-1]
        bound = BoundDigest(variant=target.variant, contract=target.contract, digest=digest)
        signable = encode_typed_data(
            domain_data=signer.domain,
            message_types=RECEIVE_WITH_AUTHORIZATION_TYPES,
            message_data=signer.build_message(bound, descriptor, window),
        )
        assert Account.recover_message(signable, signature=signature) == account.address

    assert set(report.per_variant_totals) == {"calldata-optimized", "gas-optimized"}
    assert report.per_variant_totals["calldata-optimized"] == 150_004_000_000
    assert report.per_variant_totals["gas-optimized"] == 140_003_000_000
    assert report.winner == "gas-optimized"
    assert report.savings_absolute == 10_001_000_000
    assert report.savings_percent == 6.67
    assert [op.label for op in report.per_operation_fees] == [
        "authorize", "capture", "authorize", "capture",
    ]


def test_progress_lines_go_to_sink(orchestrator, targets, descriptor, window, lines):
    report = orchestrator.run(targets, descriptor, window)

    assert any("Payment hash (nonce): 0x" in line for line in lines)
    assert any("Submitting authorize transaction" in line for line in lines)
    assert any("Submitting capture transaction" in line for line in lines)
    assert lines[-len(report.format_lines()):] == report.format_lines()


def test_default_sink_logs(transport, signer, targets, descriptor, window, caplog):
    orchestrator = ExperimentOrchestrator(transport, signer)
    with caplog.at_level(logging.INFO, logger="escrow_gas_experiment.orchestrator"):
        orchestrator.run(targets, descriptor, window)
    assert "Cheaper: gas-optimized" in caplog.text


def test_run_variant_returns_fees(orchestrator, targets, descriptor, window):
    run = orchestrator.run_variant(targets[1], descriptor, window)
    assert run.variant is EncodingVariant.GAS_OPTIMIZED
    assert run.digest.contract == GAS_ESCROW
    assert run.authorization.digest is run.digest
    assert run.authorize_fee.total_fee == 85_002_000_000
    assert run.capture_fee.total_fee == 55_001_000_000
    assert run.total_fee == 140_003_000_000


def test_partial_capture_amount(orchestrator, transport, targets, descriptor, window):
    orchestrator.run_variant(targets[0], descriptor, window, capture_amount=4_000)
    assert transport.calls[-1].args[1] == 4_000


def test_capture_failure_aborts_run(signer, targets, descriptor, window, lines):
    transport = FakeTransport()
    original_submit = transport.submit

    def submit(call):
        if call.function == "capture":
            raise SubmissionError("execution reverted: AfterCaptureDeadline")
        return original_submit(call)

    transport.submit = submit
    orchestrator = ExperimentOrchestrator(transport, signer, sink=lines.append)

    with pytest.raises(SubmissionError, match="AfterCaptureDeadline") as exc_info:
        orchestrator.run(targets, descriptor, window)

    error = exc_info.value
    assert error.variant == "calldata-optimized"
    assert error.phase is Phase.CAPTURE
    assert "phase=capture" in str(error)
    # only the calldata authorize went through; gas-optimized never started
    assert [c.function for c in transport.calls] == ["authorize"]
    assert [e.label for e in orchestrator.ledger.entries] == ["authorize"]
    assert any("remains authorized" in line for line in lines)


def test_transport_exception_becomes_inclusion_error(signer, targets, descriptor, window):
    transport = FakeTransport()
    transport.wait_for_receipt = MagicMock(side_effect=TimeoutError("no receipt"))
    orchestrator = ExperimentOrchestrator(transport, signer, sink=lambda line: None)

    with pytest.raises(InclusionError, match="no receipt") as exc_info:
        orchestrator.run_variant(targets[1], descriptor, window)
    assert exc_info.value.variant == "gas-optimized"
    assert exc_info.value.phase is Phase.AUTHORIZE
    assert exc_info.value.transaction_hash == "0x" + f"{1:064x}"


def test_signing_failure_aborts_before_submission(transport, targets, descriptor, window):
    capability = MagicMock(address=descriptor.buyer)
    capability.sign_typed_data.side_effect = RuntimeError("user rejected")

    orchestrator = ExperimentOrchestrator(
        transport, AuthorizationSigner(capability, BASE), sink=lambda line: None
    )
    with pytest.raises(SigningError, match="user rejected"):
        orchestrator.run(targets, descriptor, window)
    assert transport.calls == []


def test_authorization_for_other_contract_is_rejected(transport, targets, descriptor, window):
    wrong = BoundDigest(
        variant=EncodingVariant.CALLDATA_OPTIMIZED,
        contract=GAS_ESCROW,
        digest=positional_digest(descriptor, window, 123),
    )
    signer = MagicMock()
    signer.sign.return_value = SignedAuthorization(digest=wrong, signature=b"\x01" * 65)
    orchestrator = ExperimentOrchestrator(transport, signer, sink=lambda line: None)

    with pytest.raises(SigningError, match="bound to"):
        orchestrator.run_variant(targets[0], descriptor, window)
    assert transport.calls == []


def test_shared_salt_rejected(orchestrator, transport, descriptor, window):
    targets = [
        VariantTarget(EncodingVariant.CALLDATA_OPTIMIZED, CALLDATA_ESCROW, salt=7),
        VariantTarget(EncodingVariant.GAS_OPTIMIZED, GAS_ESCROW, salt=7),
    ]
    with pytest.raises(ConfigurationError, match="different salts"):
        orchestrator.run(targets, descriptor, window)
    assert transport.calls == []


def test_repeated_variant_rejected(orchestrator, descriptor, window):
    targets = [
        VariantTarget(EncodingVariant.GAS_OPTIMIZED, GAS_ESCROW, salt=1),
        VariantTarget(EncodingVariant.GAS_OPTIMIZED, GAS_ESCROW, salt=2),
    ]
    with pytest.raises(ConfigurationError):
        orchestrator.run(targets, descriptor, window)


def test_empty_targets_rejected(orchestrator, descriptor, window):
    with pytest.raises(ConfigurationError):
        orchestrator.run([], descriptor, window)


def test_refund_and_void_are_recorded(orchestrator, transport, targets, descriptor, window):
    orchestrator.void(targets[0], descriptor, window)
    orchestrator.refund(targets[1], descriptor, window, amount=2_500)

    void_call, refund_call = transport.calls
    assert void_call.function == "void"
    assert void_call.args == (positional_digest(descriptor, window, 123),)
    assert refund_call.function == "refund"
    assert refund_call.args[0] == 2_500
    assert [(e.variant, e.label) for e in orchestrator.ledger.entries] == [
        ("calldata-optimized", "void"),
        ("gas-optimized", "refund"),
    ]


def test_report_twice_is_identical(orchestrator, targets, descriptor, window):
    first = orchestrator.run(targets, descriptor, window)
    assert orchestrator.report([t.variant for t in targets]) == first
    assert orchestrator.report([t.variant for t in targets]) == first


def test_second_run_reports_only_its_own_operations(orchestrator, targets, descriptor, window):
    first = orchestrator.run(targets, descriptor, window)
    second = orchestrator.run(targets, descriptor, window)

    assert second.per_variant_totals == first.per_variant_totals == {
        "calldata-optimized": 150_004_000_000,
        "gas-optimized": 140_003_000_000,
    }
    assert len(second.per_operation_fees) == 4
    assert second.savings_absolute == 10_001_000_000
    # the ledger keeps the full history
    assert len(orchestrator.ledger.entries) == 8


def test_void_before_run_is_not_compared(orchestrator, targets, descriptor, window):
    orchestrator.void(targets[0], descriptor, window)
    report = orchestrator.run(targets, descriptor, window)

    assert [op.label for op in report.per_operation_fees] == [
        "authorize", "capture", "authorize", "capture",
    ]
    assert report.per_variant_totals["calldata-optimized"] == 150_004_000_000
    assert orchestrator.ledger.entries[0].label == "void"


def test_charge_on_gas_optimized(orchestrator, transport, targets, descriptor, window, account, signer):
    fee = orchestrator.charge(targets[1], descriptor, window)

    (call,) = transport.calls
    assert call.function == "charge"
    assert call.address == GAS_ESCROW
    assert call.args[:2] == (10_000, get_encoding(targets[1].variant).payment_details(descriptor, window, 456))

    bound = BoundDigest(
        variant=targets[1].variant,
        contract=GAS_ESCROW,
        digest=struct_digest(descriptor, window, 456),
    )
    signable = encode_typed_data(
        domain_data=signer.domain,
        message_types=RECEIVE_WITH_AUTHORIZATION_TYPES,
        message_data=signer.build_message(bound, descriptor, window),
    )
    assert Account.recover_message(signable, signature=call.args[2]) == account.address

    assert fee.label == "charge"
    assert fee.variant == "gas-optimized"
    assert [(e.variant, e.label) for e in orchestrator.ledger.entries] == [("gas-optimized", "charge")]


def test_charge_unsupported_on_calldata_optimized(orchestrator, transport, targets, descriptor, window):
    with pytest.raises(ConfigurationError, match="does not support charge"):
        orchestrator.charge(targets[0], descriptor, window)
    assert transport.calls == []
    assert orchestrator.ledger.entries == []


def test_charge_failure_tagged_with_charge_phase(signer, targets, descriptor, window):
    transport = FakeTransport()
    transport.submit = MagicMock(side_effect=SubmissionError("insufficient funds"))
    orchestrator = ExperimentOrchestrator(transport, signer, sink=lambda line: None)

    with pytest.raises(SubmissionError) as exc_info:
        orchestrator.charge(targets[1], descriptor, window)
    assert exc_info.value.phase is Phase.CHARGE
    assert exc_info.value.variant == "gas-optimized"
