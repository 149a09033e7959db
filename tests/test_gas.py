"""
Tests for the gas accounting engine.
"""
import pytest

from escrow_gas_experiment.errors import ArithmeticOverflowError
from escrow_gas_experiment.gas import (
    GasLedger,
    build_fee_report,
    compute_operation_fee,
    savings_between,
)
from escrow_gas_experiment.models import EncodingVariant, GasReceipt

CALLDATA = EncodingVariant.CALLDATA_OPTIMIZED
GAS = EncodingVariant.GAS_OPTIMIZED


def receipt(gas_used, gas_price, l1_fee=None, **extra):
    fields = {"gasUsed": gas_used, "effectiveGasPrice": gas_price, **extra}
    if l1_fee is not None:
        fields["l1Fee"] = l1_fee
    return GasReceipt.model_validate(fields)


def test_execution_fee_only():
    fee = compute_operation_fee(CALLDATA, "authorize", receipt(21_000, 2_000_000))
    assert fee.variant == "calldata-optimized"
    assert fee.execution_fee == 42_000_000_000
    assert fee.data_availability_fee == 0
    assert fee.total_fee == 42_000_000_000


def test_reported_l1_fee_used_as_is():
    """l1GasUsed * l1GasPrice would give 1600 * 10**9; the reported fee wins"""
    r = receipt(21_000, 1, l1_fee=123_456, l1GasUsed=1600, l1GasPrice=10**9)
    fee = compute_operation_fee(GAS, "capture", r)
    assert fee.data_availability_fee == 123_456
    assert fee.total_fee == 21_000 + 123_456


def test_large_products_do_not_lose_precision():
    r = receipt(2**64, 2**64, l1_fee=1)
    assert compute_operation_fee(GAS, "authorize", r).total_fee == 2**128 + 1


def test_overflow_raises():
    with pytest.raises(ArithmeticOverflowError):
        compute_operation_fee(GAS, "authorize", receipt(2**200, 2**100))


def test_negative_quantity_raises():
    with pytest.raises(ArithmeticOverflowError):
        compute_operation_fee(GAS, "authorize", receipt(-1, 1))


def test_fee_additivity():
    ledger = GasLedger()
    ledger.record(CALLDATA, "authorize", receipt(90_000, 1_000_000, 3_000_000))
    ledger.record(CALLDATA, "capture", receipt(60_000, 1_000_000, 1_000_000))
    ledger.record(GAS, "authorize", receipt(85_000, 1_000_000, 2_000_000))
    ledger.record(GAS, "capture", receipt(55_000, 1_000_000))

    report = ledger.report([CALLDATA, GAS])
    for op in report.per_operation_fees:
        assert op.total_fee == op.execution_fee + op.data_availability_fee
    for variant, total in report.per_variant_totals.items():
        assert total == sum(
            op.total_fee for op in report.per_operation_fees if op.variant == variant
        )
    assert report.per_variant_totals == {
        "calldata-optimized": 150_004_000_000,
        "gas-optimized": 140_002_000_000,
    }
    assert ledger.total(GAS) == 140_002_000_000


def test_entries_keep_call_order():
    ledger = GasLedger()
    ledger.record(GAS, "authorize", receipt(1, 1))
    ledger.record(CALLDATA, "authorize", receipt(1, 1))
    ledger.record(GAS, "capture", receipt(1, 1))
    assert [(e.variant, e.label) for e in ledger.entries] == [
        ("gas-optimized", "authorize"),
        ("calldata-optimized", "authorize"),
        ("gas-optimized", "capture"),
    ]


def test_report_winner_and_savings():
    entries = [
        compute_operation_fee(CALLDATA, "authorize", receipt(100, 10)),
        compute_operation_fee(GAS, "authorize", receipt(75, 10)),
    ]
    report = build_fee_report(entries, [CALLDATA, GAS])
    assert report.winner == "gas-optimized"
    assert report.savings_absolute == 250
    assert report.savings_percent == 25.0


def test_savings_percent_rounded_to_two_places():
    assert savings_between(150_004_000_000, 140_003_000_000) == (10_001_000_000, 6.67)


def test_savings_symmetry():
    assert savings_between(3, 7) == savings_between(7, 3)
    entries = [
        compute_operation_fee(CALLDATA, "authorize", receipt(3, 1)),
        compute_operation_fee(GAS, "authorize", receipt(7, 1)),
    ]
    forward = build_fee_report(entries, [CALLDATA, GAS])
    backward = build_fee_report(entries, [GAS, CALLDATA])
    assert forward.savings_percent == backward.savings_percent == 57.14
    assert forward.savings_absolute == backward.savings_absolute == 4
    assert forward.winner == backward.winner == "calldata-optimized"


def test_tie_has_no_winner():
    entries = [
        compute_operation_fee(CALLDATA, "authorize", receipt(5, 5)),
        compute_operation_fee(GAS, "authorize", receipt(5, 5)),
    ]
    report = build_fee_report(entries)
    assert report.winner is None
    assert report.savings_absolute == 0
    assert report.savings_percent == 0.0


def test_zero_totals():
    assert savings_between(0, 0) == (0, 0.0)


def test_report_is_idempotent():
    ledger = GasLedger()
    ledger.record(CALLDATA, "authorize", receipt(90_000, 1_000_000, 3_000_000))
    ledger.record(GAS, "authorize", receipt(85_000, 1_000_000, 2_000_000))
    assert ledger.report() == ledger.report()
    assert build_fee_report(ledger.entries) == build_fee_report(ledger.entries)


def test_format_lines():
    entries = [
        compute_operation_fee(CALLDATA, "authorize", receipt(100, 10, 5)),
        compute_operation_fee(GAS, "authorize", receipt(75, 10)),
    ]
    lines = build_fee_report(entries).format_lines()
    assert lines[0] == (
        "calldata-optimized authorize: execution=1000 wei, "
        "data availability=5 wei, total=1005 wei"
    )
    assert "gas-optimized total: 750 wei" in lines
    assert lines[-1] == "Cheaper: gas-optimized, saving 255 wei (25.37%)"
