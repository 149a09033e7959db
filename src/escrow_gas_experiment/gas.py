"""
Gas accounting for the two escrow variants.

On an OP-stack rollup a transaction pays two fees:

    execution fee          gasUsed * effectiveGasPrice   (L2)
    data-availability fee  l1Fee, as reported by the node (L1)

The L1 fee is taken from the receipt as-is. The node already applies the
fee scalars and blob base fee, so it is never recomputed from
l1GasUsed * l1GasPrice.
"""

from collections.abc import Iterable, Sequence
from enum import Enum
from typing import Optional, Union

from escrow_gas_experiment.errors import ArithmeticOverflowError
from escrow_gas_experiment.models import UINT256_MAX, FeeReport, GasReceipt, OperationFee


def variant_name(variant: Union[str, Enum]) -> str:
    return variant.value if isinstance(variant, Enum) else str(variant)


def _checked(name: str, value: int) -> int:
    if value < 0 or value > UINT256_MAX:
        raise ArithmeticOverflowError(f"{name} outside uint256 range: {value}")
    return value


def compute_operation_fee(variant: Union[str, Enum], label: str, receipt: GasReceipt) -> OperationFee:
    """
    Split one receipt's cost into execution and data-availability fees.

    Raises:
        ArithmeticOverflowError: If a receipt field or fee is outside uint256
    """
    gas_used = _checked("gasUsed", receipt.execution_gas_used)
    gas_price = _checked("effectiveGasPrice", receipt.execution_gas_price)
    execution_fee = _checked("execution fee", gas_used * gas_price)

    data_availability_fee = 0
    if receipt.data_availability_fee is not None:
        data_availability_fee = _checked("l1Fee", receipt.data_availability_fee)

    total_fee = _checked("total fee", execution_fee + data_availability_fee)
    return OperationFee(
        variant=variant_name(variant),
        label=label,
        execution_fee=execution_fee,
        data_availability_fee=data_availability_fee,
        total_fee=total_fee,
        transaction_hash=receipt.transaction_hash,
    )


def savings_between(total_a: int, total_b: int) -> tuple[int, float]:
    """
    Absolute and relative savings between two totals.

    The percentage is relative to the more expensive total, so the result
    does not depend on argument order.
    """
    savings = abs(total_a - total_b)
    most_expensive = max(total_a, total_b)
    if most_expensive == 0:
        return savings, 0.0
    return savings, round(savings * 100 / most_expensive, 2)


def build_fee_report(
    entries: Iterable[OperationFee],
    variants: Optional[Sequence[Union[str, Enum]]] = None,
) -> FeeReport:
    """
    Build the comparison report from recorded operations.

    Args:
        entries: Operation fees in call order
        variants: Variants to report on, in display order. Defaults to the
            order in which variants first appear in entries.

    Returns:
        FeeReport; winner is None when the totals are equal
    """
    entries = list(entries)
    if variants is None:
        variants = list(dict.fromkeys(e.variant for e in entries))
    else:
        variants = [variant_name(v) for v in variants]

    totals = {v: 0 for v in variants}
    for entry in entries:
        if entry.variant in totals:
            totals[entry.variant] = _checked(
                f"{entry.variant} total", totals[entry.variant] + entry.total_fee
            )

    winner = None
    savings, percent = 0, 0.0
    if len(variants) == 1:
        winner = variants[0]
    elif len(variants) >= 2:
        a, b = variants[0], variants[1]
        savings, percent = savings_between(totals[a], totals[b])
        if totals[a] != totals[b]:
            winner = a if totals[a] < totals[b] else b

    return FeeReport(
        per_operation_fees=[e for e in entries if e.variant in totals],
        per_variant_totals=totals,
        winner=winner,
        savings_absolute=savings,
        savings_percent=percent,
    )


class GasLedger:
    """
    Accumulates operation fees across an experiment run.

    The ledger only appends; reports are derived from the entries each time,
    so building one twice gives the same result.
    """

    def __init__(self):
        self._entries: list[OperationFee] = []

    def record(self, variant: Union[str, Enum], label: str, receipt: GasReceipt) -> OperationFee:
        """Record a confirmed operation and return its fee breakdown."""
        entry = compute_operation_fee(variant, label, receipt)
        self._entries.append(entry)
        return entry

    @property
    def entries(self) -> list[OperationFee]:
        return list(self._entries)

    def total(self, variant: Union[str, Enum]) -> int:
        return sum(e.total_fee for e in self._entries if e.variant == variant_name(variant))

    def report(self, variants: Optional[Sequence[Union[str, Enum]]] = None) -> FeeReport:
        return build_fee_report(self._entries, variants)
