"""
Hold amount engine.

The hold amount for a vehicle is the settlement total the pipeline already
computed for it plus a service charge. The charge depends on which single case
the vehicle's active challans fall into; cases are checked in HOLD_RULES order
and the first match wins.
"""
import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Tuple

from challan_dashboard.core.challan_rules import NormalizedChallan, coerce_amount, normalize_challan
from challan_dashboard.schemas.challan import HoldAmountResult

logger = logging.getLogger(__name__)

HIGH_VALUE_THRESHOLD = 2000
DL_AMOUNT_THRESHOLD = 1000


@dataclass(frozen=True)
class HoldContext:
    challans: Tuple[NormalizedChallan, ...]
    original_amount: float

    @property
    def count(self) -> int:
        return len(self.challans)

    @property
    def amounts(self) -> Tuple[float, ...]:
        return tuple(c.amount for c in self.challans)

    @property
    def any_local(self) -> bool:
        return any(c.is_local for c in self.challans)

    @property
    def any_non_local(self) -> bool:
        return any(not c.is_local for c in self.challans)

    @property
    def all_local(self) -> bool:
        return all(c.is_local for c in self.challans)


@dataclass(frozen=True)
class HoldRule:
    label: str
    charge: float
    applies: Callable[[HoldContext], bool]
    describe: Callable[[HoldContext], str]


def format_rupees(value: Any) -> str:
    """Whole amounts print without a decimal part (2200.0 -> "2200")"""
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return str(value)


def _any_above_high_value(ctx: HoldContext) -> bool:
    return any(amount > HIGH_VALUE_THRESHOLD for amount in ctx.amounts)


def _single_small_dl(ctx: HoldContext) -> bool:
    return ctx.count == 1 and ctx.challans[0].is_local and ctx.original_amount < DL_AMOUNT_THRESHOLD


def _multiple_dl(ctx: HoldContext) -> bool:
    return (
        ctx.count > 1
        and ctx.all_local
        and (
            ctx.original_amount > DL_AMOUNT_THRESHOLD
            or any(amount > DL_AMOUNT_THRESHOLD for amount in ctx.amounts)
        )
    )


def _mixed_jurisdictions(ctx: HoldContext) -> bool:
    return ctx.any_local and ctx.any_non_local


def _single_non_dl(ctx: HoldContext) -> bool:
    return ctx.count == 1 and not ctx.challans[0].is_local


HOLD_RULES: Tuple[HoldRule, ...] = (
    HoldRule(
        label="Case 4: Any Challan Above ₹2000",
        charge=1500,
        applies=_any_above_high_value,
        describe=lambda ctx: "Challan(s) above ₹2000 + ₹1500 service charge",
    ),
    HoldRule(
        label="Case 1: Single DL Challan Under ₹1000",
        charge=200,
        applies=_single_small_dl,
        describe=lambda ctx: f"Single DL challan (₹{format_rupees(ctx.original_amount)}) + ₹200 service charge",
    ),
    HoldRule(
        label="Case 2: Multiple DL Challans (Sum > ₹1000 OR Any > ₹1000)",
        charge=500,
        applies=_multiple_dl,
        describe=lambda ctx: f"Multiple DL challans (₹{format_rupees(ctx.original_amount)}) + ₹500 service charge",
    ),
    HoldRule(
        label="Case 3: Mixed DL + Non-DL Challans (≤ ₹2000)",
        charge=1000,
        applies=_mixed_jurisdictions,
        describe=lambda ctx: f"Mixed challans (₹{format_rupees(ctx.original_amount)}) + ₹1000 service charge",
    ),
    HoldRule(
        label="Case 5: Single Non-DL Challan (Any Amount)",
        charge=1000,
        applies=_single_non_dl,
        describe=lambda ctx: f"Single non-DL challan (₹{format_rupees(ctx.original_amount)}) + ₹1000 service charge",
    ),
)

DEFAULT_RULE = HoldRule(
    label="No Case: No Extra Charge",
    charge=0,
    applies=lambda ctx: True,
    describe=lambda ctx: f"Total original (₹{format_rupees(ctx.original_amount)}) - no service charge applicable",
)


def _zero_result(breakdown: str, rule_applied: str) -> HoldAmountResult:
    return HoldAmountResult(
        holdAmount=0,
        breakdown=breakdown,
        ruleApplied=rule_applied,
        baseAmount=0,
        extraCharge=0,
        originalAmount=0,
    )


def select_rule(ctx: HoldContext) -> HoldRule:
    for rule in HOLD_RULES:
        if rule.applies(ctx):
            return rule
    return DEFAULT_RULE


def settlement_total(vehicle: Mapping[str, Any]) -> float:
    """Vehicle-level settlement total precomputed by the pipeline"""
    summary = vehicle.get("settlement_summary_json")
    if not isinstance(summary, Mapping):
        return 0
    return coerce_amount(summary.get("totalSettlementAmount"))


def build_context(challans) -> HoldContext:
    normalized = tuple(normalize_challan(c) for c in challans)
    active = tuple(c for c in normalized if c.is_active)
    return HoldContext(challans=active, original_amount=sum(c.amount for c in active))


def compute_hold(vehicle: Mapping[str, Any]) -> HoldAmountResult:
    """Hold amount for one vehicle record. Never raises."""
    try:
        challans = vehicle.get("unique_challans_json") or []
        if not challans:
            return _zero_result("No challans found", "No challans")
        if not isinstance(challans, (list, tuple)):
            raise TypeError(f"unique_challans_json must be a list, got {type(challans).__name__}")

        ctx = build_context(challans)
        if not ctx.challans:
            return _zero_result("All challans are completed/paid", "All completed")

        base_amount = settlement_total(vehicle)
        rule = select_rule(ctx)
        hold_amount = base_amount + rule.charge

        return HoldAmountResult(
            holdAmount=hold_amount,
            breakdown=f"{rule.describe(ctx)} = Hold Amount ₹{format_rupees(hold_amount)}",
            ruleApplied=rule.label,
            baseAmount=base_amount,
            extraCharge=rule.charge,
            originalAmount=ctx.original_amount,
        )
    except Exception as e:
        logger.error(f"Error calculating hold amount: {str(e)}")
        return _zero_result("Error calculating hold amount", "Error")
