"""
Rule Resolver

Merges administrator defaults, rate-table values and segment exceptions into
one ResolvedRules struct consumed by every other calculator.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Optional

from ..models import (
    CalcInput,
    CalcPreferences,
    RateTable,
    ResolvedRules,
)

MOTORCYCLE_THRESHOLD = Decimal("20000")
MOTORCYCLE_LIMITER_RATE = Decimal("0.01")
EMBEDDED_CEILING = Decimal("0.25")


def _segment_has(segment: str, fragment: str) -> bool:
    return fragment in (segment or "").lower()


@dataclass(frozen=True)
class SegmentRule:
    """
    A segment exception: when `applies(segment, credit)` holds, the rule
    overrides the configured limiter.

    limiter_rate: forced limiter rate (None keeps the configured one)
    keeps_pace: the limiter is computed but never applied, the member keeps
                the unconstrained installment
    """

    name: str
    applies: Callable[[str, Decimal], bool]
    limiter_rate: Optional[Decimal] = None
    keeps_pace: bool = False


# Evaluated in order, first match wins
SEGMENT_RULES = (
    SegmentRule(
        name="motorcycle_above_threshold",
        applies=lambda segment, credit: (
            _segment_has(segment, "moto") and credit >= MOTORCYCLE_THRESHOLD
        ),
        limiter_rate=MOTORCYCLE_LIMITER_RATE,
    ),
    SegmentRule(
        name="motorcycle_below_threshold",
        applies=lambda segment, credit: (
            _segment_has(segment, "moto") and credit < MOTORCYCLE_THRESHOLD
        ),
        keeps_pace=True,
    ),
    SegmentRule(
        name="services",
        applies=lambda segment, credit: _segment_has(segment, "serv"),
        keeps_pace=True,
    ),
)


class RuleResolver:
    """Resolves effective numeric parameters from the layered configuration."""

    def __init__(self, segment_rules: tuple = SEGMENT_RULES):
        self.segment_rules = segment_rules

    def resolve(
        self, table: RateTable, prefs: CalcPreferences, calc_input: CalcInput
    ) -> ResolvedRules:
        """Resolve every parameter the calculators need for one simulation."""
        segment_rule = self.match_segment_rule(table.segment, calc_input.credit)
        return ResolvedRules(
            limiter_rate=self.resolve_limiter_rate(table, prefs, table.segment, calc_input.credit),
            limiter_base=prefs.limiter_base,
            limiter_applies=not (segment_rule and segment_rule.keeps_pace),
            embedded_cap=self.resolve_embedded_cap(table, prefs),
            embedded_base=prefs.embedded_base,
            offered_base=self.resolve_bid_base(prefs),
            bid_model=prefs.bid_model,
            installment_basis=prefs.installment_basis,
            reduction_base=prefs.reduction_base,
            allowed_modes=self.resolve_allowed_modes(table, prefs),
            insurance_before=calc_input.insurance or prefs.insurance_policy == "from_start",
            insurance_after=calc_input.insurance or prefs.insurance_policy != "optional",
        )

    def match_segment_rule(self, segment: str, credit: Decimal) -> Optional[SegmentRule]:
        for rule in self.segment_rules:
            if rule.applies(segment, credit):
                return rule
        return None

    def resolve_limiter_rate(
        self, table: RateTable, prefs: CalcPreferences, segment: str, credit: Decimal
    ) -> Decimal:
        """
        Resolve the post-contemplation limiter rate.

        Priority order:
        1. Segment exception with a forced rate
        2. Limiter disabled by the administrator (no limiter)
        3. Administrator default rate (limiter_source='admin')
        4. Table rate (limiter_source='table')
        """
        rule = self.match_segment_rule(segment, credit)
        if rule and rule.limiter_rate is not None:
            return rule.limiter_rate

        if not prefs.limiter_enabled:
            return Decimal("0")

        if prefs.limiter_source == "admin":
            rate = prefs.limiter_default_rate
        else:
            rate = table.limiter_rate

        return max(Decimal("0"), rate or Decimal("0"))

    def resolve_embedded_cap(self, table: RateTable, prefs: CalcPreferences) -> Decimal:
        """Embedded-bid cap, never above 25% of its base."""
        if not table.allows_embedded_bid:
            return Decimal("0")

        if prefs.embedded_cap_source == "admin":
            cap = prefs.embedded_cap_default
        else:
            cap = table.embedded_cap_rate

        return min(max(Decimal("0"), cap), EMBEDDED_CEILING)

    def resolve_bid_base(self, prefs: Optional[CalcPreferences]) -> str:
        if prefs is None:
            return "credit"
        return prefs.offered_base

    def resolve_allowed_modes(self, table: RateTable, prefs: CalcPreferences) -> tuple:
        if prefs.modes_source == "admin":
            return tuple(prefs.admin_modes)
        return table.allowed_modes

    @staticmethod
    def select_table(
        tables: list[RateTable], segment: str, table_name: str, credit: Decimal
    ) -> Optional[RateTable]:
        """Pick the variant of a named table whose credit range covers the credit."""
        for table in tables:
            if table.segment == segment and table.table_name == table_name and table.covers(credit):
                return table
        return None
