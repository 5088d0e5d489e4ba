"""
Bid Resolver

Computes the offered and embedded bid (lance) amounts at contemplation time,
the reduced credit and the self-funded share.
"""

from decimal import Decimal

from ..models import FUND_POOL_FACTORS, BidValues, SimulationContext
from .pre_contemplation import PreContemplationCalculator


def clamp(value: Decimal, low: Decimal, high: Decimal) -> Decimal:
    return max(low, min(high, value))


class BidResolver:
    """Resolves bid values from configurable bases."""

    def calculate(self, ctx: SimulationContext) -> BidValues:
        calc_input = ctx.input
        rules = ctx.rules
        credit = calc_input.credit

        embedded_base = self._embedded_base(ctx)
        max_embedded = rules.embedded_cap * embedded_base

        if rules.bid_model == "installments":
            reference = self.reference_installment(ctx)
            offered = reference * max(0, calc_input.offered_bid_installments)
            requested_embedded = reference * max(0, calc_input.embedded_bid_installments)
            embedded = min(requested_embedded, max_embedded)
            clamped = requested_embedded > max_embedded
        else:
            offered = calc_input.offered_bid_pct * self._offered_base(ctx)
            embedded_pct = clamp(calc_input.embedded_bid_pct, Decimal("0"), rules.embedded_cap)
            embedded = embedded_pct * embedded_base
            clamped = embedded_pct != calc_input.embedded_bid_pct

        offered = max(Decimal("0"), offered)
        self_funded = max(Decimal("0"), offered - embedded)
        reduced_credit = max(Decimal("0"), credit - embedded)
        perceived = self_funded / reduced_credit if reduced_credit > 0 else Decimal("0")

        return BidValues(
            offered_value=offered,
            embedded_value=embedded,
            self_funded_value=self_funded,
            reduced_credit=reduced_credit,
            perceived_pct=perceived,
            embedded_clamped=clamped,
        )

    def reference_installment(self, ctx: SimulationContext) -> Decimal:
        """
        Installment used as bid base: the contracted one, or the full-mode
        installment over the original group term ('term' basis).
        """
        if ctx.rules.installment_basis != "term":
            return ctx.pre.base_installment

        table = ctx.table
        group_term = ctx.input.group_term or ctx.input.term
        return PreContemplationCalculator.base_installment(
            ctx.input.credit,
            group_term,
            FUND_POOL_FACTORS["full"],
            ctx.pre.effective_admin_rate,
            table.reserve_fund_rate,
        )

    def _offered_base(self, ctx: SimulationContext) -> Decimal:
        base = ctx.rules.offered_base
        if base == "category":
            return ctx.pre.category_value
        if base == "installment":
            return self.reference_installment(ctx)
        return ctx.input.credit

    def _embedded_base(self, ctx: SimulationContext) -> Decimal:
        if ctx.rules.embedded_base == "category":
            return ctx.pre.category_value
        return ctx.input.credit
