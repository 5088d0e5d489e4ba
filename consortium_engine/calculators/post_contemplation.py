"""
Post-Contemplation Calculator

Recomputes the remaining schedule after contemplation: payoff balance, the
unconstrained and limiter-constrained installments, and the new term.
"""

from decimal import ROUND_CEILING, Decimal

from ..models import PostContemplation, SimulationContext

# Installments closer than half a cent are treated as equal when deciding
# whether the limiter changed the schedule
TERM_EPSILON = Decimal("0.005")


def ceil_int(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_CEILING))


class PostContemplationCalculator:
    """Calculates the post-contemplation installment and term."""

    def calculate(self, ctx: SimulationContext) -> PostContemplation:
        """
        Steps:
        1. Payoff balance = category value - paid so far - offered bid (never negative)
        2. Unconstrained installment = balance spread over the remaining term
        3. Limiter installment floor, unless the segment keeps its pace
        4. Front-loaded fee installments still due after contemplation
        5. New term, by inversion when the installment changed
        """
        calc_input = ctx.input
        table = ctx.table
        rules = ctx.rules
        pre = ctx.pre
        bids = ctx.bids

        payoff = max(Decimal("0"), pre.category_value - pre.total_paid - bids.offered_value)
        # Pairs with months_paid = contemplation_month - 1: the schedule holds
        # term - 1 installments in total
        remaining_term = max(1, calc_input.term - calc_input.contemplation_month)
        unconstrained = payoff / remaining_term

        limiter = self._limiter_installment(ctx)
        if rules.limiter_applies and limiter > unconstrained:
            chosen = limiter
        else:
            chosen = unconstrained
        limiter_applied = chosen - unconstrained > TERM_EPSILON

        # Front-loaded installments that fall after the contemplation month
        offset = max(0, table.front_load_installments - calc_input.contemplation_month)
        second_installment = chosen + pre.front_load_each if offset > 0 else None

        new_term = self._new_term(payoff, remaining_term, unconstrained, chosen, offset, pre.front_load_each)

        insurance = (
            pre.category_value * table.insurance_rate if rules.insurance_after else Decimal("0")
        )

        return PostContemplation(
            payoff_balance=payoff,
            remaining_term=remaining_term,
            new_installment_unconstrained=unconstrained,
            limiter_installment=limiter,
            chosen_installment=chosen,
            limiter_applied=limiter_applied,
            new_term=new_term,
            post_front_load_installments=offset,
            second_installment_with_front_load=second_installment,
            insurance_monthly=insurance,
        )

    def _limiter_installment(self, ctx: SimulationContext) -> Decimal:
        """Limiter floor over its configured base."""
        rate = ctx.rules.limiter_rate
        if rate <= 0:
            return Decimal("0")

        base = ctx.rules.limiter_base
        if base == "credit":
            base_value = ctx.input.credit
        elif base == "installment":
            base_value = ctx.pre.base_installment
        elif base == "reduced_category":
            table = ctx.table
            base_value = ctx.bids.reduced_credit + ctx.input.credit * (
                table.admin_fee_rate + table.reserve_fund_rate
            )
        else:
            base_value = ctx.pre.category_value

        return rate * base_value

    def _new_term(
        self,
        payoff: Decimal,
        remaining_term: int,
        unconstrained: Decimal,
        chosen: Decimal,
        offset: int,
        front_load_each: Decimal,
    ) -> int:
        if chosen <= 0:
            return remaining_term

        if offset == 0 and abs(chosen - unconstrained) <= TERM_EPSILON:
            return remaining_term

        adjusted = max(Decimal("0"), payoff - front_load_each * offset)
        return max(1, ceil_int(adjusted / chosen))
