"""
Statement Builder

Lays out the month-by-month statement of a computed simulation. Balances
exclude insurance; the invested total includes it.
"""

from decimal import Decimal

from ..models import SimulationContext, StatementEntry

SETTLED = Decimal("0.005")


class StatementBuilder:
    """Builds the month-by-month statement from the step results."""

    def build(self, ctx: SimulationContext) -> list[StatementEntry]:
        pre = ctx.pre
        post = ctx.post
        front_load_count = ctx.table.front_load_installments
        contemplation_month = ctx.input.contemplation_month

        entries = []
        balance = pre.category_value
        invested = Decimal("0")

        for month in range(1, contemplation_month):
            due = pre.base_installment
            if month <= front_load_count:
                due += pre.front_load_each
            balance = max(Decimal("0"), balance - due)
            invested += due + pre.insurance_monthly
            entries.append(StatementEntry(
                month=month,
                installment=due + pre.insurance_monthly,
                balance_after=balance,
                invested_total=invested,
                event="front_load" if month <= front_load_count else None,
            ))

        balance = post.payoff_balance
        entries.append(StatementEntry(
            month=contemplation_month,
            installment=Decimal("0"),
            bid_deducted=ctx.bids.offered_value,
            balance_after=balance,
            invested_total=invested,
            event="contemplation",
        ))

        for n in range(1, post.new_term + 1):
            if balance <= SETTLED:
                break
            due = post.chosen_installment
            event = None
            if n <= post.post_front_load_installments:
                due += pre.front_load_each
                event = "front_load"
            if n == post.new_term or due > balance:
                due = balance
                event = event or "final"
            balance = max(Decimal("0"), balance - due)
            invested += due + post.insurance_monthly
            entries.append(StatementEntry(
                month=contemplation_month + n,
                installment=due + post.insurance_monthly,
                balance_after=balance,
                invested_total=invested,
                event=event,
            ))

        return entries
