"""
Pre-Contemplation Calculator

Computes the monthly obligation a member pays from contract start until
contemplation, and how much of it has reduced the balance by then.
"""

from decimal import Decimal

from ..models import FUND_POOL_FACTORS, PreContemplation, SimulationContext


def category_value(credit: Decimal, admin_fee_rate: Decimal, reserve_fund_rate: Decimal) -> Decimal:
    """Credit inflated by the total administration fee and the reserve fund."""
    return credit * (1 + admin_fee_rate + reserve_fund_rate)


class PreContemplationCalculator:
    """Calculates installments before contemplation."""

    def calculate(self, ctx: SimulationContext) -> PreContemplation:
        calc_input = ctx.input
        table = ctx.table
        rules = ctx.rules

        credit = calc_input.credit
        term = max(1, calc_input.term)
        cat_value = category_value(credit, table.admin_fee_rate, table.reserve_fund_rate)
        factor = FUND_POOL_FACTORS[calc_input.contracting_mode]
        effective_admin = max(Decimal("0"), table.admin_fee_rate - table.front_load_rate)

        base = self.base_installment(
            credit, term, factor, effective_admin, table.reserve_fund_rate,
            reduction_base=rules.reduction_base, cat_value=cat_value,
        )
        front_load_each = self.front_load_each(credit, table.front_load_rate, table.front_load_installments)
        insurance = cat_value * table.insurance_rate if rules.insurance_before else Decimal("0")

        # The contemplation month itself is not paid here, so a zero-bid run at
        # month m spreads the balance over term - m months instead of keeping
        # the contracted installment
        months_paid = calc_input.contemplation_month - 1
        total_paid = (
            base * months_paid
            + front_load_each * min(months_paid, table.front_load_installments)
        )

        return PreContemplation(
            category_value=cat_value,
            fund_pool_factor=factor,
            effective_admin_rate=effective_admin,
            base_installment=base,
            front_load_each=front_load_each,
            insurance_monthly=insurance,
            installment_during_front_load=base + front_load_each + insurance,
            installment_after=base + insurance,
            months_paid=months_paid,
            total_paid=total_paid,
        )

    @staticmethod
    def base_installment(
        credit: Decimal,
        term: int,
        factor: Decimal,
        effective_admin: Decimal,
        reserve_fund_rate: Decimal,
        reduction_base: str = "credit",
        cat_value: Decimal | None = None,
    ) -> Decimal:
        """
        Monthly installment without insurance or front-loaded fee.

        With reduction_base='credit' the reduced modes pay only a fraction of
        the credit itself. With reduction_base='category' the same fraction of
        the category value is taken off the full obligation instead.
        """
        term = max(1, term)
        if reduction_base == "category" and cat_value is not None:
            full = credit * (1 + effective_admin + reserve_fund_rate)
            reduction = (1 - factor) * cat_value
            return max(Decimal("0"), full - reduction) / term

        return credit * (factor + effective_admin + reserve_fund_rate) / term

    @staticmethod
    def front_load_each(credit: Decimal, front_load_rate: Decimal, installments: int) -> Decimal:
        """Flat add-on charged on each of the first `installments` installments."""
        if installments <= 0:
            return Decimal("0")
        return credit * front_load_rate / installments
