"""
Input Validation for the Consortium Simulation Engine

Hard preconditions raise ValueError with clear messages; the processor turns
them into a "not computable" result. Soft irregularities never raise: they are
reported as warning codes and the simulation proceeds.
"""

from decimal import Decimal

from .models import CalcInput, SimulationContext

FIXED_BID_RATES = {
    "allows_fixed_25_bid": Decimal("0.25"),
    "allows_fixed_50_bid": Decimal("0.50"),
}


class InputValidator:
    """Validates simulation input according to business rules."""

    def validate(self, calc_input: CalcInput) -> None:
        """
        Run the hard precondition checks. Raises ValueError if any check fails.
        """
        for name in ("credit", "offered_bid_pct", "embedded_bid_pct"):
            value = getattr(calc_input, name)
            if not value.is_finite():
                raise ValueError(f"{name} must be a finite number, got: {value}")

        if calc_input.credit <= 0:
            raise ValueError(f"credit must be positive, got: {calc_input.credit}")

        if calc_input.term <= 0:
            raise ValueError(f"term must be positive, got: {calc_input.term}")

        if not (0 < calc_input.contemplation_month < calc_input.term):
            raise ValueError(
                f"contemplation_month must be between 1 and {calc_input.term - 1}, "
                f"got: {calc_input.contemplation_month}"
            )

    def soft_warnings(self, ctx: SimulationContext) -> list[str]:
        """Collect the irregularities a live-editing form produces naturally."""
        calc_input = ctx.input
        table = ctx.table
        warnings = []

        if table.term_limit and calc_input.term > table.term_limit:
            warnings.append("term_exceeds_limit")

        if not table.covers(calc_input.credit):
            warnings.append("credit_outside_table_range")

        if calc_input.contracting_mode not in ctx.rules.allowed_modes:
            warnings.append("contracting_mode_not_allowed")

        if self._requests_embedded(calc_input) and not table.allows_embedded_bid:
            warnings.append("embedded_bid_not_allowed")

        if not self._offered_bid_allowed(ctx):
            warnings.append("offered_bid_not_allowed")

        return warnings

    def _requests_embedded(self, calc_input: CalcInput) -> bool:
        return calc_input.embedded_bid_pct > 0 or calc_input.embedded_bid_installments > 0

    def _offered_bid_allowed(self, ctx: SimulationContext) -> bool:
        """
        A free bid accepts any percentage; otherwise the offer must match one
        of the fixed percentages the table publishes. Installment-count bids
        are only checked against the free mechanism.
        """
        table = ctx.table
        calc_input = ctx.input

        if table.allows_free_bid:
            return True

        if ctx.rules.bid_model == "installments":
            return calc_input.offered_bid_installments == 0

        pct = calc_input.offered_bid_pct
        if pct == 0:
            return True
        return any(
            getattr(table, flag) and pct == rate
            for flag, rate in FIXED_BID_RATES.items()
        )
