"""
Output Builder

Constructs the API response from a simulation result.
"""

from decimal import Decimal
from typing import Optional

from .models import CalcInput, CalcResult, RateTable, StatementEntry


def to_money(value: Optional[Decimal]) -> Optional[float]:
    """Convert Decimal to float with 2 decimal places."""
    if value is None:
        return None
    return round(float(value), 2)


def to_rate(value: Decimal) -> float:
    """Convert a Decimal rate to float with 6 decimal places."""
    return round(float(value), 6)


def _fmt(value) -> str:
    """Format a number as currency string for descriptions."""
    return f"R$ {value:,.2f}"


def _pct(value) -> str:
    return f"{float(value) * 100:.4f}%"


class OutputBuilder:
    """Builds the final output response."""

    def build(self, result: CalcResult, calc_input: CalcInput, table: RateTable) -> dict:
        """Construct the complete simulation response."""
        if not result.computable:
            return {
                "status": "not_computable",
                "computable": False,
                "reason": result.reason,
            }

        output = {
            "status": "ok",
            "computable": True,
            "simulation_summary": self._build_summary(calc_input, table),
            "calculations": self._build_calculations(result, calc_input, table),
            "rules_applied": self._build_rules(result),
            "warnings": list(result.warnings),
        }
        if calc_input.include_statement:
            output["statement"] = [self._build_statement_entry(e) for e in result.statement]
        return output

    def _build_summary(self, calc_input: CalcInput, table: RateTable) -> dict:
        return {
            "segment": table.segment,
            "table_name": table.table_name,
            "credit": to_money(calc_input.credit),
            "term": calc_input.term,
            "term_limit": table.term_limit,
            "contracting_mode": calc_input.contracting_mode,
            "insurance": calc_input.insurance,
            "contemplation_month": calc_input.contemplation_month,
        }

    def _build_calculations(self, result: CalcResult, calc_input: CalcInput, table: RateTable) -> dict:
        """Build calculations section with value and dynamic description for each field."""
        pre = result.pre
        rules = result.rules
        credit = to_money(calc_input.credit)

        second = result.second_installment_with_front_load
        limiter_desc = (
            f"{_pct(rules.limiter_rate)} × {rules.limiter_base} = {_fmt(to_money(result.limiter_installment))}"
            if rules.limiter_rate > 0 else "No limiter configured"
        )
        if not rules.limiter_applies:
            limiter_desc += " (segment keeps the unconstrained installment)"

        return {
            "category_value": {
                "value": to_money(result.category_value),
                "description": (
                    f"credit ({_fmt(credit)}) × (1 + admin fee {_pct(table.admin_fee_rate)} + "
                    f"reserve fund {_pct(table.reserve_fund_rate)}) = {_fmt(to_money(result.category_value))}"
                ),
            },
            "installment_during_front_load": {
                "value": to_money(result.installment_during_front_load),
                "description": (
                    f"Installments 1 to {table.front_load_installments} carry the front-loaded fee "
                    f"of {_fmt(to_money(pre.front_load_each))} each"
                    if table.front_load_installments else "No front-loaded fee in this table"
                ),
            },
            "installment_after": {
                "value": to_money(result.installment_after),
                "description": (
                    f"Monthly installment until contemplation, fund pool factor "
                    f"{float(pre.fund_pool_factor):g} and effective admin fee {_pct(pre.effective_admin_rate)}"
                    + (f", insurance {_fmt(to_money(pre.insurance_monthly))}" if pre.insurance_monthly else "")
                ),
            },
            "total_paid": {
                "value": to_money(result.total_paid),
                "description": f"Paid in {pre.months_paid} installments before contemplation, excluding insurance",
            },
            "offered_bid": {
                "value": to_money(result.offered_value),
                "description": f"Offered bid over the {rules.offered_base} base ({rules.bid_model} model)",
            },
            "embedded_bid": {
                "value": to_money(result.embedded_value),
                "description": (
                    f"Deducted from the credit, capped at {_pct(rules.embedded_cap)} of the "
                    f"{rules.embedded_base} base"
                ),
            },
            "self_funded_bid": {
                "value": to_money(result.self_funded_value),
                "description": (
                    f"offered ({_fmt(to_money(result.offered_value))}) - embedded "
                    f"({_fmt(to_money(result.embedded_value))}) = {_fmt(to_money(result.self_funded_value))}"
                ),
            },
            "perceived_bid_pct": {
                "value": to_rate(result.perceived_pct),
                "description": "Self-funded bid as a share of the reduced credit",
            },
            "reduced_credit": {
                "value": to_money(result.reduced_credit),
                "description": (
                    f"credit ({_fmt(credit)}) - embedded ({_fmt(to_money(result.embedded_value))}) = "
                    f"{_fmt(to_money(result.reduced_credit))}"
                ),
            },
            "payoff_balance": {
                "value": to_money(result.payoff_balance),
                "description": (
                    f"category ({_fmt(to_money(result.category_value))}) - paid ({_fmt(to_money(result.total_paid))}) "
                    f"- offered ({_fmt(to_money(result.offered_value))}), never below zero"
                ),
            },
            "new_installment_unconstrained": {
                "value": to_money(result.new_installment_unconstrained),
                "description": f"Payoff balance spread over the remaining {result.remaining_term} months",
            },
            "limiter_installment": {
                "value": to_money(result.limiter_installment),
                "description": limiter_desc,
            },
            "chosen_installment": {
                "value": to_money(result.chosen_installment),
                "description": (
                    "Limiter floor raised the installment" if result.limiter_applied
                    else "Unconstrained installment kept"
                ),
            },
            "chosen_installment_with_insurance": {
                "value": to_money(result.chosen_installment_with_insurance),
                "description": "Post-contemplation installment including insurance",
            },
            "second_installment_with_front_load": {
                "value": to_money(second),
                "description": (
                    f"Next {result.post_front_load_installments} installment(s) still carry the front-loaded fee"
                    if second is not None else "No front-loaded fee after contemplation"
                ),
            },
            "new_term": {
                "value": result.new_term,
                "description": (
                    f"ceil(balance / {_fmt(to_money(result.chosen_installment))}) months"
                    if result.new_term != result.remaining_term else "Remaining term unchanged"
                ),
            },
        }

    def _build_rules(self, result: CalcResult) -> dict:
        rules = result.rules
        return {
            "limiter_rate": to_rate(rules.limiter_rate),
            "limiter_base": rules.limiter_base,
            "limiter_applies_to_segment": rules.limiter_applies,
            "limiter_applied": result.limiter_applied,
            "embedded_cap": to_rate(rules.embedded_cap),
            "embedded_base": rules.embedded_base,
            "offered_base": rules.offered_base,
            "bid_model": rules.bid_model,
            "reduction_base": rules.reduction_base,
            "allowed_modes": list(rules.allowed_modes),
        }

    def _build_statement_entry(self, entry: StatementEntry) -> dict:
        return {
            "month": entry.month,
            "installment": to_money(entry.installment),
            "bid_deducted": to_money(entry.bid_deducted),
            "balance_after": to_money(entry.balance_after),
            "invested_total": to_money(entry.invested_total),
            "event": entry.event,
        }
