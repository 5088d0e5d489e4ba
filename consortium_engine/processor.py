"""
Simulation Processor - Main Orchestrator

Coordinates the simulation pipeline through discrete, testable steps.
"""

import json
import logging
from typing import Any, Dict, Optional

from .calculators import (
    BidResolver,
    PostContemplationCalculator,
    PreContemplationCalculator,
    RuleResolver,
    StatementBuilder,
)
from .models import (
    FIXED_TABLE_PREFERENCES,
    CalcInput,
    CalcPreferences,
    CalcResult,
    RateTable,
    SimulationContext,
)
from .output import OutputBuilder
from .validators import InputValidator

logger = logging.getLogger(__name__)


class SimulationProcessor:
    """
    Main orchestrator for consortium simulations.

    Implements a clear pipeline pattern:
    1. Validate hard preconditions
    2. Build Context
    3. Resolve Rules
    4. Collect soft warnings
    5. Pre-contemplation installments
    6. Bids
    7. Post-contemplation schedule
    8. Statement (optional)
    9. Build Result
    """

    def __init__(self, rule_resolver: Optional[RuleResolver] = None):
        self.validator = InputValidator()
        self.rule_resolver = rule_resolver or RuleResolver()
        self.pre_calculator = PreContemplationCalculator()
        self.bid_resolver = BidResolver()
        self.post_calculator = PostContemplationCalculator()
        self.statement_builder = StatementBuilder()
        self.output_builder = OutputBuilder()

    def simulate(
        self,
        calc_input: CalcInput,
        table: RateTable,
        preferences: Optional[CalcPreferences] = None,
    ) -> CalcResult:
        """
        Run one simulation.

        Args:
            calc_input: User-entered parameters
            table: Rate table snapshot
            preferences: Administrator preferences; None means fixed-table defaults

        Returns:
            CalcResult, with computable=False when a hard precondition fails
        """
        # Step 1: Validate
        try:
            self.validator.validate(calc_input)
        except ValueError as e:
            logger.debug("Simulation not computable: %s", e)
            return CalcResult.not_computable(str(e))

        # Step 2: Build context
        ctx = SimulationContext(
            input=calc_input,
            table=table,
            preferences=FIXED_TABLE_PREFERENCES if preferences is None else preferences,
        )

        # Step 3: Resolve rules (table, administrator, segment exceptions)
        ctx.rules = self.rule_resolver.resolve(ctx.table, ctx.preferences, ctx.input)

        # Step 4: Soft irregularities
        ctx.warnings = self.validator.soft_warnings(ctx)

        # Step 5: Pre-contemplation
        ctx.pre = self.pre_calculator.calculate(ctx)

        # Step 6: Bids
        ctx.bids = self.bid_resolver.calculate(ctx)
        if ctx.bids.embedded_clamped:
            ctx.warnings.append("embedded_bid_clamped")

        # Step 7: Post-contemplation
        ctx.post = self.post_calculator.calculate(ctx)

        # Step 8: Statement
        if calc_input.include_statement:
            ctx.statement = self.statement_builder.build(ctx)

        # Step 9: Build result
        return self._build_result(ctx)

    def simulate_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Simulate from raw dictionary input.

        Convenience method for API usage. The payload carries `input`, either a
        `table` row or a `tables` list plus `segment`/`table_name` to select
        from, and optional `preferences`.
        """
        calc_input = CalcInput.from_dict(data["input"])
        table = self._table_from_dict(data, calc_input)
        prefs_data = data.get("preferences")
        preferences = CalcPreferences.from_dict(prefs_data) if prefs_data else None

        result = self.simulate(calc_input, table, preferences)
        return self.output_builder.build(result, calc_input, table)

    def _table_from_dict(self, data: Dict[str, Any], calc_input: CalcInput) -> RateTable:
        if "table" in data:
            return RateTable.from_dict(data["table"])

        tables = [RateTable.from_dict(t) for t in data.get("tables", [])]
        table = self.rule_resolver.select_table(
            tables, data.get("segment"), data.get("table_name"), calc_input.credit
        )
        if table is None:
            raise ValueError(
                f"No table '{data.get('table_name')}' in segment '{data.get('segment')}' "
                f"covers credit {calc_input.credit}"
            )
        return table

    def _build_result(self, ctx: SimulationContext) -> CalcResult:
        pre = ctx.pre
        bids = ctx.bids
        post = ctx.post
        return CalcResult(
            computable=True,
            category_value=pre.category_value,
            installment_during_front_load=pre.installment_during_front_load,
            installment_after=pre.installment_after,
            total_paid=pre.total_paid,
            offered_value=bids.offered_value,
            embedded_value=bids.embedded_value,
            self_funded_value=bids.self_funded_value,
            perceived_pct=bids.perceived_pct,
            reduced_credit=bids.reduced_credit,
            payoff_balance=post.payoff_balance,
            remaining_term=post.remaining_term,
            new_installment_unconstrained=post.new_installment_unconstrained,
            limiter_installment=post.limiter_installment,
            chosen_installment=post.chosen_installment,
            chosen_installment_with_insurance=post.chosen_installment_with_insurance,
            limiter_applied=post.limiter_applied,
            new_term=post.new_term,
            post_front_load_installments=post.post_front_load_installments,
            second_installment_with_front_load=post.second_installment_with_front_load,
            rules=ctx.rules,
            pre=pre,
            warnings=list(ctx.warnings),
            statement=list(ctx.statement),
        )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

_processor = SimulationProcessor()


def simulate(
    calc_input: CalcInput,
    table: RateTable,
    preferences: Optional[CalcPreferences] = None,
) -> CalcResult:
    """Run one simulation with the shared stateless processor."""
    return _processor.simulate(calc_input, table, preferences)


def simulate_from_dict(input_data: Dict[str, Any]) -> Dict[str, Any]:
    """Simulate from Python dict and return Python dict."""
    return _processor.simulate_from_dict(input_data)


def simulate_from_json(json_input: str) -> str:
    """
    Simulate from JSON string input and return JSON string output.
    """
    try:
        input_data = json.loads(json_input)
        result = _processor.simulate_from_dict(input_data)
        return json.dumps(result, indent=2)

    except (ValueError, KeyError, TypeError) as e:
        error_response = {"error": str(e), "status": "validation_failed"}
        return json.dumps(error_response, indent=2)
