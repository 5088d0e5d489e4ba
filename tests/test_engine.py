"""
Tests for the Consortium Simulation Engine

Run with: python -m pytest tests/ -v
"""

import copy
import json
from decimal import Decimal

import pytest

from consortium_engine import CalcInput, CalcPreferences, RateTable, SimulationProcessor, simulate
from consortium_engine.models import FIXED_TABLE_PREFERENCES
from consortium_engine.processor import simulate_from_dict, simulate_from_json


@pytest.fixture
def processor():
    return SimulationProcessor()


@pytest.fixture
def sample_input():
    """Fixed-table simulation payload."""
    return {
        "input": {
            "credit": 100000,
            "term": 200,
            "contracting_mode": "full",
            "insurance": False,
            "contemplation_month": 1,
            "offered_bid_pct": 0,
            "embedded_bid_pct": 0,
        },
        "table": {
            "segment": "Automóvel",
            "table_name": "Select Auto",
            "credit_min": 50000,
            "credit_max": 500000,
            "term_limit": 200,
            "admin_fee_rate": 0.18,
            "reserve_fund_rate": 0.02,
            "front_load_rate": 0,
            "front_load_installments": 0,
            "limiter_rate": 0,
            "insurance_rate": 0.0005,
        },
    }


class TestSimulationProcessor:
    """Test the main simulation processor."""

    def test_basic_simulation(self, processor, sample_input):
        result = processor.simulate_from_dict(sample_input)

        assert result["status"] == "ok"
        assert result["computable"] is True
        assert "simulation_summary" in result
        assert "calculations" in result
        assert "rules_applied" in result
        assert result["warnings"] == []
        assert "statement" not in result

    def test_installment_and_new_term(self, processor, sample_input):
        result = processor.simulate_from_dict(sample_input)
        calculations = result["calculations"]

        assert calculations["category_value"]["value"] == 120000.0
        assert calculations["installment_after"]["value"] == 600.0
        assert calculations["payoff_balance"]["value"] == 120000.0
        assert calculations["chosen_installment"]["value"] == 603.02
        assert calculations["new_term"]["value"] == 199
        assert calculations["second_installment_with_front_load"]["value"] is None

    def test_portuguese_contracting_mode_label(self, processor, sample_input):
        sample_input["input"]["contracting_mode"] = "Reduzida 25%"
        result = processor.simulate_from_dict(sample_input)

        assert result["simulation_summary"]["contracting_mode"] == "reduced_25"
        assert result["calculations"]["installment_after"]["value"] == 475.0

    def test_statement_rendered_when_requested(self, processor, sample_input):
        sample_input["input"]["include_statement"] = True
        result = processor.simulate_from_dict(sample_input)

        assert len(result["statement"]) == 200
        assert result["statement"][0]["event"] == "contemplation"

    def test_preferences_applied(self, processor, sample_input):
        sample_input["preferences"] = {
            "limiter_source": "admin",
            "limiter_default_rate": 0.006,
            "offered_base": "category",
        }
        sample_input["input"]["offered_bid_pct"] = 0.1
        result = processor.simulate_from_dict(sample_input)

        assert result["calculations"]["offered_bid"]["value"] == 12000.0
        assert result["rules_applied"]["limiter_rate"] == 0.006
        assert result["rules_applied"]["offered_base"] == "category"

    def test_table_selected_from_list(self, processor, sample_input):
        low = dict(sample_input["table"], credit_min=10000, credit_max=99999.99, admin_fee_rate=0.20)
        high = dict(sample_input["table"], credit_min=100000, credit_max=500000)
        payload = {
            "input": sample_input["input"],
            "tables": [low, high],
            "segment": "Automóvel",
            "table_name": "Select Auto",
        }
        result = processor.simulate_from_dict(payload)

        assert result["calculations"]["category_value"]["value"] == 120000.0

    def test_no_matching_table_raises(self, processor, sample_input):
        payload = {"input": sample_input["input"], "tables": [], "segment": "Imóvel", "table_name": "X"}

        with pytest.raises(ValueError, match="covers credit"):
            processor.simulate_from_dict(payload)

    def test_unknown_option_raises(self, processor, sample_input):
        sample_input["preferences"] = {"limiter_base": "salary"}

        with pytest.raises(ValueError, match="limiter_base"):
            processor.simulate_from_dict(sample_input)

    def test_unknown_contracting_mode_raises(self, processor, sample_input):
        sample_input["input"]["contracting_mode"] = "Reduzida 10%"

        with pytest.raises(ValueError, match="contracting_mode"):
            processor.simulate_from_dict(sample_input)

    def test_non_numeric_credit_raises(self, processor, sample_input):
        sample_input["input"]["credit"] = "abc"

        with pytest.raises(ValueError, match="Invalid number"):
            processor.simulate_from_dict(sample_input)

    @pytest.mark.parametrize("value", ["NaN", "Infinity", "-Infinity", float("nan")])
    def test_non_finite_credit_raises(self, processor, sample_input, value):
        sample_input["input"]["credit"] = value

        with pytest.raises(ValueError, match="Invalid number"):
            processor.simulate_from_dict(sample_input)

    def test_non_finite_table_rate_raises(self, processor, sample_input):
        sample_input["table"]["limiter_rate"] = "Infinity"

        with pytest.raises(ValueError, match="Invalid number"):
            processor.simulate_from_dict(sample_input)

    def test_open_credit_max_still_defaults_to_unbounded(self, processor, sample_input):
        del sample_input["table"]["credit_max"]
        sample_input["input"]["credit"] = 10000000
        result = processor.simulate_from_dict(sample_input)

        assert "credit_outside_table_range" not in result["warnings"]

    def test_fixed_table_limiter_over_reduced_category(self, processor, sample_input):
        """No preferences: 1% of (75k reduced credit + 18k fee + 2k reserve) = 950."""
        sample_input["input"]["contemplation_month"] = 10
        sample_input["input"]["embedded_bid_pct"] = 0.25
        sample_input["table"]["limiter_rate"] = 0.01
        result = processor.simulate_from_dict(sample_input)
        calculations = result["calculations"]

        assert result["rules_applied"]["limiter_base"] == "reduced_category"
        assert calculations["payoff_balance"]["value"] == 114600.0
        assert calculations["limiter_installment"]["value"] == 950.0
        assert calculations["chosen_installment"]["value"] == 950.0
        assert calculations["new_term"]["value"] == 121

    def test_contemplation_month_not_counted_as_paid(self, processor, sample_input):
        """Month 10, no bids: 9 installments paid, 114 600 over 190 months."""
        sample_input["input"]["contemplation_month"] = 10
        result = processor.simulate_from_dict(sample_input)
        calculations = result["calculations"]

        assert calculations["total_paid"]["value"] == 5400.0
        assert calculations["new_installment_unconstrained"]["value"] == 603.16
        assert calculations["new_term"]["value"] == 190

    def test_generic_path_limiter_over_category(self, processor, sample_input):
        sample_input["input"]["contemplation_month"] = 10
        sample_input["input"]["embedded_bid_pct"] = 0.25
        sample_input["table"]["limiter_rate"] = 0.01
        sample_input["preferences"] = {"limiter_source": "table"}
        result = processor.simulate_from_dict(sample_input)

        assert result["rules_applied"]["limiter_base"] == "category"
        assert result["calculations"]["limiter_installment"]["value"] == 1200.0
        assert result["calculations"]["new_term"]["value"] == 96

    def test_string_flags_coerced(self, processor, sample_input):
        sample_input["table"]["allows_reduced_50"] = "false"
        sample_input["input"]["contracting_mode"] = "reduced_50"
        sample_input["input"]["include_statement"] = "True"
        result = processor.simulate_from_dict(sample_input)

        assert "contracting_mode_not_allowed" in result["warnings"]
        assert len(result["statement"]) == 200

    @pytest.mark.parametrize("field,value", [("insurance", "yes"), ("include_statement", 1)])
    def test_invalid_flag_raises(self, processor, sample_input, field, value):
        sample_input["input"][field] = value

        with pytest.raises(ValueError, match=field):
            processor.simulate_from_dict(sample_input)

    def test_invalid_preference_flag_raises(self, processor, sample_input):
        sample_input["preferences"] = {"limiter_enabled": "off"}

        with pytest.raises(ValueError, match="limiter_enabled"):
            processor.simulate_from_dict(sample_input)


class TestHardPreconditions:
    """Hard precondition failures return a not-computable result."""

    @pytest.mark.parametrize("field,value", [
        ("credit", 0),
        ("credit", -1000),
        ("term", 0),
        ("contemplation_month", 0),
        ("contemplation_month", 200),
        ("contemplation_month", 250),
    ])
    def test_not_computable(self, processor, sample_input, field, value):
        sample_input["input"][field] = value
        result = processor.simulate_from_dict(sample_input)

        assert result["status"] == "not_computable"
        assert result["computable"] is False
        assert field.split("_")[0] in result["reason"]

    def test_not_computable_does_not_raise(self, processor):
        table = RateTable.from_dict({"segment": "Automóvel", "admin_fee_rate": 0.18})
        result = processor.simulate(CalcInput(credit=Decimal("0"), term=10, contemplation_month=1), table)

        assert result.computable is False
        assert result.reason

    @pytest.mark.parametrize("value", ["NaN", "Infinity", "-Infinity"])
    def test_non_finite_credit_not_computable(self, processor, value):
        table = RateTable.from_dict({"segment": "Automóvel", "admin_fee_rate": 0.18})
        result = processor.simulate(CalcInput(credit=Decimal(value), term=200, contemplation_month=10), table)

        assert result.computable is False
        assert "finite" in result.reason

    @pytest.mark.parametrize("field", ["offered_bid_pct", "embedded_bid_pct"])
    def test_non_finite_bid_not_computable(self, processor, field):
        table = RateTable.from_dict({"segment": "Automóvel", "admin_fee_rate": 0.18})
        calc_input = CalcInput(credit=Decimal("100000"), term=200, contemplation_month=10, **{field: Decimal("NaN")})
        result = processor.simulate(calc_input, table)

        assert result.computable is False
        assert field in result.reason


class TestSoftWarnings:
    """Soft irregularities are reported but never interrupt the simulation."""

    def test_term_above_table_limit(self, processor, sample_input):
        sample_input["input"]["term"] = 220
        result = processor.simulate_from_dict(sample_input)

        assert result["computable"] is True
        assert "term_exceeds_limit" in result["warnings"]

    def test_credit_outside_table_range(self, processor, sample_input):
        sample_input["input"]["credit"] = 40000
        result = processor.simulate_from_dict(sample_input)

        assert "credit_outside_table_range" in result["warnings"]

    def test_contracting_mode_not_allowed(self, processor, sample_input):
        sample_input["table"]["allows_reduced_50"] = False
        sample_input["input"]["contracting_mode"] = "reduced_50"
        result = processor.simulate_from_dict(sample_input)

        assert "contracting_mode_not_allowed" in result["warnings"]
        assert result["calculations"]["installment_after"]["value"] == 350.0

    def test_embedded_clamped(self, processor, sample_input):
        sample_input["input"]["embedded_bid_pct"] = 0.4
        result = processor.simulate_from_dict(sample_input)

        assert "embedded_bid_clamped" in result["warnings"]
        assert result["calculations"]["reduced_credit"]["value"] == 75000.0

    def test_embedded_not_allowed(self, processor, sample_input):
        sample_input["table"]["allows_embedded_bid"] = False
        sample_input["input"]["embedded_bid_pct"] = 0.1
        result = processor.simulate_from_dict(sample_input)

        assert "embedded_bid_not_allowed" in result["warnings"]
        assert result["calculations"]["embedded_bid"]["value"] == 0.0

    def test_offered_bid_must_match_fixed_mechanism(self, processor, sample_input):
        sample_input["table"]["allows_free_bid"] = False
        sample_input["table"]["allows_fixed_50_bid"] = False
        sample_input["input"]["offered_bid_pct"] = 0.30
        result = processor.simulate_from_dict(sample_input)

        assert "offered_bid_not_allowed" in result["warnings"]

    def test_fixed_25_offer_accepted(self, processor, sample_input):
        sample_input["table"]["allows_free_bid"] = False
        sample_input["input"]["offered_bid_pct"] = 0.25
        result = processor.simulate_from_dict(sample_input)

        assert "offered_bid_not_allowed" not in result["warnings"]


class TestEngineProperties:
    """Properties that hold for every valid input."""

    def _table(self, segment="Automóvel", limiter_rate="0.006"):
        return RateTable(
            segment=segment,
            table_name="Any",
            credit_min=Decimal("0"),
            credit_max=Decimal("1000000"),
            term_limit=240,
            admin_fee_rate=Decimal("0.16"),
            reserve_fund_rate=Decimal("0.03"),
            front_load_rate=Decimal("0.01"),
            front_load_installments=2,
            limiter_rate=Decimal(limiter_rate),
        )

    @pytest.mark.parametrize("month", [1, 2, 12, 60, 119])
    @pytest.mark.parametrize("offered", ["0", "0.2", "0.5"])
    def test_limiter_never_lowers_installment(self, month, offered):
        calc_input = CalcInput(
            credit=Decimal("80000"), term=120, contemplation_month=month, offered_bid_pct=Decimal(offered)
        )
        result = simulate(calc_input, self._table())

        assert result.chosen_installment >= result.new_installment_unconstrained
        assert result.chosen_installment >= 0
        assert result.new_term >= 1

    @pytest.mark.parametrize("segment,credit", [("Serviços", "30000"), ("Motocicleta", "15000")])
    @pytest.mark.parametrize("limiter_rate", ["0.001", "0.02", "0.5"])
    def test_segment_exception_keeps_unconstrained(self, segment, credit, limiter_rate):
        calc_input = CalcInput(credit=Decimal(credit), term=120, contemplation_month=30)
        result = simulate(calc_input, self._table(segment=segment, limiter_rate=limiter_rate))

        assert result.chosen_installment == result.new_installment_unconstrained
        assert result.limiter_applied is False

    def test_idempotent(self):
        calc_input = CalcInput(
            credit=Decimal("80000"), term=120, contemplation_month=7,
            offered_bid_pct=Decimal("0.35"), embedded_bid_pct=Decimal("0.2"),
            include_statement=True,
        )
        first = simulate(calc_input, self._table())
        second = simulate(calc_input, self._table())

        assert first == second

    def test_inputs_not_mutated(self):
        table = self._table()
        prefs = CalcPreferences(limiter_base="credit")
        calc_input = CalcInput(credit=Decimal("80000"), term=120, contemplation_month=7)
        snapshot = copy.deepcopy((table, prefs, calc_input))

        simulate(calc_input, table, prefs)

        assert (table, prefs, calc_input) == snapshot

    def test_missing_preferences_match_defaults(self):
        calc_input = CalcInput(credit=Decimal("80000"), term=120, contemplation_month=7)

        assert simulate(calc_input, self._table()) == simulate(calc_input, self._table(), FIXED_TABLE_PREFERENCES)


class TestConvenienceFunctions:
    """Module-level helpers."""

    def test_simulate_from_dict(self, sample_input):
        result = simulate_from_dict(sample_input)

        assert result["calculations"]["new_term"]["value"] == 199

    def test_simulate_from_json(self, sample_input):
        output = json.loads(simulate_from_json(json.dumps(sample_input)))

        assert output["status"] == "ok"

    def test_simulate_from_json_invalid(self):
        output = json.loads(simulate_from_json("not json"))

        assert output["status"] == "validation_failed"
