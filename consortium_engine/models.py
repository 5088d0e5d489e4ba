"""
Domain Models for the Consortium Simulation Engine

These dataclasses provide type-safe representations of all simulation entities.
All monetary values and rates use Decimal for precision.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

# Contracting modes and the share of the fund pool each one pays before contemplation
CONTRACTING_MODES = ("full", "reduced_25", "reduced_50")
FUND_POOL_FACTORS = {
    "full": Decimal("1"),
    "reduced_25": Decimal("0.75"),
    "reduced_50": Decimal("0.5"),
}
# Labels used by the CRM forms
CONTRACTING_MODE_ALIASES = {
    "parcela cheia": "full",
    "reduzida 25%": "reduced_25",
    "reduzida 50%": "reduced_50",
}

RULE_SOURCES = ("table", "admin")
BASES_CREDIT_CATEGORY = ("credit", "category")
OFFERED_BASES = ("credit", "category", "installment")
LIMITER_BASES = ("category", "credit", "installment", "reduced_category")
BID_MODELS = ("percentage", "installments")
INSTALLMENT_BASES = ("contracted", "term")
INSURANCE_POLICIES = ("optional", "from_start", "after_contemplation")


def _decimal(value, default="0") -> Decimal:
    if value is None:
        return Decimal(default)
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Invalid number: {value!r}") from None
    if not result.is_finite():
        raise ValueError(f"Invalid number: {value!r}")
    return result


def _flag(value, default: bool, name: str) -> bool:
    """Accept JSON booleans and their string spellings from form payloads."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ValueError(f"Invalid {name}: {value!r}. Must be true or false")


def _choice(value, allowed: tuple, name: str) -> str:
    if value not in allowed:
        raise ValueError(f"Invalid {name}: {value}. Must be one of {', '.join(allowed)}")
    return value


def normalize_contracting_mode(value: str) -> str:
    """Accept both engine codes ('reduced_25') and form labels ('Reduzida 25%')."""
    if value in CONTRACTING_MODES:
        return value
    mode = CONTRACTING_MODE_ALIASES.get(str(value).strip().lower())
    if mode is None:
        raise ValueError(
            f"Invalid contracting_mode: {value}. Must be one of {', '.join(CONTRACTING_MODES)}"
        )
    return mode


# =============================================================================
# INPUT MODELS
# =============================================================================


@dataclass(frozen=True)
class RateTable:
    """A rate table row published by a consortium administrator."""

    segment: str
    table_name: str
    credit_min: Decimal
    credit_max: Decimal
    term_limit: int
    admin_fee_rate: Decimal
    reserve_fund_rate: Decimal
    front_load_rate: Decimal = Decimal("0")
    front_load_installments: int = 0
    limiter_rate: Decimal = Decimal("0")
    insurance_rate: Decimal = Decimal("0")
    allows_full: bool = True
    allows_reduced_25: bool = True
    allows_reduced_50: bool = True
    allows_embedded_bid: bool = True
    allows_fixed_25_bid: bool = True
    allows_fixed_50_bid: bool = True
    allows_free_bid: bool = True
    embedded_cap_rate: Decimal = Decimal("0.25")

    @property
    def allowed_modes(self) -> tuple:
        flags = (self.allows_full, self.allows_reduced_25, self.allows_reduced_50)
        return tuple(mode for mode, allowed in zip(CONTRACTING_MODES, flags) if allowed)

    def covers(self, credit: Decimal) -> bool:
        return self.credit_min <= credit <= self.credit_max

    @classmethod
    def from_dict(cls, data: dict) -> "RateTable":
        return cls(
            segment=data["segment"],
            table_name=data.get("table_name", ""),
            credit_min=_decimal(data.get("credit_min")),
            credit_max=_decimal(data.get("credit_max"), default="Infinity"),
            term_limit=int(data.get("term_limit", 0)),
            admin_fee_rate=_decimal(data["admin_fee_rate"]),
            reserve_fund_rate=_decimal(data.get("reserve_fund_rate")),
            front_load_rate=_decimal(data.get("front_load_rate")),
            front_load_installments=int(data.get("front_load_installments", 0)),
            limiter_rate=_decimal(data.get("limiter_rate")),
            insurance_rate=_decimal(data.get("insurance_rate")),
            allows_full=_flag(data.get("allows_full"), True, "allows_full"),
            allows_reduced_25=_flag(data.get("allows_reduced_25"), True, "allows_reduced_25"),
            allows_reduced_50=_flag(data.get("allows_reduced_50"), True, "allows_reduced_50"),
            allows_embedded_bid=_flag(data.get("allows_embedded_bid"), True, "allows_embedded_bid"),
            allows_fixed_25_bid=_flag(data.get("allows_fixed_25_bid"), True, "allows_fixed_25_bid"),
            allows_fixed_50_bid=_flag(data.get("allows_fixed_50_bid"), True, "allows_fixed_50_bid"),
            allows_free_bid=_flag(data.get("allows_free_bid"), True, "allows_free_bid"),
            embedded_cap_rate=_decimal(data.get("embedded_cap_rate"), default="0.25"),
        )


@dataclass(frozen=True)
class CalcPreferences:
    """Administrator-level calculation preferences layered over a RateTable.

    The defaults are the generic simulator's fallbacks: table values are
    authoritative, every base is the raw credit, and the limiter is taken
    over the category value. The fixed-table simulator uses
    FIXED_TABLE_PREFERENCES instead.
    """

    modes_source: str = "table"
    admin_modes: tuple = CONTRACTING_MODES
    reduction_base: str = "credit"
    bid_model: str = "percentage"
    offered_base: str = "credit"
    installment_basis: str = "contracted"
    embedded_base: str = "credit"
    embedded_cap_source: str = "table"
    embedded_cap_default: Decimal = Decimal("0.25")
    limiter_enabled: bool = True
    limiter_source: str = "table"
    limiter_default_rate: Decimal = Decimal("0")
    limiter_base: str = "category"
    insurance_policy: str = "optional"

    @classmethod
    def from_dict(cls, data: dict) -> "CalcPreferences":
        modes = data.get("admin_modes")
        return cls(
            modes_source=_choice(data.get("modes_source", "table"), RULE_SOURCES, "modes_source"),
            admin_modes=(
                tuple(normalize_contracting_mode(m) for m in modes)
                if modes is not None else CONTRACTING_MODES
            ),
            reduction_base=_choice(
                data.get("reduction_base", "credit"), BASES_CREDIT_CATEGORY, "reduction_base"
            ),
            bid_model=_choice(data.get("bid_model", "percentage"), BID_MODELS, "bid_model"),
            offered_base=_choice(data.get("offered_base", "credit"), OFFERED_BASES, "offered_base"),
            installment_basis=_choice(
                data.get("installment_basis", "contracted"), INSTALLMENT_BASES, "installment_basis"
            ),
            embedded_base=_choice(
                data.get("embedded_base", "credit"), BASES_CREDIT_CATEGORY, "embedded_base"
            ),
            embedded_cap_source=_choice(
                data.get("embedded_cap_source", "table"), RULE_SOURCES, "embedded_cap_source"
            ),
            embedded_cap_default=_decimal(data.get("embedded_cap_default"), default="0.25"),
            limiter_enabled=_flag(data.get("limiter_enabled"), True, "limiter_enabled"),
            limiter_source=_choice(data.get("limiter_source", "table"), RULE_SOURCES, "limiter_source"),
            limiter_default_rate=_decimal(data.get("limiter_default_rate")),
            limiter_base=_choice(data.get("limiter_base", "category"), LIMITER_BASES, "limiter_base"),
            insurance_policy=_choice(
                data.get("insurance_policy", "optional"), INSURANCE_POLICIES, "insurance_policy"
            ),
        )


# Used when no administrator preferences are given: the limiter is taken over
# the category value rebuilt on the credit left after the embedded bid
FIXED_TABLE_PREFERENCES = CalcPreferences(limiter_base="reduced_category")


@dataclass(frozen=True)
class CalcInput:
    """User-entered simulation parameters."""

    credit: Decimal
    term: int
    contemplation_month: int
    contracting_mode: str = "full"
    insurance: bool = False
    offered_bid_pct: Decimal = Decimal("0")
    embedded_bid_pct: Decimal = Decimal("0")
    offered_bid_installments: int = 0
    embedded_bid_installments: int = 0
    group_term: int | None = None
    include_statement: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "CalcInput":
        group_term = data.get("group_term")
        return cls(
            credit=_decimal(data["credit"]),
            term=int(data["term"]),
            contemplation_month=int(data["contemplation_month"]),
            contracting_mode=normalize_contracting_mode(data.get("contracting_mode", "full")),
            insurance=_flag(data.get("insurance"), False, "insurance"),
            offered_bid_pct=_decimal(data.get("offered_bid_pct")),
            embedded_bid_pct=_decimal(data.get("embedded_bid_pct")),
            offered_bid_installments=int(data.get("offered_bid_installments", 0)),
            embedded_bid_installments=int(data.get("embedded_bid_installments", 0)),
            group_term=int(group_term) if group_term else None,
            include_statement=_flag(data.get("include_statement"), False, "include_statement"),
        )


# =============================================================================
# RESOLVED RULES / STEP RESULTS
# =============================================================================


@dataclass(frozen=True)
class ResolvedRules:
    """Every configurable parameter after table, preferences and segment rules are merged."""

    limiter_rate: Decimal = Decimal("0")
    limiter_base: str = "category"
    limiter_applies: bool = True
    embedded_cap: Decimal = Decimal("0.25")
    embedded_base: str = "credit"
    offered_base: str = "credit"
    bid_model: str = "percentage"
    installment_basis: str = "contracted"
    reduction_base: str = "credit"
    allowed_modes: tuple = CONTRACTING_MODES
    insurance_before: bool = False
    insurance_after: bool = False


@dataclass
class PreContemplation:
    """Results of the pre-contemplation installment step."""

    category_value: Decimal = Decimal("0")
    fund_pool_factor: Decimal = Decimal("1")
    effective_admin_rate: Decimal = Decimal("0")
    base_installment: Decimal = Decimal("0")
    front_load_each: Decimal = Decimal("0")
    insurance_monthly: Decimal = Decimal("0")
    installment_during_front_load: Decimal = Decimal("0")
    installment_after: Decimal = Decimal("0")
    months_paid: int = 0
    total_paid: Decimal = Decimal("0")


@dataclass
class BidValues:
    """Results of the bid resolution step."""

    offered_value: Decimal = Decimal("0")
    embedded_value: Decimal = Decimal("0")
    self_funded_value: Decimal = Decimal("0")
    reduced_credit: Decimal = Decimal("0")
    perceived_pct: Decimal = Decimal("0")
    embedded_clamped: bool = False


@dataclass
class PostContemplation:
    """Results of the post-contemplation schedule step."""

    payoff_balance: Decimal = Decimal("0")
    remaining_term: int = 1
    new_installment_unconstrained: Decimal = Decimal("0")
    limiter_installment: Decimal = Decimal("0")
    chosen_installment: Decimal = Decimal("0")
    limiter_applied: bool = False
    new_term: int = 1
    post_front_load_installments: int = 0
    second_installment_with_front_load: Decimal | None = None
    insurance_monthly: Decimal = Decimal("0")

    @property
    def chosen_installment_with_insurance(self) -> Decimal:
        return self.chosen_installment + self.insurance_monthly


@dataclass
class StatementEntry:
    """One line of the month-by-month statement."""

    month: int
    installment: Decimal
    balance_after: Decimal
    invested_total: Decimal
    bid_deducted: Decimal = Decimal("0")
    event: str | None = None


@dataclass
class SimulationContext:
    """
    Holds all intermediate state during a simulation.
    This is the "bag" that flows through the pipeline.
    """

    # Input (read-only snapshots)
    input: CalcInput
    table: RateTable
    preferences: CalcPreferences

    # Step results (populated as we go)
    rules: ResolvedRules = field(default_factory=ResolvedRules)
    pre: PreContemplation = field(default_factory=PreContemplation)
    bids: BidValues = field(default_factory=BidValues)
    post: PostContemplation = field(default_factory=PostContemplation)
    statement: list[StatementEntry] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


# =============================================================================
# OUTPUT / RESULT MODELS
# =============================================================================


@dataclass
class CalcResult:
    """Final output of a simulation."""

    computable: bool
    reason: str | None = None
    category_value: Decimal = Decimal("0")
    installment_during_front_load: Decimal = Decimal("0")
    installment_after: Decimal = Decimal("0")
    total_paid: Decimal = Decimal("0")
    offered_value: Decimal = Decimal("0")
    embedded_value: Decimal = Decimal("0")
    self_funded_value: Decimal = Decimal("0")
    perceived_pct: Decimal = Decimal("0")
    reduced_credit: Decimal = Decimal("0")
    payoff_balance: Decimal = Decimal("0")
    remaining_term: int = 0
    new_installment_unconstrained: Decimal = Decimal("0")
    limiter_installment: Decimal = Decimal("0")
    chosen_installment: Decimal = Decimal("0")
    chosen_installment_with_insurance: Decimal = Decimal("0")
    limiter_applied: bool = False
    new_term: int = 0
    post_front_load_installments: int = 0
    second_installment_with_front_load: Decimal | None = None
    rules: ResolvedRules | None = None
    pre: PreContemplation | None = None
    warnings: list[str] = field(default_factory=list)
    statement: list[StatementEntry] = field(default_factory=list)

    @classmethod
    def not_computable(cls, reason: str) -> "CalcResult":
        return cls(computable=False, reason=reason)
