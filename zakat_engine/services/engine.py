"""Zakat engine: combine category breakdowns with hawl and nisab.

A ZakatEngine is built from one snapshot of inputs, prices and rates and
recomputes everything on each calculate() call. It keeps no state between
calls and performs no I/O.
"""
import logging
from dataclasses import dataclass, field

from zakat_engine.constants import (
    CATEGORY_IDS,
    DEFAULT_ELIGIBILITY_POLICY,
    DEFAULT_HAWL_MET,
    DEFAULT_NISAB_BASIS,
    ELIGIBILITY_POLICIES,
    ZAKAT_RATE,
)
from zakat_engine.data.currencies import DEFAULT_CURRENCY, normalize_currency
from zakat_engine.errors import InvalidPolicy
from .calc import (
    CATEGORY_AGGREGATORS,
    CategoryBreakdown,
    PricingContext,
    normalize_category_id,
    parse_flag,
)
from .fx import RateTable
from .nisab import MetalPrices, NisabStatus, evaluate_both, lower_threshold, validate_threshold_type

logger = logging.getLogger(__name__)


def _parse_hawl(value) -> bool:
    if value is None:
        return DEFAULT_HAWL_MET
    return parse_flag(value)


@dataclass
class AssetCategoryInput:
    """Raw values for one category plus whether a lunar year has passed."""
    values: dict = field(default_factory=dict)
    hawl_met: bool = DEFAULT_HAWL_MET

    @classmethod
    def from_dict(cls, data) -> 'AssetCategoryInput':
        """Accept {'values': {...}, 'hawl_met': bool} or a bare values mapping."""
        if isinstance(data, AssetCategoryInput):
            return data
        if not isinstance(data, dict):
            return cls()
        hawl = data.get('hawl_met', data.get('hawlMet'))
        if 'values' in data:
            values = data.get('values')
        else:
            values = {k: v for k, v in data.items() if k not in ('hawl_met', 'hawlMet')}
        return cls(values=values if isinstance(values, dict) else {}, hawl_met=_parse_hawl(hawl))


@dataclass
class ZakatResult:
    currency: str
    total_assets: float
    raw_zakatable: float
    liabilities: float
    zakatable_amount: float
    zakat_due: float
    is_eligible: bool
    eligibility_reasons: list
    policy: str
    nisab_basis: str
    nisab: dict
    breakdown: dict
    hawl: dict

    def to_dict(self) -> dict:
        return {
            'currency': self.currency,
            'total_assets': round(self.total_assets, 2),
            'raw_zakatable': round(self.raw_zakatable, 2),
            'liabilities': round(self.liabilities, 2),
            'zakatable_amount': round(self.zakatable_amount, 2),
            'zakat_due': round(self.zakat_due, 2),
            'zakat_rate': ZAKAT_RATE,
            'is_eligible': self.is_eligible,
            'eligibility_reasons': list(self.eligibility_reasons),
            'policy': self.policy,
            'nisab_basis': self.nisab_basis,
            'nisab': {metal: status.to_dict() for metal, status in self.nisab.items()},
            'breakdown': {
                category_id: dict(b.to_dict(), hawl_met=self.hawl[category_id])
                for category_id, b in self.breakdown.items()
            },
        }


class ZakatEngine:
    """Calculate zakat for one snapshot of assets, prices and rates.

    Args:
        inputs: Mapping of category id -> AssetCategoryInput (or its dict form)
        metal_prices: Gold/silver prices per gram
        rate_table: Exchange rates used for any cross-currency value
        display_currency: Currency every output amount is expressed in
        nisab_basis: 'gold' or 'silver', the threshold the monetary pool is tested against
        eligibility_policy: 'either' or 'lower_of_two'
        include_uncertain_receivables: Count uncertain debts at 50%
    """

    def __init__(
        self,
        inputs: dict | None = None,
        metal_prices: MetalPrices | None = None,
        rate_table: RateTable | None = None,
        display_currency: str = DEFAULT_CURRENCY,
        nisab_basis: str = DEFAULT_NISAB_BASIS,
        eligibility_policy: str = DEFAULT_ELIGIBILITY_POLICY,
        include_uncertain_receivables: bool = False,
    ):
        if not isinstance(eligibility_policy, str) or eligibility_policy not in ELIGIBILITY_POLICIES:
            raise InvalidPolicy(
                f"Invalid eligibility policy: {eligibility_policy!r}. "
                f"Must be one of {', '.join(ELIGIBILITY_POLICIES)}"
            )
        self.nisab_basis = validate_threshold_type(nisab_basis)
        self.eligibility_policy = eligibility_policy
        self.inputs = {}
        for category_id, data in (inputs or {}).items():
            normalized = normalize_category_id(category_id)
            if normalized not in CATEGORY_AGGREGATORS:
                logger.warning(f"Ignoring unknown asset category {category_id!r}")
                continue
            self.inputs[normalized] = AssetCategoryInput.from_dict(data)
        self.pricing = PricingContext(
            display_currency=display_currency,
            metal_prices=metal_prices,
            rate_table=rate_table,
            include_uncertain_receivables=include_uncertain_receivables,
        )

    @property
    def display_currency(self) -> str:
        return self.pricing.display_currency

    def _input(self, category_id: str) -> AssetCategoryInput:
        return self.inputs.get(category_id) or AssetCategoryInput()

    def breakdown(self) -> dict[str, CategoryBreakdown]:
        """Per-category breakdowns before hawl is applied."""
        return {
            category_id: CATEGORY_AGGREGATORS[category_id](self._input(category_id).values, self.pricing)
            for category_id in CATEGORY_IDS
        }

    def nisab_status(self, value: float | None = None) -> dict[str, NisabStatus]:
        return evaluate_both(
            self.pricing.metal_prices,
            self.pricing.rate_table,
            self.display_currency,
            value,
        )

    def calculate(self) -> ZakatResult:
        breakdown = self.breakdown()
        hawl = {category_id: self._input(category_id).hawl_met for category_id in CATEGORY_IDS}

        total_assets = sum(b.total for b in breakdown.values())
        counted = {category_id: b for category_id, b in breakdown.items() if hawl[category_id]}
        raw_zakatable = sum(b.zakatable for b in counted.values())
        # Debts owed come off the hawl-met pool; the pool never goes negative
        liabilities = sum(b.deductions for b in counted.values())
        net_zakatable = max(0.0, raw_zakatable - liabilities)
        monetary_pool = max(0.0, sum(
            b.zakatable for category_id, b in counted.items() if category_id != 'precious_metals'
        ) - liabilities)

        statuses = self.nisab_status()
        reasons = []
        if self.eligibility_policy == 'lower_of_two':
            threshold = lower_threshold(statuses)
            is_eligible = threshold is not None and threshold.check(net_zakatable)
            if is_eligible:
                reasons.append(f'zakatable wealth meets the {threshold.threshold_type} nisab')
            statuses = {metal: s.with_value(net_zakatable) for metal, s in statuses.items()}
        else:
            metals = counted.get('precious_metals')
            metals_eligible = bool(metals and metals.meets_nisab_individually)
            if metals_eligible:
                reasons.append('precious metals meet nisab by weight')
            pool_eligible = statuses[self.nisab_basis].check(monetary_pool)
            if pool_eligible:
                reasons.append(f'monetary assets meet the {self.nisab_basis} nisab')
            is_eligible = metals_eligible or pool_eligible
            statuses = {metal: s.with_value(monetary_pool) for metal, s in statuses.items()}

        if not any(s.is_available for s in statuses.values()):
            logger.warning(f"No nisab threshold available in {self.display_currency}")

        zakatable_amount = net_zakatable if is_eligible else 0.0
        zakat_due = zakatable_amount * ZAKAT_RATE

        logger.info(
            f"Zakat calculated: eligible={is_eligible} zakatable={zakatable_amount:.2f} "
            f"due={zakat_due:.2f} {self.display_currency} (policy={self.eligibility_policy})"
        )

        return ZakatResult(
            currency=self.display_currency,
            total_assets=total_assets,
            raw_zakatable=raw_zakatable,
            liabilities=liabilities,
            zakatable_amount=zakatable_amount,
            zakat_due=zakat_due,
            is_eligible=is_eligible,
            eligibility_reasons=reasons,
            policy=self.eligibility_policy,
            nisab_basis=self.nisab_basis,
            nisab=statuses,
            breakdown=breakdown,
            hawl=hawl,
        )


def calculate_zakat(
    inputs: dict | None,
    metal_prices: MetalPrices | dict | None = None,
    rate_table: RateTable | dict | None = None,
    display_currency: str = DEFAULT_CURRENCY,
    nisab_basis: str = DEFAULT_NISAB_BASIS,
    eligibility_policy: str = DEFAULT_ELIGIBILITY_POLICY,
    include_uncertain_receivables: bool = False,
) -> dict:
    """Convenience wrapper returning the result as a plain dict."""
    if isinstance(metal_prices, dict):
        metal_prices = MetalPrices.from_dict(metal_prices)
    if isinstance(rate_table, dict):
        rate_table = RateTable.from_dict(rate_table)
    engine = ZakatEngine(
        inputs,
        metal_prices=metal_prices,
        rate_table=rate_table,
        display_currency=normalize_currency(display_currency) or DEFAULT_CURRENCY,
        nisab_basis=nisab_basis,
        eligibility_policy=eligibility_policy,
        include_uncertain_receivables=include_uncertain_receivables,
    )
    return engine.calculate().to_dict()
