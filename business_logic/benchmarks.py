"""
Benchmark reference data for the IMC budget engine.

Every constant here is a fixed domain heuristic for the Vietnamese market
(all money in VND). ``BenchmarkTable`` is read-only for the lifetime of the
process; alternative tables can be built with ``dataclasses.replace`` or
loaded from a workbook (see ``data.parsers.BenchmarkCardParser``) and
injected into the engine.
"""

from dataclasses import dataclass, field
from typing import Dict, Tuple

from models.data_models import CampaignFocus, Channel


# (upper bound of total budget, production ratio, whether the bound belongs to the tier)
DEFAULT_BUDGET_TIERS: Tuple[Tuple[float, float, bool], ...] = (
    (50_000_000, 0.30, True),
    (100_000_000, 0.25, False),
    (float('inf'), 0.15, False),
)

DEFAULT_CONVERSION_RATES: Dict[CampaignFocus, float] = {
    CampaignFocus.BRANDING: 0.01,
    CampaignFocus.CONVERSION: 0.02,
}

DEFAULT_BASE_ROAS: Dict[CampaignFocus, float] = {
    CampaignFocus.BRANDING: 1.5,
    CampaignFocus.CONVERSION: 3.0,
}

# Cost of one KPI unit: click, 1,000 impressions, message, send, reached
# person or tracked visit depending on the channel's KPI kind.
DEFAULT_CHANNEL_UNIT_COSTS: Dict[Channel, float] = {
    Channel.GOOGLE_SEARCH: 5_000,
    Channel.META_CONVERSION: 4_000,
    Channel.RETARGETING: 3_000,
    Channel.TIKTOK_SHOP: 2_500,
    Channel.TIKTOK_REACH: 15_000,
    Channel.META_REACH: 20_000,
    Channel.YOUTUBE: 30_000,
    Channel.KOL: 200,
    Channel.KOC_REVIEW: 150,
    Channel.PR: 100,
    Channel.EMAIL: 100,
    Channel.ZALO_SMS: 500,
    Channel.LANDING_PAGE: 1_000,
}

# Typical share of a channel's budget that goes to production, not media.
DEFAULT_CHANNEL_PRODUCTION_RATIOS: Dict[Channel, float] = {
    Channel.GOOGLE_SEARCH: 0.10,
    Channel.META_CONVERSION: 0.20,
    Channel.RETARGETING: 0.10,
    Channel.TIKTOK_SHOP: 0.30,
    Channel.TIKTOK_REACH: 0.30,
    Channel.META_REACH: 0.20,
    Channel.YOUTUBE: 0.35,
    Channel.KOL: 0.40,
    Channel.KOC_REVIEW: 0.40,
    Channel.PR: 0.25,
    Channel.EMAIL: 0.15,
    Channel.ZALO_SMS: 0.05,
    Channel.LANDING_PAGE: 0.50,
}


@dataclass(frozen=True)
class BenchmarkTable:
    """Static benchmarks consumed by the mode calculator and the allocator."""
    cost_per_click: float = 4_000
    conversion_rates: Dict[CampaignFocus, float] = field(
        default_factory=lambda: dict(DEFAULT_CONVERSION_RATES))
    base_roas: Dict[CampaignFocus, float] = field(
        default_factory=lambda: dict(DEFAULT_BASE_ROAS))
    budget_tiers: Tuple[Tuple[float, float, bool], ...] = DEFAULT_BUDGET_TIERS
    missing_creative_uplift: float = 0.10
    max_production_ratio: float = 0.40
    min_production_budget: float = 5_000_000
    min_total_budget: float = 50_000_000
    min_channel_budget: float = 2_000_000
    realistic_max_roas: float = 5.0
    optimistic_max_roas: float = 8.0
    impossible_roas: float = 10.0
    channel_unit_costs: Dict[Channel, float] = field(
        default_factory=lambda: dict(DEFAULT_CHANNEL_UNIT_COSTS))
    channel_production_ratios: Dict[Channel, float] = field(
        default_factory=lambda: dict(DEFAULT_CHANNEL_PRODUCTION_RATIOS))

    def conversion_rate(self, focus: CampaignFocus) -> float:
        return self.conversion_rates[CampaignFocus(focus)]

    def benchmark_roas(self, focus: CampaignFocus) -> float:
        return self.base_roas[CampaignFocus(focus)]

    def tier_ratio(self, total_budget: float) -> float:
        """Production ratio of the budget tier ``total_budget`` falls into."""
        for upper_bound, ratio, inclusive in self.budget_tiers:
            if within_tier(total_budget, upper_bound, inclusive):
                return ratio
        return self.budget_tiers[-1][1]

    def production_ratio(self, total_budget: float, has_creative_assets: bool = True) -> float:
        """
        Campaign-level production ratio for a full campaign budget.

        Without ready creative assets the tier ratio is raised, capped at
        ``max_production_ratio``.
        """
        return self.adjusted_ratio(self.tier_ratio(total_budget), has_creative_assets)

    def adjusted_ratio(self, ratio: float, has_creative_assets: bool = True) -> float:
        if not has_creative_assets:
            ratio += self.missing_creative_uplift
        return round(min(ratio, self.max_production_ratio), 4)


def within_tier(total_budget: float, upper_bound: float, inclusive: bool) -> bool:
    """Whether a budget sits below a tier's upper bound (or on it, for inclusive bounds)."""
    if inclusive:
        return total_budget <= upper_bound
    return total_budget < upper_bound


DEFAULT_BENCHMARKS = BenchmarkTable()
