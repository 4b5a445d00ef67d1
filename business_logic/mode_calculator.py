"""
Funnel forecast strategies for the three planning modes.

Budget-Driven turns a budget into traffic, orders and revenue. Goal-Driven
inverts the funnel to find the budget a revenue target needs. Audit runs
both and compares them.
"""

import logging
import math
from dataclasses import replace
from typing import Optional, Tuple

from models.data_models import (
    AssetChecklist, AuditDetails, CalculatedMetrics, CampaignFocus, IMCInput,
    PlanningMode, RiskLevel
)
from .benchmarks import BenchmarkTable, DEFAULT_BENCHMARKS, within_tier
from .feasibility import FeasibilityAssessor
from .formatting import format_vnd
from .plan_validator import InputValidator, ValidationError

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Absorbs float noise such as 8750 * 0.02 == 175.00000000000003
_EPSILON = 1e-9


def _floor(value: float) -> int:
    return math.floor(value + _EPSILON)


def _ceil(value: float) -> int:
    return math.ceil(value - _EPSILON)


class ModeCalculator:
    """
    Converts campaign inputs into a funnel forecast.

    Each strategy is a pure function of its arguments and the benchmark
    table; the calculator keeps no state between calls.
    """

    def __init__(self, benchmarks: Optional[BenchmarkTable] = None):
        self.benchmarks = benchmarks or DEFAULT_BENCHMARKS
        self.assessor = FeasibilityAssessor(self.benchmarks)
        self.validator = InputValidator(self.benchmarks)

    def calculate(self, imc_input: IMCInput) -> CalculatedMetrics:
        """
        Pick the strategy for ``imc_input.planning_mode`` and run it.

        Raises:
            ValidationError: If the input is missing what the mode needs
        """
        self.validator.validate_input(imc_input)
        mode = PlanningMode(imc_input.planning_mode)
        assets = imc_input.asset_checklist

        if mode == PlanningMode.BUDGET_DRIVEN:
            return self.calculate_from_budget(
                imc_input.budget, imc_input.product_price, imc_input.campaign_focus, assets)
        if mode == PlanningMode.GOAL_DRIVEN:
            return self.calculate_from_target(
                imc_input.revenue_target, imc_input.product_price, imc_input.campaign_focus, assets)
        return self.audit_plan(
            imc_input.budget, imc_input.revenue_target, imc_input.product_price,
            imc_input.campaign_focus, assets)

    def calculate_from_budget(self,
                              budget: float,
                              product_price: float,
                              campaign_focus: CampaignFocus,
                              assets: Optional[AssetChecklist] = None) -> CalculatedMetrics:
        """
        Forecast what a budget can realistically deliver.

        Args:
            budget: Total campaign budget
            product_price: Average order value
            campaign_focus: BRANDING or CONVERSION
            assets: Asset checklist (defaults to all assets present)

        Returns:
            CalculatedMetrics with implied_roas = revenue / budget
        """
        focus = self._focus(campaign_focus)
        assets = assets or AssetChecklist()
        b = self.benchmarks

        ratio = b.production_ratio(budget, assets.has_creative_assets)
        production_budget, media_spend = self._split_budget(budget, ratio)

        estimated_traffic = _floor(media_spend / b.cost_per_click)
        estimated_orders = _floor(estimated_traffic * b.conversion_rate(focus))
        estimated_revenue = estimated_orders * product_price
        implied_roas = estimated_revenue / budget

        logger.info(
            f"Budget-driven forecast: {format_vnd(budget)} -> {estimated_orders} orders, "
            f"ROAS {implied_roas:.2f}x"
        )

        return CalculatedMetrics(
            planning_mode=PlanningMode.BUDGET_DRIVEN,
            campaign_focus=focus,
            total_budget=budget,
            media_spend=media_spend,
            production_budget=production_budget,
            production_ratio=ratio,
            estimated_traffic=estimated_traffic,
            estimated_orders=estimated_orders,
            estimated_revenue=estimated_revenue,
            implied_roas=implied_roas,
            benchmark_roas=b.benchmark_roas(focus),
            feasibility=self.assessor.assess(implied_roas)
        )

    def calculate_from_target(self,
                              revenue_target: float,
                              product_price: float,
                              campaign_focus: CampaignFocus,
                              assets: Optional[AssetChecklist] = None) -> CalculatedMetrics:
        """
        Work out the budget a revenue target requires.

        The funnel is inverted to a required media spend, then grossed up for
        production. The minimum production floor is applied after the first
        estimate; flooring first would under-fund media.

        Args:
            revenue_target: Revenue the campaign must generate
            product_price: Average order value
            campaign_focus: BRANDING or CONVERSION
            assets: Asset checklist (defaults to all assets present)

        Returns:
            CalculatedMetrics for the required budget
        """
        focus = self._focus(campaign_focus)
        assets = assets or AssetChecklist()
        b = self.benchmarks

        required_orders = _ceil(revenue_target / product_price)
        required_traffic = _ceil(required_orders / b.conversion_rate(focus))
        media_spend = required_traffic * b.cost_per_click

        total_budget, ratio = self._gross_up(media_spend, assets.has_creative_assets)
        production_budget = total_budget - media_spend
        if production_budget < b.min_production_budget:
            total_budget = media_spend + b.min_production_budget
            production_budget = b.min_production_budget

        estimated_revenue = required_orders * product_price
        implied_roas = estimated_revenue / total_budget

        logger.info(
            f"Goal-driven forecast: {format_vnd(revenue_target)} target needs "
            f"{format_vnd(total_budget)} budget"
        )

        return CalculatedMetrics(
            planning_mode=PlanningMode.GOAL_DRIVEN,
            campaign_focus=focus,
            total_budget=total_budget,
            media_spend=media_spend,
            production_budget=production_budget,
            production_ratio=ratio,
            estimated_traffic=required_traffic,
            estimated_orders=required_orders,
            estimated_revenue=estimated_revenue,
            implied_roas=implied_roas,
            benchmark_roas=b.benchmark_roas(focus),
            feasibility=self.assessor.assess(implied_roas)
        )

    def audit_plan(self,
                   budget: float,
                   revenue_target: float,
                   product_price: float,
                   campaign_focus: CampaignFocus,
                   assets: Optional[AssetChecklist] = None) -> CalculatedMetrics:
        """
        Check whether a budget can plausibly hit a revenue target.

        The returned funnel is what the budget buys; implied_roas is the
        direct ratio target / budget, and the audit details carry both
        sub-results and the gaps.
        """
        focus = self._focus(campaign_focus)
        achievable = self.calculate_from_budget(budget, product_price, focus, assets)
        required = self.calculate_from_target(revenue_target, product_price, focus, assets)

        implied_roas = revenue_target / budget
        budget_gap = max(required.total_budget - budget, 0.0)
        revenue_gap = max(revenue_target - achievable.estimated_revenue, 0.0)

        feasibility = self.assessor.assess(implied_roas)
        recommendation = self._audit_recommendation(
            feasibility.risk_level, budget, required.total_budget,
            achievable.estimated_revenue, budget_gap, feasibility.recommendation)
        feasibility = replace(feasibility, recommendation=recommendation)

        logger.info(
            f"Audit: {format_vnd(budget)} budget vs {format_vnd(revenue_target)} target, "
            f"ROAS {implied_roas:.1f}x ({feasibility.risk_level.value})"
        )

        return CalculatedMetrics(
            planning_mode=PlanningMode.AUDIT,
            campaign_focus=focus,
            total_budget=achievable.total_budget,
            media_spend=achievable.media_spend,
            production_budget=achievable.production_budget,
            production_ratio=achievable.production_ratio,
            estimated_traffic=achievable.estimated_traffic,
            estimated_orders=achievable.estimated_orders,
            estimated_revenue=achievable.estimated_revenue,
            implied_roas=implied_roas,
            benchmark_roas=achievable.benchmark_roas,
            feasibility=feasibility,
            audit=AuditDetails(
                achievable=achievable,
                required=required,
                budget_gap=budget_gap,
                revenue_gap=revenue_gap
            )
        )

    def _audit_recommendation(self,
                              risk_level: RiskLevel,
                              budget: float,
                              required_budget: float,
                              achievable_revenue: float,
                              budget_gap: float,
                              default: Optional[str]) -> Optional[str]:
        if risk_level == RiskLevel.IMPOSSIBLE:
            return (
                f"Raise the budget to about {format_vnd(required_budget)} VND to reach the target, "
                f"or lower the target to about {format_vnd(achievable_revenue)} VND, "
                f"which the current {format_vnd(budget)} VND budget can deliver."
            )
        if risk_level == RiskLevel.HIGH:
            return (
                f"Increase the budget by at least {format_vnd(budget_gap / 2)} VND (half of the "
                f"{format_vnd(budget_gap)} VND gap) and extend the timeline to reduce risk."
            )
        return default

    def _split_budget(self, budget: float, ratio: float) -> Tuple[float, float]:
        """Production budget (floored at the minimum, never above budget) and media spend."""
        production_budget = max(budget * ratio, self.benchmarks.min_production_budget)
        production_budget = min(production_budget, budget)
        return production_budget, budget - production_budget

    def _gross_up(self, media_spend: float, has_creative_assets: bool) -> Tuple[float, float]:
        """
        Smallest whole-VND budget whose budget-driven media spend covers ``media_spend``.

        Budget tiers are walked from small to large. Where the tier ratios
        leave a gap (no budget in a tier yields exactly this media spend),
        the budget is lifted to the smallest whole-VND budget of the tier.
        """
        b = self.benchmarks
        smallest_in_tier = 0.0
        ratio = b.adjusted_ratio(b.budget_tiers[-1][1], has_creative_assets)
        for upper_bound, tier_ratio, inclusive in b.budget_tiers:
            ratio = b.adjusted_ratio(tier_ratio, has_creative_assets)
            total = media_spend / (1 - ratio)
            if within_tier(total, upper_bound, inclusive):
                return float(_ceil(max(total, smallest_in_tier))), ratio
            smallest_in_tier = upper_bound + 1 if inclusive else upper_bound
        return float(_ceil(media_spend / (1 - ratio))), ratio

    def _focus(self, campaign_focus) -> CampaignFocus:
        try:
            return CampaignFocus(campaign_focus)
        except ValueError:
            raise ValidationError(f"Unknown campaign focus: {campaign_focus}", 'campaign_focus')
