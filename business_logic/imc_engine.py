"""
IMC Budget & Feasibility Engine.

Public entry points combining the mode calculator, feasibility assessor and
channel allocator into the results callers consume. The engine performs no
I/O and keeps no state between calls, so one instance can serve any number
of concurrent requests.
"""

import logging
from typing import Optional

from models.data_models import (
    AssetChecklist, BudgetDistribution, CalculatedMetrics, CampaignFocus,
    IMCInput, IMCReport, PlanningMode
)
from .benchmarks import BenchmarkTable, DEFAULT_BENCHMARKS
from .channel_allocator import ChannelAllocator
from .mode_calculator import ModeCalculator
from .plan_validator import InputValidator

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class IMCEngine:
    """Stateless facade over the IMC calculation components."""

    def __init__(self, benchmarks: Optional[BenchmarkTable] = None):
        """
        Initialize the engine.

        Args:
            benchmarks: Benchmark table to calculate with (defaults to the built-in one)
        """
        self.benchmarks = benchmarks or DEFAULT_BENCHMARKS
        self.validator = InputValidator(self.benchmarks)
        self.calculator = ModeCalculator(self.benchmarks)
        self.allocator = ChannelAllocator(self.benchmarks)

    def compute_metrics(self, imc_input: IMCInput) -> CalculatedMetrics:
        """
        Funnel forecast and feasibility verdict for an input.

        Raises:
            ValidationError: If the input is incomplete for its planning mode
        """
        return self.calculator.calculate(imc_input)

    def compute_distribution(self,
                             total_budget: float,
                             campaign_focus: CampaignFocus,
                             industry: str = "",
                             assets: Optional[AssetChecklist] = None) -> BudgetDistribution:
        """
        Channel allocation for a full campaign budget.

        Callers are expected to have applied the minimum-budget gate
        (``validate_total_budget``) first.
        """
        return self.allocator.allocate(total_budget, campaign_focus, industry, assets)

    def validate_total_budget(self, total_budget: float) -> float:
        """Reject budgets below the IMC minimum."""
        return self.validator.validate_total_budget(total_budget)

    def effective_budget(self, metrics: CalculatedMetrics) -> float:
        """
        Budget a full plan is allocated from.

        The supplied budget for Budget-Driven and Audit; the computed
        required budget for Goal-Driven.
        """
        if metrics.planning_mode == PlanningMode.AUDIT and metrics.audit is not None:
            return metrics.audit.achievable.total_budget
        return metrics.total_budget

    def build_report(self, imc_input: IMCInput, include_distribution: bool = True) -> IMCReport:
        """
        Compute metrics and, for a full plan, the channel distribution.

        Args:
            imc_input: Campaign inputs
            include_distribution: Whether a full plan (with allocation) is requested

        Returns:
            IMCReport with metrics and optional distribution

        Raises:
            ValidationError: For invalid input or a budget below the minimum
        """
        metrics = self.compute_metrics(imc_input)
        if not include_distribution:
            return IMCReport(metrics=metrics)

        total_budget = self.validate_total_budget(self.effective_budget(metrics))
        distribution = self.compute_distribution(
            total_budget,
            imc_input.campaign_focus,
            imc_input.industry,
            imc_input.asset_checklist
        )

        logger.info(
            f"Report built: {metrics.planning_mode.value}, risk {metrics.feasibility.risk_level.value}, "
            f"{len(distribution.channels)} channels"
        )
        return IMCReport(metrics=metrics, distribution=distribution)


# Default engine with the built-in benchmarks
default_engine = IMCEngine()


def compute_metrics(imc_input: IMCInput) -> CalculatedMetrics:
    return default_engine.compute_metrics(imc_input)


def compute_distribution(total_budget: float,
                         campaign_focus: CampaignFocus,
                         industry: str = "",
                         assets: Optional[AssetChecklist] = None) -> BudgetDistribution:
    return default_engine.compute_distribution(total_budget, campaign_focus, industry, assets)
