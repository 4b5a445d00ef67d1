"""
Feasibility assessment for implied ROAS values.

Thresholds are evaluated high to low with strict comparisons, so a value
sitting exactly on a threshold belongs to the lower (safer) tier.
"""

import logging
from typing import Optional

from models.data_models import FeasibilityResult, RiskLevel
from .benchmarks import BenchmarkTable, DEFAULT_BENCHMARKS

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class FeasibilityAssessor:
    """Classifies an implied ROAS into a risk tier with guidance text."""

    def __init__(self, benchmarks: Optional[BenchmarkTable] = None):
        self.benchmarks = benchmarks or DEFAULT_BENCHMARKS

    def assess(self, roas: float) -> FeasibilityResult:
        """
        Classify an implied ROAS.

        Args:
            roas: Implied return on ad spend (revenue / budget)

        Returns:
            FeasibilityResult with risk tier, message and recommendation
        """
        b = self.benchmarks

        if roas > b.impossible_roas:
            result = FeasibilityResult(
                is_feasible=False,
                implied_roas=roas,
                risk_level=RiskLevel.IMPOSSIBLE,
                warning_message=(
                    f"Impossible target: ROAS {roas:.1f}x is above {b.impossible_roas:.1f}x, "
                    f"which no realistic campaign reaches."
                ),
                recommendation="Raise the budget or lower the revenue target before creating a plan."
            )
        elif roas > b.optimistic_max_roas:
            result = FeasibilityResult(
                is_feasible=False,
                implied_roas=roas,
                risk_level=RiskLevel.HIGH,
                warning_message=(
                    f"High risk: ROAS {roas:.1f}x exceeds the optimistic ceiling of "
                    f"{b.optimistic_max_roas:.1f}x."
                ),
                recommendation="Increase the budget or phase the revenue target over a longer timeline."
            )
        elif roas > b.realistic_max_roas:
            result = FeasibilityResult(
                is_feasible=True,
                implied_roas=roas,
                risk_level=RiskLevel.MEDIUM,
                warning_message=(
                    f"Challenging: ROAS {roas:.1f}x is above the realistic range "
                    f"(up to {b.realistic_max_roas:.1f}x). Strong creative and tight optimization needed."
                ),
                recommendation="Keep a contingency budget and track conversion rate weekly."
            )
        else:
            result = FeasibilityResult(
                is_feasible=True,
                implied_roas=roas,
                risk_level=RiskLevel.LOW,
                warning_message=f"Healthy plan: ROAS {roas:.1f}x is within the realistic range."
            )

        if not result.is_feasible:
            logger.warning(f"ROAS {roas:.2f}x assessed as {result.risk_level.value}")
        return result


def assess(roas: float, benchmarks: Optional[BenchmarkTable] = None) -> FeasibilityResult:
    """Assess ``roas`` against the given (or default) thresholds."""
    return FeasibilityAssessor(benchmarks).assess(roas)
