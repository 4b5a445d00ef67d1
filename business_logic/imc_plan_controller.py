"""
IMC Plan Controller - Orchestrates the IMC planning workflow.

Connects the calculation engine, the narrative generator and the plan
store behind one interface the UI calls. Every public method returns a
tuple ending in a user notification (or None), so the UI never handles
raw exceptions.
"""

import logging
from dataclasses import replace
from typing import Dict, List, Optional, Any, Tuple

from models.data_models import IMCInput, IMCPlan, IMCReport, RiskLevel
from config.settings import config_manager
from data.parsers import BenchmarkCardParser
from data.plan_store import PlanStore
from .benchmarks import BenchmarkTable, DEFAULT_BENCHMARKS
from .imc_engine import IMCEngine
from .narrative_generator import IMCNarrativeGenerator, NarrativeGenerationError
from .plan_validator import InputValidator, ValidationError
from .error_handler import error_handler, ErrorInfo, ErrorSeverity, ErrorCategory

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

Notification = Optional[Dict[str, Any]]


class IMCPlanController:
    """
    Main controller for the IMC planning workflow.

    The narrative generator is created on first use so that previews work
    without an OpenAI key.
    """

    def __init__(self,
                 benchmarks: Optional[BenchmarkTable] = None,
                 plan_store: Optional[PlanStore] = None,
                 narrative_generator: Optional[IMCNarrativeGenerator] = None):
        """
        Initialize the controller.

        Args:
            benchmarks: Benchmark table (defaults to the configured one)
            plan_store: Plan store (defaults to PLANS_DIR)
            narrative_generator: Narrative generator (created lazily when omitted)
        """
        self.benchmark_notification: Notification = None
        self.benchmarks = benchmarks or self._load_benchmarks()
        self.engine = IMCEngine(self.benchmarks)
        self.input_validator = InputValidator(self.benchmarks)
        self.plan_store = plan_store or PlanStore(config_manager.get_plans_dir())
        self._narrative_generator = narrative_generator

        logger.info("IMCPlanController initialized")

    def _load_benchmarks(self) -> BenchmarkTable:
        """Built-in benchmarks with configured overrides and the optional benchmark card."""
        config = config_manager.load_config()
        base = replace(DEFAULT_BENCHMARKS, min_total_budget=float(config.min_total_budget))
        if not config.benchmark_file:
            return base

        try:
            return BenchmarkCardParser(config.benchmark_file).load_benchmarks(base)
        except Exception as e:
            error_info = error_handler.classify_error(e, "benchmark card loading")
            error_handler.log_error(error_info, "Benchmark card")
            self.benchmark_notification = error_handler.create_user_notification(error_info)
            return base

    @property
    def narrative_generator(self) -> IMCNarrativeGenerator:
        if self._narrative_generator is None:
            self._narrative_generator = IMCNarrativeGenerator()
        return self._narrative_generator

    def parse_input(self, form_data: Dict[str, Any]) -> Tuple[bool, Optional[IMCInput], Notification]:
        """Turn raw form values into a validated IMCInput."""
        try:
            return True, self.input_validator.parse_form_data(form_data), None
        except ValidationError as e:
            return False, None, self._notify(e, "input parsing")

    def preview(self, imc_input: IMCInput,
                include_distribution: bool = True) -> Tuple[bool, Optional[IMCReport], str, Notification]:
        """
        Calculate metrics and (optionally) the channel split.

        A budget below the IMC minimum still returns the metrics, with the
        distribution omitted and a warning notification explaining why.

        Returns:
            Tuple of (success, report, status message, user_notification)
        """
        try:
            report = self.engine.build_report(imc_input, include_distribution)
            return True, report, self._status_message(report), None
        except ValidationError as e:
            if e.field == 'total_budget':
                try:
                    metrics = self.engine.compute_metrics(imc_input)
                except ValidationError:
                    return False, None, str(e), self._notify(e, "preview")
                return True, IMCReport(metrics=metrics), str(e), self._notify(e, "preview")
            return False, None, str(e), self._notify(e, "preview")

    def generate_plan(self, brand: str, product: str,
                      imc_input: IMCInput) -> Tuple[bool, Optional[IMCPlan], str, Notification]:
        """
        Calculate the full report and write the narrative plan around it.

        Plans are refused when the budget is below the minimum or the
        target is assessed as IMPOSSIBLE.

        Returns:
            Tuple of (success, plan, status message, user_notification)
        """
        if not brand or not brand.strip():
            e = ValidationError("Brand name is required", 'brand')
            return False, None, str(e), self._notify(e, "plan generation")

        try:
            report = self.engine.build_report(imc_input)
        except ValidationError as e:
            return False, None, str(e), self._notify(e, "plan generation")

        feasibility = report.metrics.feasibility
        if feasibility.risk_level == RiskLevel.IMPOSSIBLE:
            error_info = ErrorInfo(
                category=ErrorCategory.VALIDATION_ERROR,
                severity=ErrorSeverity.ERROR,
                message=f"Plan refused: {feasibility.warning_message}",
                user_message=feasibility.warning_message,
                suggested_action=feasibility.recommendation,
                retry_possible=False
            )
            error_handler.log_error(error_info, "Plan generation")
            return False, None, error_info.user_message, error_handler.create_user_notification(error_info)

        try:
            plan = self.narrative_generator.generate_plan(brand.strip(), product.strip(), imc_input, report)
        except (NarrativeGenerationError, ValueError) as e:
            error_info = error_handler.classify_error(e, "narrative generation")
            error_info.user_message = str(e)
            error_handler.log_error(error_info, "Plan generation")
            return False, None, error_info.user_message, error_handler.create_user_notification(error_info)

        message = f"Generated plan '{plan.campaign_name}'"
        if plan.validation_warnings:
            message += f" with {len(plan.validation_warnings)} warning(s)"
        return True, plan, message, None

    def save_plan(self, plan: IMCPlan) -> Tuple[bool, str, Notification]:
        try:
            self.plan_store.save_plan(plan)
            return True, f"Saved plan '{plan.campaign_name}'", None
        except (OSError, ValueError) as e:
            return False, "Plan could not be saved", self._notify(e, "plan storage")

    def get_plans(self) -> Tuple[List[IMCPlan], Notification]:
        try:
            return self.plan_store.get_plans(), None
        except OSError as e:
            return [], self._notify(e, "plan storage")

    def delete_plan(self, plan_id: str) -> Tuple[bool, str, Notification]:
        try:
            if self.plan_store.delete_plan(plan_id):
                return True, "Plan deleted", None
            return False, "Plan not found", None
        except (OSError, ValueError) as e:
            return False, "Plan could not be deleted", self._notify(e, "plan storage")

    def _notify(self, error: Exception, context: str) -> Dict[str, Any]:
        error_info = error_handler.classify_error(error, context)
        error_handler.log_error(error_info, context)
        return error_handler.create_user_notification(error_info)

    def _status_message(self, report: IMCReport) -> str:
        metrics = report.metrics
        message = (
            f"{metrics.planning_mode.value}: ROAS {metrics.implied_roas:.2f}x "
            f"({metrics.feasibility.risk_level.value})"
        )
        if report.distribution is not None:
            message += f", {len(report.distribution.channels)} channels"
        return message
