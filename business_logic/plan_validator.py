"""
Input validation and narrative plan parsing.

This module rejects caller-correctable inputs before any computation runs,
applies the minimum-budget gate, and parses/validates the JSON plans the
narrative generator receives from the AI model.
"""

import logging
import json
import re
from typing import Dict, List, Optional, Any, Tuple, Union
from dataclasses import dataclass
from enum import Enum

from models.data_models import (
    AssetChecklist, BudgetDistribution, CampaignFocus, IMCExecutionPhase,
    IMCInput, Phase, PlanningMode
)
from .benchmarks import BenchmarkTable, DEFAULT_BENCHMARKS
from .formatting import format_vnd

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

TRUE_STRINGS = ('true', '1', 'yes', 'y', 'on')
FALSE_STRINGS = ('false', '0', 'no', 'n', 'off', '')


class ValidationError(Exception):
    """Raised for caller-correctable input problems."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class ValidationSeverity(Enum):
    """Severity levels for validation issues."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass
class ValidationIssue:
    """Represents a validation issue found while checking a narrative plan."""
    severity: ValidationSeverity
    message: str
    field: Optional[str] = None
    phase_index: Optional[int] = None


@dataclass
class ValidationResult:
    """Result of narrative plan validation."""
    is_valid: bool
    issues: List[ValidationIssue]
    plan_data: Optional[Dict[str, Any]]
    phases: List[IMCExecutionPhase]
    total_errors: int
    total_warnings: int

    @property
    def warning_messages(self) -> List[str]:
        return [issue.message for issue in self.issues
                if issue.severity == ValidationSeverity.WARNING]


class InputValidator:
    """
    Validates campaign inputs before the engine runs.

    Every failure raises ``ValidationError`` immediately; no partial
    computation happens on invalid input.
    """

    def __init__(self, benchmarks: Optional[BenchmarkTable] = None):
        self.benchmarks = benchmarks or DEFAULT_BENCHMARKS

    def validate_input(self, imc_input: IMCInput) -> IMCInput:
        """
        Check an IMCInput against the planning-mode requirements.

        Args:
            imc_input: Campaign inputs

        Returns:
            The same input, for chaining

        Raises:
            ValidationError: If the input cannot be calculated
        """
        try:
            mode = PlanningMode(imc_input.planning_mode)
        except ValueError:
            raise ValidationError(f"Unknown planning mode: {imc_input.planning_mode}", 'planning_mode')

        try:
            CampaignFocus(imc_input.campaign_focus)
        except ValueError:
            raise ValidationError(
                f"Unknown campaign focus: {imc_input.campaign_focus}. "
                f"Expected one of: {', '.join(f.value for f in CampaignFocus)}",
                'campaign_focus'
            )

        if imc_input.product_price is None or imc_input.product_price <= 0:
            raise ValidationError("Product price must be greater than zero", 'product_price')

        if imc_input.timeline_weeks is None or imc_input.timeline_weeks <= 0:
            raise ValidationError("Timeline must be at least one week", 'timeline_weeks')

        needs_budget = mode in (PlanningMode.BUDGET_DRIVEN, PlanningMode.AUDIT)
        needs_target = mode in (PlanningMode.GOAL_DRIVEN, PlanningMode.AUDIT)

        if needs_budget and imc_input.budget is None:
            raise ValidationError(f"A budget is required for {mode.value} planning", 'budget')
        if needs_target and imc_input.revenue_target is None:
            raise ValidationError(f"A revenue target is required for {mode.value} planning", 'revenue_target')

        if imc_input.budget is not None and imc_input.budget <= 0:
            raise ValidationError("Budget must be greater than zero", 'budget')
        if imc_input.revenue_target is not None and imc_input.revenue_target <= 0:
            raise ValidationError("Revenue target must be greater than zero", 'revenue_target')

        return imc_input

    def validate_total_budget(self, total_budget: float) -> float:
        """
        Minimum-budget gate applied before a full plan is allocated.

        Raises:
            ValidationError: If the budget is below the IMC minimum
        """
        minimum = self.benchmarks.min_total_budget
        if total_budget < minimum:
            raise ValidationError(
                f"Minimum budget for an integrated IMC campaign is {format_vnd(minimum)} VND "
                f"(got {format_vnd(total_budget)} VND). IMC needs several channels working together.",
                'total_budget'
            )
        return total_budget

    def parse_form_data(self, form_data: Dict[str, Any]) -> IMCInput:
        """
        Build an IMCInput from loosely typed form values.

        Empty strings and zero amounts for budget/target are treated as
        "not provided", matching how the planner form leaves them blank.

        Raises:
            ValidationError: For non-numeric amounts, unknown enum values or
                unrecognised yes/no values
        """
        try:
            mode = PlanningMode(str(form_data.get('planning_mode', PlanningMode.BUDGET_DRIVEN.value)).upper())
        except ValueError:
            raise ValidationError(f"Unknown planning mode: {form_data.get('planning_mode')}", 'planning_mode')

        try:
            focus = CampaignFocus(str(form_data.get('campaign_focus', CampaignFocus.CONVERSION.value)).upper())
        except ValueError:
            raise ValidationError(f"Unknown campaign focus: {form_data.get('campaign_focus')}", 'campaign_focus')

        assets = AssetChecklist(
            has_website=self._parse_flag(form_data.get('has_website'), 'has_website'),
            has_customer_list=self._parse_flag(form_data.get('has_customer_list'), 'has_customer_list'),
            has_creative_assets=self._parse_flag(form_data.get('has_creative_assets'), 'has_creative_assets')
        )

        imc_input = IMCInput(
            product_price=self._parse_amount(form_data.get('product_price'), 'product_price') or 0.0,
            timeline_weeks=int(self._parse_amount(form_data.get('timeline_weeks'), 'timeline_weeks') or 0),
            industry=str(form_data.get('industry') or '').strip(),
            planning_mode=mode,
            campaign_focus=focus,
            budget=self._parse_amount(form_data.get('budget'), 'budget'),
            revenue_target=self._parse_amount(form_data.get('revenue_target'), 'revenue_target'),
            assets=assets
        )
        return self.validate_input(imc_input)

    def _parse_amount(self, value: Any, field: str) -> Optional[float]:
        if value is None:
            return None
        if isinstance(value, (int, float)):
            return float(value) if value else None
        cleaned = str(value).replace(',', '').replace('_', '').strip()
        if not cleaned:
            return None
        try:
            amount = float(cleaned)
        except ValueError:
            raise ValidationError(f"Invalid number for {field}: {value}", field)
        return amount or None

    def _parse_flag(self, value: Any, field: str, default: bool = True) -> bool:
        """Checkbox value from a form or query string; missing means ``default``."""
        if value is None:
            return default
        if isinstance(value, str):
            cleaned = value.strip().lower()
            if cleaned in TRUE_STRINGS:
                return True
            if cleaned in FALSE_STRINGS:
                return False
            raise ValidationError(f"Invalid yes/no value for {field}: {value}", field)
        return bool(value)


class PlanValidator:
    """
    Validates and parses AI-generated IMC narrative plans.

    Handles lenient JSON parsing, required-field checks and a consistency
    check of the narrative phase budgets against the calculated distribution.
    """

    def __init__(self):
        """Initialize the plan validator."""
        self.phase_sum_tolerance = 5.0  # percentage points
        self.phase_split_tolerance = 10.0  # percentage points vs calculated split
        self.required_plan_fields = ['campaign_name', 'big_idea', 'key_message', 'phases']
        self.required_phase_fields = ['phase', 'channels', 'budget_allocation']

    def parse_and_validate_plan(self,
                                ai_response: Union[str, Dict[str, Any]],
                                distribution: Optional[BudgetDistribution] = None) -> ValidationResult:
        """
        Parse and validate a narrative plan from an AI response.

        Args:
            ai_response: Raw AI response (JSON string or dict)
            distribution: Calculated distribution to cross-check phase budgets

        Returns:
            ValidationResult with parsed phases and validation issues
        """
        issues: List[ValidationIssue] = []

        try:
            plan_data = self._parse_json_response(ai_response)
        except ValueError as e:
            issues.append(ValidationIssue(
                severity=ValidationSeverity.ERROR,
                message=f"Failed to parse JSON response: {str(e)}"
            ))
            return self._create_validation_result(issues, None, [])

        if not isinstance(plan_data, dict):
            issues.append(ValidationIssue(
                severity=ValidationSeverity.ERROR,
                message=f"Plan must be a JSON object, got {type(plan_data).__name__}"
            ))
            return self._create_validation_result(issues, None, [])

        for field_name in self.required_plan_fields:
            if not plan_data.get(field_name):
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    message=f"Missing required field: {field_name}",
                    field=field_name
                ))

        if not isinstance(plan_data.get('strategic_foundation'), dict):
            issues.append(ValidationIssue(
                severity=ValidationSeverity.WARNING,
                message="Plan has no strategic foundation (business / marketing / communication objectives)",
                field='strategic_foundation'
            ))

        if any(issue.severity == ValidationSeverity.ERROR for issue in issues):
            return self._create_validation_result(issues, plan_data, [])

        raw_phases = plan_data.get('phases')
        if not isinstance(raw_phases, list):
            issues.append(ValidationIssue(
                severity=ValidationSeverity.ERROR,
                message="'phases' must be a list",
                field='phases'
            ))
            return self._create_validation_result(issues, plan_data, [])

        phases = []
        for i, phase_data in enumerate(raw_phases):
            phase_issues, phase = self._parse_phase(phase_data, i)
            issues.extend(phase_issues)
            if phase is not None:
                phases.append(phase)

        if phases:
            issues.extend(self._validate_phase_budgets(phases, distribution))
        else:
            issues.append(ValidationIssue(
                severity=ValidationSeverity.ERROR,
                message="No valid phases found in plan",
                field='phases'
            ))

        result = self._create_validation_result(issues, plan_data, phases)
        logger.info(f"Narrative validation complete: {len(phases)} phases, {len(issues)} issues")
        return result

    def _parse_json_response(self, ai_response: Union[str, Dict[str, Any]]) -> Dict[str, Any]:
        """
        Parse JSON response from AI, handling fenced and embedded JSON.

        Raises:
            ValueError: If JSON cannot be parsed
        """
        if isinstance(ai_response, dict):
            return ai_response

        if not isinstance(ai_response, str):
            raise ValueError(f"Unsupported response type: {type(ai_response)}")

        try:
            return json.loads(self._clean_json_string(ai_response))
        except json.JSONDecodeError as e:
            extracted_json = self._extract_json_from_text(ai_response)
            if extracted_json:
                return json.loads(extracted_json)
            raise ValueError(f"Invalid JSON format: {str(e)}")

    def _clean_json_string(self, json_str: str) -> str:
        """Strip markdown fences and trailing commas from a JSON string."""
        json_str = re.sub(r'```json\s*', '', json_str)
        json_str = re.sub(r'```\s*', '', json_str)
        json_str = json_str.strip()
        json_str = re.sub(r',(\s*[}\]])', r'\1', json_str)
        return json_str

    def _extract_json_from_text(self, text: str) -> Optional[str]:
        """Extract the first parseable JSON object from surrounding prose."""
        start = text.find('{')
        end = text.rfind('}')
        if start == -1 or end <= start:
            return None

        candidate = self._clean_json_string(text[start:end + 1])
        try:
            json.loads(candidate)
            return candidate
        except json.JSONDecodeError:
            return None

    def _parse_phase(self, phase_data: Any, index: int) -> Tuple[List[ValidationIssue], Optional[IMCExecutionPhase]]:
        issues = []

        if not isinstance(phase_data, dict):
            issues.append(ValidationIssue(
                severity=ValidationSeverity.ERROR,
                message=f"Phase {index + 1} is not an object",
                phase_index=index
            ))
            return issues, None

        for field_name in self.required_phase_fields:
            if field_name not in phase_data:
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    message=f"Phase {index + 1} missing required field: {field_name}",
                    field=field_name,
                    phase_index=index
                ))
        if issues:
            return issues, None

        try:
            phase = Phase(str(phase_data['phase']).strip().upper())
        except ValueError:
            issues.append(ValidationIssue(
                severity=ValidationSeverity.ERROR,
                message=f"Phase {index + 1} has unknown phase '{phase_data['phase']}'",
                field='phase',
                phase_index=index
            ))
            return issues, None

        try:
            percent = self._parse_percent(phase_data['budget_allocation'])
        except ValueError:
            issues.append(ValidationIssue(
                severity=ValidationSeverity.ERROR,
                message=f"Phase {index + 1} has invalid budget allocation '{phase_data['budget_allocation']}'",
                field='budget_allocation',
                phase_index=index
            ))
            return issues, None

        channels = phase_data['channels']
        if channels is None:
            channels = []
        elif not isinstance(channels, list):
            channels = [channels]
        if not channels:
            issues.append(ValidationIssue(
                severity=ValidationSeverity.WARNING,
                message=f"Phase {phase.value} lists no channels",
                field='channels',
                phase_index=index
            ))

        kpi_metric, kpi_target = self._parse_kpi(phase_data.get('kpis') or phase_data.get('kpi'))
        return issues, IMCExecutionPhase(
            phase=phase,
            objective_detail=str(phase_data.get('objective_detail', '')).strip(),
            key_hook=str(phase_data.get('key_hook', '')).strip(),
            channels=[str(channel) for channel in channels],
            budget_allocation=percent,
            kpi_metric=kpi_metric,
            kpi_target=kpi_target,
            week_range=str(phase_data.get('week_range', ''))
        )

    def _parse_kpi(self, kpis: Any) -> Tuple[str, str]:
        """Metric and target from a {"metric", "target"} object or a free-text KPI such as "500k Reach"."""
        if not kpis:
            return '', ''
        if isinstance(kpis, dict):
            return str(kpis.get('metric', '')), str(kpis.get('target', ''))
        return '', str(kpis).strip()

    def _parse_percent(self, value: Any) -> float:
        if isinstance(value, (int, float)):
            return float(value)
        return float(str(value).replace('%', '').strip())

    def _validate_phase_budgets(self,
                                phases: List[IMCExecutionPhase],
                                distribution: Optional[BudgetDistribution]) -> List[ValidationIssue]:
        issues = []

        total_percent = sum(phase.budget_allocation for phase in phases)
        if abs(total_percent - 100.0) > self.phase_sum_tolerance:
            issues.append(ValidationIssue(
                severity=ValidationSeverity.WARNING,
                message=f"Phase budgets add up to {total_percent:.0f}% instead of 100%",
                field='budget_allocation'
            ))

        if distribution is None or distribution.media_budget <= 0:
            return issues

        phase_totals = distribution.phase_totals()
        for i, phase in enumerate(phases):
            expected = phase_totals[phase.phase] / distribution.media_budget * 100
            if abs(phase.budget_allocation - expected) > self.phase_split_tolerance:
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.WARNING,
                    message=(
                        f"Phase {phase.phase.value} states {phase.budget_allocation:.0f}% of budget but the "
                        f"calculated channel split gives {expected:.0f}%"
                    ),
                    field='budget_allocation',
                    phase_index=i
                ))
        return issues

    def _create_validation_result(self,
                                  issues: List[ValidationIssue],
                                  plan_data: Optional[Dict[str, Any]],
                                  phases: List[IMCExecutionPhase]) -> ValidationResult:
        total_errors = sum(1 for issue in issues if issue.severity == ValidationSeverity.ERROR)
        total_warnings = sum(1 for issue in issues if issue.severity == ValidationSeverity.WARNING)
        return ValidationResult(
            is_valid=total_errors == 0 and len(phases) > 0,
            issues=issues,
            plan_data=plan_data,
            phases=phases,
            total_errors=total_errors,
            total_warnings=total_warnings
        )
