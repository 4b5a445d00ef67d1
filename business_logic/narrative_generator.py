"""
Narrative generator for IMC plans using OpenAI.

The budget engine decides every number; the model only writes the story
around it: campaign name, big idea, key message, strategic foundation and
per-phase hooks and KPIs. The generated phases are cross-checked against
the calculated phase split and carry the calculated media and production
budgets, so the narrative can never drift from the arithmetic.
"""

import logging
import json
import uuid
from datetime import datetime
from dataclasses import asdict
from typing import Dict, Any, List
from openai import OpenAI

from models.data_models import IMCInput, IMCPlan, IMCReport, Phase
from config.settings import config_manager
from .channel_allocator import channel_name_hints
from .error_handler import error_handler, RetryConfig
from .formatting import format_vnd_full
from .plan_validator import PlanValidator, ValidationSeverity

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


PHASE_GUIDANCE = {
    Phase.AWARE: "Build awareness and curiosity (reach, PR, KOL seeding)",
    Phase.TRIGGER: "Turn attention into intent (reviews, retargeting, CRM)",
    Phase.CONVERT: "Close the sale (search, conversion ads, landing page)",
}


class NarrativeGenerationError(Exception):
    """Raised when the model's plan cannot be used."""


class IMCNarrativeGenerator:
    """
    Writes the strategic narrative for a calculated IMC report.

    The OpenAI client is created lazily from configuration unless
    ``skip_openai_init`` is set, which tests use to inject a mock client.
    """

    def __init__(self, skip_openai_init: bool = False):
        self.client = None
        if not skip_openai_init:
            self._initialize_openai_client()

        self.model_name = config_manager.get_openai_model()
        self.temperature = 0.7
        self.max_tokens = 2500
        self.validator = PlanValidator()

    def _initialize_openai_client(self):
        """Initialize OpenAI client with API key."""
        try:
            api_key = config_manager.get_openai_api_key()
            self.client = OpenAI(api_key=api_key)
            logger.info("OpenAI client initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize OpenAI client: {str(e)}")
            raise

    def create_system_prompt(self,
                             brand: str,
                             product: str,
                             imc_input: IMCInput,
                             report: IMCReport) -> str:
        """
        Build the system prompt from the calculated report.

        Args:
            brand: Brand name
            product: Product or service being promoted
            imc_input: Campaign inputs
            report: Calculated metrics and distribution

        Returns:
            Formatted system prompt string
        """
        metrics = report.metrics
        distribution = report.distribution

        phase_lines = []
        channel_lines = []
        if distribution is not None and distribution.media_budget > 0:
            phase_totals = distribution.phase_totals()
            for phase in Phase:
                percent = phase_totals[phase] / distribution.media_budget * 100
                phase_lines.append(
                    f"- {phase.value}: {percent:.0f}% ({format_vnd_full(phase_totals[phase])}) - "
                    f"{PHASE_GUIDANCE[phase]}"
                )
            for allocation in distribution.channels:
                channel_lines.append(
                    f"- [{allocation.phase.value}] {allocation.channel_name}: "
                    f"{format_vnd_full(allocation.total_allocation)}, "
                    f"{allocation.estimated_kpi.value:,} {allocation.estimated_kpi.metric}"
                )

        hints = channel_name_hints(imc_input.industry)
        hint_lines = [f"- {name}" for name in hints.values()]

        feasibility = metrics.feasibility
        risk_note = feasibility.warning_message or ""

        return f"""You are the Strategic Planning Director at a leading integrated marketing agency in Vietnam. Write the narrative for an IMC (Integrated Marketing Communications) campaign whose budget has already been calculated.

CAMPAIGN BRIEF:
- Brand: {brand}
- Product: {product}
- Industry: {imc_input.industry or 'General'}
- Campaign focus: {metrics.campaign_focus.value}
- Timeline: {imc_input.timeline_weeks} weeks
- Total budget: {format_vnd_full(metrics.total_budget)}
- Media budget: {format_vnd_full(metrics.media_spend)}
- Production budget: {format_vnd_full(metrics.production_budget)}
- Forecast: {metrics.estimated_traffic:,} visits, {metrics.estimated_orders:,} orders, {format_vnd_full(metrics.estimated_revenue)} revenue
- Feasibility: {feasibility.risk_level.value} (ROAS {metrics.implied_roas:.1f}x). {risk_note}

CALCULATED PHASE SPLIT (do not change these percentages):
{chr(10).join(phase_lines) if phase_lines else '- Not calculated'}

CALCULATED CHANNELS:
{chr(10).join(channel_lines) if channel_lines else '- Not calculated'}
{('INDUSTRY CHANNEL NOTES:' + chr(10) + chr(10).join(hint_lines)) if hint_lines else ''}

REQUIREMENTS:
1. One Big Idea and one Key Message that run through every phase (the Golden Thread).
2. A strategic foundation linking the business objective to the marketing and communication objectives.
3. Exactly three phases, AWARE, TRIGGER and CONVERT, using only the channels above.
4. Each phase has a key hook adapting the Key Message to its channels, and one measurable KPI.
5. Phase budget_allocation must match the calculated phase split.

OUTPUT FORMAT:
Return a JSON object with this exact structure:
{{
    "campaign_name": "Campaign name",
    "big_idea": "Short big idea",
    "key_message": "Key message",
    "strategic_foundation": {{
        "business_obj": "Business objective",
        "marketing_obj": "Marketing objective",
        "communication_obj": "Communication objective"
    }},
    "phases": [
        {{
            "phase": "AWARE",
            "week_range": "Week 1-2",
            "objective_detail": "What this phase achieves",
            "key_hook": "Message variant for this phase",
            "channels": ["Channel name from the list above"],
            "budget_allocation": "20%",
            "kpis": {{"metric": "Reach", "target": "500,000"}}
        }}
    ]
}}"""

    def generate_plan(self,
                      brand: str,
                      product: str,
                      imc_input: IMCInput,
                      report: IMCReport) -> IMCPlan:
        """
        Generate the narrative plan for a calculated report.

        Args:
            brand: Brand name
            product: Product or service
            imc_input: Campaign inputs
            report: Report with metrics and distribution

        Returns:
            IMCPlan carrying the narrative and snapshots of the numbers

        Raises:
            NarrativeGenerationError: If the model fails or returns an unusable plan
        """
        system_prompt = self.create_system_prompt(brand, product, imc_input, report)
        user_prompt = (
            f"Write the IMC plan for {brand} - {product} over {imc_input.timeline_weeks} weeks. "
            f"Return only the JSON object."
        )

        def call_openai():
            return self._call_openai_api(system_prompt, user_prompt)

        success, content, error_info = error_handler.retry_with_backoff(
            call_openai,
            RetryConfig(max_attempts=config_manager.get_max_retries(), base_delay=2.0),
            "OpenAI narrative generation"
        )
        if not success:
            error_handler.log_error(error_info, "Narrative Generation")
            raise NarrativeGenerationError(error_info.user_message)

        validation = self.validator.parse_and_validate_plan(content, report.distribution)
        if not validation.is_valid:
            errors = [issue.message for issue in validation.issues if issue.severity == ValidationSeverity.ERROR]
            logger.error(f"Narrative plan rejected: {errors}")
            raise NarrativeGenerationError("The AI narrative was incomplete: " + "; ".join(errors))

        plan = self._build_plan(brand, product, imc_input, report, validation.plan_data, validation.phases)
        plan.validation_warnings = validation.warning_messages
        logger.info(f"Narrative plan '{plan.campaign_name}' generated with {len(plan.phases)} phases")
        return plan

    def _call_openai_api(self, system_prompt: str, user_prompt: str) -> str:
        """
        Call the chat completions API and return the raw JSON text.

        Raises:
            RuntimeError: If the client is missing or the response is empty
        """
        if not self.client:
            raise RuntimeError("OpenAI client not initialized. Please check API key configuration.")

        logger.info(f"Calling OpenAI ({self.model_name}) for narrative generation")
        response = self.client.chat.completions.create(
            model=self.model_name,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt}
            ],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            response_format={"type": "json_object"},
            timeout=60.0
        )

        if not response.choices:
            raise RuntimeError("OpenAI returned empty response")
        content = response.choices[0].message.content
        if not content:
            raise RuntimeError("OpenAI returned empty content")
        return content

    def _build_plan(self,
                    brand: str,
                    product: str,
                    imc_input: IMCInput,
                    report: IMCReport,
                    plan_data: Dict[str, Any],
                    phases: List) -> IMCPlan:
        distribution = report.distribution
        if distribution is not None:
            media_by_phase = {phase: 0 for phase in Phase}
            production_by_phase = {phase: 0 for phase in Phase}
            for allocation in distribution.channels:
                media_by_phase[allocation.phase] += allocation.media_spend
                production_by_phase[allocation.phase] += allocation.production_cost
            for phase in phases:
                phase.media_budget = float(media_by_phase[phase.phase])
                phase.production_budget = float(production_by_phase[phase.phase])

        foundation = plan_data.get('strategic_foundation')
        if not isinstance(foundation, dict):
            foundation = {}
        return IMCPlan(
            plan_id=str(uuid.uuid4()),
            brand=brand,
            product=product,
            industry=imc_input.industry,
            campaign_name=str(plan_data['campaign_name']),
            big_idea=str(plan_data['big_idea']),
            key_message=str(plan_data['key_message']),
            strategic_foundation={key: str(value) for key, value in foundation.items()},
            total_budget=report.metrics.total_budget,
            timeline_weeks=imc_input.timeline_weeks,
            phases=phases,
            created_at=datetime.now(),
            metrics=json.loads(json.dumps(asdict(report.metrics), default=_enum_value)),
            distribution=(
                json.loads(json.dumps(asdict(distribution), default=_enum_value))
                if distribution is not None else None
            )
        )


def _enum_value(value: Any) -> Any:
    """json.dumps fallback turning enums into their values."""
    if hasattr(value, 'value'):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
