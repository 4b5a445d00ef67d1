"""
Core data models for the IMC Planner application.

All calculation results are immutable value objects created fresh for every
call. Enums subclass ``str`` so that results serialize straight to JSON.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Any


class PlanningMode(str, Enum):
    """How the campaign numbers are derived."""
    BUDGET_DRIVEN = "BUDGET_DRIVEN"
    GOAL_DRIVEN = "GOAL_DRIVEN"
    AUDIT = "AUDIT"


class CampaignFocus(str, Enum):
    """Campaign focus used to pick funnel rates and the channel template."""
    BRANDING = "BRANDING"
    CONVERSION = "CONVERSION"


class RiskLevel(str, Enum):
    """Feasibility risk tiers, ordered from safest to unreachable."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    IMPOSSIBLE = "IMPOSSIBLE"


class ChannelType(str, Enum):
    PAID_MEDIA = "PAID_MEDIA"
    CRM = "CRM"
    CONTENT = "CONTENT"
    TOOLS = "TOOLS"


class Phase(str, Enum):
    """Execution phases of an IMC campaign."""
    AWARE = "AWARE"
    TRIGGER = "TRIGGER"
    CONVERT = "CONVERT"


class AssetRequirement(str, Enum):
    """Asset a channel needs before it can run."""
    WEBSITE = "WEBSITE"
    CUSTOMER_LIST = "CUSTOMER_LIST"


class KPIKind(str, Enum):
    """How a channel's expected KPI is derived from its media spend."""
    CLICKS = "CLICKS"
    IMPRESSIONS = "IMPRESSIONS"
    MESSAGES = "MESSAGES"
    SENDS = "SENDS"
    REACH = "REACH"
    VISITS = "VISITS"


class Channel(str, Enum):
    """Closed set of channels the allocator can plan."""
    GOOGLE_SEARCH = "GOOGLE_SEARCH"
    META_CONVERSION = "META_CONVERSION"
    RETARGETING = "RETARGETING"
    TIKTOK_SHOP = "TIKTOK_SHOP"
    TIKTOK_REACH = "TIKTOK_REACH"
    META_REACH = "META_REACH"
    YOUTUBE = "YOUTUBE"
    KOL = "KOL"
    KOC_REVIEW = "KOC_REVIEW"
    PR = "PR"
    EMAIL = "EMAIL"
    ZALO_SMS = "ZALO_SMS"
    LANDING_PAGE = "LANDING_PAGE"


@dataclass(frozen=True)
class AssetChecklist:
    """Caller-declared assets used to gate channel eligibility."""
    has_website: bool = True
    has_customer_list: bool = True
    has_creative_assets: bool = True

    def satisfies(self, requirement: Optional[AssetRequirement]) -> bool:
        if requirement is None:
            return True
        if requirement == AssetRequirement.WEBSITE:
            return self.has_website
        return self.has_customer_list


@dataclass(frozen=True)
class IMCInput:
    """Financial inputs for a single campaign calculation."""
    product_price: float
    timeline_weeks: int
    industry: str
    planning_mode: PlanningMode
    campaign_focus: CampaignFocus
    budget: Optional[float] = None
    revenue_target: Optional[float] = None
    assets: Optional[AssetChecklist] = None

    @property
    def asset_checklist(self) -> AssetChecklist:
        return self.assets if self.assets is not None else AssetChecklist()


@dataclass(frozen=True)
class FeasibilityResult:
    """Risk verdict for an implied ROAS."""
    is_feasible: bool
    implied_roas: float
    risk_level: RiskLevel
    warning_message: Optional[str] = None
    recommendation: Optional[str] = None


@dataclass(frozen=True)
class CalculatedMetrics:
    """Funnel forecast plus feasibility verdict."""
    planning_mode: PlanningMode
    campaign_focus: CampaignFocus
    total_budget: float
    media_spend: float
    production_budget: float
    production_ratio: float
    estimated_traffic: int
    estimated_orders: int
    estimated_revenue: float
    implied_roas: float
    benchmark_roas: float
    feasibility: FeasibilityResult
    audit: Optional['AuditDetails'] = None


@dataclass(frozen=True)
class AuditDetails:
    """Gap analysis between what a budget buys and what a target needs."""
    achievable: CalculatedMetrics
    required: CalculatedMetrics
    budget_gap: float
    revenue_gap: float


@dataclass(frozen=True)
class EstimatedKPI:
    metric: str
    value: int
    unit_cost: float


@dataclass(frozen=True)
class ChannelAllocation:
    """Budget allocated to one channel, split into media and production."""
    channel: Channel
    channel_name: str
    channel_type: ChannelType
    phase: Phase
    share: float
    total_allocation: int
    media_spend: int
    production_cost: int
    estimated_kpi: EstimatedKPI
    action_item: str
    warning: Optional[str] = None


@dataclass(frozen=True)
class BudgetDistribution:
    """Production/media split and the channel-by-channel allocation."""
    total_budget: int
    production_budget: int
    media_budget: int
    production_ratio: float
    channels: List[ChannelAllocation] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    disabled_channels: List[str] = field(default_factory=list)

    def phase_totals(self) -> Dict[Phase, int]:
        """Sum channel allocations per execution phase."""
        totals = {phase: 0 for phase in Phase}
        for allocation in self.channels:
            totals[allocation.phase] += allocation.total_allocation
        return totals


@dataclass(frozen=True)
class IMCReport:
    """Metrics and, when a full plan was requested, the distribution."""
    metrics: CalculatedMetrics
    distribution: Optional[BudgetDistribution] = None


@dataclass
class IMCExecutionPhase:
    """One execution phase of a narrative IMC plan."""
    phase: Phase
    objective_detail: str
    key_hook: str
    channels: List[str]
    budget_allocation: float  # percent of media budget
    kpi_metric: str
    kpi_target: str
    week_range: str
    media_budget: float = 0.0
    production_budget: float = 0.0


@dataclass
class IMCPlan:
    """Complete IMC plan as produced by the narrative generator and stored."""
    plan_id: str
    brand: str
    product: str
    industry: str
    campaign_name: str
    big_idea: str
    key_message: str
    strategic_foundation: Dict[str, str]
    total_budget: float
    timeline_weeks: int
    phases: List[IMCExecutionPhase]
    created_at: datetime
    metrics: Optional[Dict[str, Any]] = None
    distribution: Optional[Dict[str, Any]] = None
    validation_warnings: List[str] = field(default_factory=list)
