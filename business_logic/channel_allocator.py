"""
Channel-by-channel budget allocation for IMC campaigns.

This module splits a campaign budget into production and media, picks the
channel template for the campaign focus, gates channels on the assets the
advertiser actually has, redistributes the shares of disabled channels, and
estimates a KPI for every funded channel.
"""

import logging
import math
from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass, replace

from models.data_models import (
    AssetChecklist, AssetRequirement, BudgetDistribution, CampaignFocus, Channel,
    ChannelAllocation, ChannelType, EstimatedKPI, KPIKind, Phase
)
from .benchmarks import BenchmarkTable, DEFAULT_BENCHMARKS
from .formatting import format_vnd, format_vnd_full

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChannelProfile:
    """Static description of a channel."""
    name: str
    channel_type: ChannelType
    phase: Phase
    kpi_kind: KPIKind
    action_item: str


@dataclass(frozen=True)
class TemplateEntry:
    """One channel slot in a focus template."""
    channel: Channel
    share: float
    requires: Optional[AssetRequirement] = None


CHANNEL_PROFILES: Dict[Channel, ChannelProfile] = {
    Channel.GOOGLE_SEARCH: ChannelProfile(
        "Google Search Ads", ChannelType.PAID_MEDIA, Phase.CONVERT, KPIKind.CLICKS,
        "Bid on high-intent product keywords and land traffic on the best-converting page"),
    Channel.META_CONVERSION: ChannelProfile(
        "Meta Conversion Ads", ChannelType.PAID_MEDIA, Phase.TRIGGER, KPIKind.CLICKS,
        "Run conversion-optimized ads on lookalike audiences"),
    Channel.RETARGETING: ChannelProfile(
        "Google/Meta Remarketing", ChannelType.PAID_MEDIA, Phase.CONVERT, KPIKind.CLICKS,
        "Retarget website visitors and cart abandoners with offer creatives"),
    Channel.TIKTOK_SHOP: ChannelProfile(
        "TikTok Shop Ads", ChannelType.PAID_MEDIA, Phase.TRIGGER, KPIKind.CLICKS,
        "Push impulse purchases with shoppable videos and livestreams"),
    Channel.TIKTOK_REACH: ChannelProfile(
        "TikTok Reach Ads", ChannelType.PAID_MEDIA, Phase.AWARE, KPIKind.IMPRESSIONS,
        "Seed the big idea with short-form videos bought for reach"),
    Channel.META_REACH: ChannelProfile(
        "Meta Reach Ads", ChannelType.PAID_MEDIA, Phase.AWARE, KPIKind.IMPRESSIONS,
        "Carry the key message to a broad demographic audience"),
    Channel.YOUTUBE: ChannelProfile(
        "YouTube Bumper & In-stream", ChannelType.PAID_MEDIA, Phase.AWARE, KPIKind.IMPRESSIONS,
        "Build frequency on the hero film with 6s bumpers and skippable in-stream"),
    Channel.KOL: ChannelProfile(
        "KOL Partnerships", ChannelType.CONTENT, Phase.AWARE, KPIKind.REACH,
        "Brief 2-3 KOLs on the key hook, paid as a flat post package"),
    Channel.KOC_REVIEW: ChannelProfile(
        "KOC Reviews", ChannelType.CONTENT, Phase.TRIGGER, KPIKind.REACH,
        "Seed honest reviews with micro creators to build trust"),
    Channel.PR: ChannelProfile(
        "PR & Press Coverage", ChannelType.CONTENT, Phase.TRIGGER, KPIKind.REACH,
        "Place launch stories in online press to earn credibility"),
    Channel.EMAIL: ChannelProfile(
        "Email Marketing", ChannelType.CRM, Phase.CONVERT, KPIKind.SENDS,
        "Send an offer sequence to the existing customer list"),
    Channel.ZALO_SMS: ChannelProfile(
        "Zalo OA / SMS", ChannelType.CRM, Phase.CONVERT, KPIKind.MESSAGES,
        "Message past buyers with a time-limited offer via Zalo ZNS or SMS"),
    Channel.LANDING_PAGE: ChannelProfile(
        "Landing Page & Tracking", ChannelType.TOOLS, Phase.CONVERT, KPIKind.VISITS,
        "Build a campaign landing page with pixel and conversion tracking"),
}

# Shares are fractions of the media budget and sum to 1.0 per focus.
CHANNEL_TEMPLATES: Dict[CampaignFocus, List[TemplateEntry]] = {
    CampaignFocus.CONVERSION: [
        TemplateEntry(Channel.GOOGLE_SEARCH, 0.25),
        TemplateEntry(Channel.META_CONVERSION, 0.20),
        TemplateEntry(Channel.RETARGETING, 0.15, AssetRequirement.WEBSITE),
        TemplateEntry(Channel.TIKTOK_SHOP, 0.10),
        TemplateEntry(Channel.KOC_REVIEW, 0.10),
        TemplateEntry(Channel.ZALO_SMS, 0.10, AssetRequirement.CUSTOMER_LIST),
        TemplateEntry(Channel.EMAIL, 0.05, AssetRequirement.CUSTOMER_LIST),
        TemplateEntry(Channel.LANDING_PAGE, 0.05, AssetRequirement.WEBSITE),
    ],
    CampaignFocus.BRANDING: [
        TemplateEntry(Channel.TIKTOK_REACH, 0.25),
        TemplateEntry(Channel.KOL, 0.20),
        TemplateEntry(Channel.META_REACH, 0.15),
        TemplateEntry(Channel.YOUTUBE, 0.10),
        TemplateEntry(Channel.PR, 0.10),
        TemplateEntry(Channel.RETARGETING, 0.10, AssetRequirement.WEBSITE),
        TemplateEntry(Channel.ZALO_SMS, 0.05, AssetRequirement.CUSTOMER_LIST),
        TemplateEntry(Channel.EMAIL, 0.05, AssetRequirement.CUSTOMER_LIST),
    ],
}

# Industry-specific display names, also handed to the narrative generator.
INDUSTRY_CHANNEL_HINTS: Dict[str, Dict[Channel, str]] = {
    'fmcg': {
        Channel.TIKTOK_SHOP: "TikTok Shop & Shopee Flash Sales",
        Channel.KOC_REVIEW: "Mass KOC Seeding",
    },
    'b2b': {
        Channel.TIKTOK_REACH: "LinkedIn Sponsored Content",
        Channel.TIKTOK_SHOP: "LinkedIn Lead Gen Forms",
        Channel.KOL: "Industry Expert Webinars",
        Channel.KOC_REVIEW: "Customer Case Studies",
    },
    'tech': {
        Channel.YOUTUBE: "YouTube Tech Reviews",
        Channel.KOL: "Tech Reviewer KOLs",
    },
    'fashion': {
        Channel.TIKTOK_SHOP: "TikTok Shop Livestream",
        Channel.KOC_REVIEW: "Fashion KOC Try-on Reviews",
    },
    'f&b': {
        Channel.TIKTOK_SHOP: "ShopeeFood / GrabFood Promotions",
        Channel.KOL: "Food Blogger KOLs",
        Channel.KOC_REVIEW: "Food Reviewer KOCs",
    },
    'healthcare': {
        Channel.KOL: "Doctor & Expert KOLs",
        Channel.TIKTOK_REACH: "Health Education Short Videos",
    },
    'education': {
        Channel.KOL: "Alumni & Teacher KOLs",
        Channel.GOOGLE_SEARCH: "Google Search (Course Keywords)",
    },
    'real estate': {
        Channel.KOL: "Property Expert KOLs",
        Channel.GOOGLE_SEARCH: "Google Search (Project Keywords)",
        Channel.ZALO_SMS: "Zalo Broker Network",
    },
}

KPI_METRICS: Dict[KPIKind, str] = {
    KPIKind.CLICKS: "Clicks",
    KPIKind.IMPRESSIONS: "Impressions",
    KPIKind.MESSAGES: "Messages",
    KPIKind.SENDS: "Email Sends",
    KPIKind.REACH: "Reach",
    KPIKind.VISITS: "Tracked Visits",
}

REQUIREMENT_LABELS: Dict[AssetRequirement, str] = {
    AssetRequirement.WEBSITE: "a website for pixel tracking and landing pages",
    AssetRequirement.CUSTOMER_LIST: "an existing customer list",
}


def channel_name_hints(industry: str) -> Dict[Channel, str]:
    """Display-name overrides for ``industry`` (empty when unknown)."""
    return INDUSTRY_CHANNEL_HINTS.get((industry or '').strip().lower(), {})


class ChannelAllocator:
    """
    Allocates a campaign budget across channels.

    The allocator is stateless; the benchmark table supplies every cost and
    ratio it uses.
    """

    def __init__(self, benchmarks: Optional[BenchmarkTable] = None):
        """Initialize the allocator with a benchmark table."""
        self.benchmarks = benchmarks or DEFAULT_BENCHMARKS

    def allocate(self,
                 total_budget: float,
                 campaign_focus: CampaignFocus,
                 industry: str = "",
                 assets: Optional[AssetChecklist] = None) -> BudgetDistribution:
        """
        Split a full campaign budget into production and channel allocations.

        Args:
            total_budget: Full campaign budget (production is taken from this)
            campaign_focus: BRANDING or CONVERSION, selects the channel template
            industry: Industry name used for channel display names
            assets: Asset checklist gating website / customer-list channels

        Returns:
            BudgetDistribution whose channel totals sum exactly to media_budget
        """
        try:
            focus = CampaignFocus(campaign_focus)
            assets = assets or AssetChecklist()
            total = int(round(total_budget))

            logger.info(f"Allocating {format_vnd(total)} VND for a {focus.value} campaign")

            production_ratio = self.benchmarks.production_ratio(total, assets.has_creative_assets)
            production_budget = self._production_budget(total, production_ratio)
            media_budget = total - production_budget

            entries, disabled_channels = self._select_channels(focus, assets, industry)
            warnings: List[str] = []

            if not assets.has_creative_assets:
                warnings.append(
                    f"No creative assets on hand: production ratio raised to {production_ratio:.0%} "
                    f"to cover video and image production."
                )

            if media_budget <= 0:
                warnings.append(
                    f"Media budget exhausted by production: the {format_vnd(production_budget)} VND "
                    f"production budget consumes the whole {format_vnd(total)} VND campaign budget, "
                    f"so no channel can be funded."
                )
                logger.warning(f"Media budget exhausted for total budget {total}")
                return BudgetDistribution(
                    total_budget=total,
                    production_budget=production_budget,
                    media_budget=media_budget,
                    production_ratio=production_ratio,
                    channels=[],
                    warnings=warnings,
                    disabled_channels=disabled_channels
                )

            shares = self._normalize_shares(entries)
            amounts = self._largest_remainder(media_budget, shares)
            hints = channel_name_hints(industry)

            channels = [
                self._build_allocation(entry.channel, share, amount, hints)
                for entry, share, amount in zip(entries, shares, amounts)
            ]
            channels, underfunded = self._flag_underfunded(channels)
            warnings.extend(underfunded)

            distribution = BudgetDistribution(
                total_budget=total,
                production_budget=production_budget,
                media_budget=media_budget,
                production_ratio=production_ratio,
                channels=channels,
                warnings=warnings,
                disabled_channels=disabled_channels
            )

            logger.info(
                f"Allocation complete: {format_vnd(media_budget)} VND media across "
                f"{len(channels)} channels, {len(disabled_channels)} disabled"
            )
            return distribution

        except Exception as e:
            logger.error(f"Error allocating channel budget: {str(e)}")
            raise

    def _production_budget(self, total: int, ratio: float) -> int:
        """Campaign production budget, floored at the minimum and never above the total."""
        production = int(round(total * ratio))
        production = max(production, int(self.benchmarks.min_production_budget))
        return min(production, max(total, 0))

    def _select_channels(self,
                         focus: CampaignFocus,
                         assets: AssetChecklist,
                         industry: str) -> Tuple[List[TemplateEntry], List[str]]:
        """
        Filter the focus template by the asset checklist.

        Returns:
            Tuple of (surviving template entries, disabled-channel reasons)
        """
        hints = channel_name_hints(industry)
        selected = []
        disabled = []

        for entry in CHANNEL_TEMPLATES[focus]:
            if assets.satisfies(entry.requires):
                selected.append(entry)
            else:
                name = hints.get(entry.channel, CHANNEL_PROFILES[entry.channel].name)
                disabled.append(
                    f"{name}: disabled, requires {REQUIREMENT_LABELS[entry.requires]} "
                    f"({entry.share:.0%} share redistributed)"
                )

        return selected, disabled

    def _normalize_shares(self, entries: List[TemplateEntry]) -> List[float]:
        """Rescale surviving shares so they sum to 1.0."""
        total_share = sum(entry.share for entry in entries)
        return [entry.share / total_share for entry in entries]

    def _largest_remainder(self, media_budget: int, shares: List[float]) -> List[int]:
        """
        Round ``media_budget * share`` to whole VND so the parts sum exactly.

        Each channel gets the floor of its exact amount; the leftover units go
        one each to the channels with the largest fractional remainders
        (earlier template entries win ties).
        """
        exact = [media_budget * share for share in shares]
        amounts = [int(math.floor(value)) for value in exact]
        leftover = media_budget - sum(amounts)

        order = sorted(range(len(exact)), key=lambda i: (-(exact[i] - amounts[i]), i))
        for i in order[:max(leftover, 0)]:
            amounts[i] += 1

        return amounts

    def _build_allocation(self,
                          channel: Channel,
                          share: float,
                          amount: int,
                          hints: Dict[Channel, str]) -> ChannelAllocation:
        profile = CHANNEL_PROFILES[channel]
        production_cost = int(round(amount * self.benchmarks.channel_production_ratios[channel]))
        media_spend = amount - production_cost

        return ChannelAllocation(
            channel=channel,
            channel_name=hints.get(channel, profile.name),
            channel_type=profile.channel_type,
            phase=profile.phase,
            share=share,
            total_allocation=amount,
            media_spend=media_spend,
            production_cost=production_cost,
            estimated_kpi=self._estimate_kpi(channel, profile.kpi_kind, media_spend),
            action_item=profile.action_item
        )

    def _estimate_kpi(self, channel: Channel, kind: KPIKind, media_spend: int) -> EstimatedKPI:
        """
        Estimate the channel KPI from its media spend.

        Impression channels are priced per thousand; every other kind is
        priced per unit (click, message, send, reached person, visit).
        """
        unit_cost = self.benchmarks.channel_unit_costs[channel]
        if unit_cost <= 0:
            return EstimatedKPI(metric=KPI_METRICS[kind], value=0, unit_cost=0)

        if kind == KPIKind.IMPRESSIONS:
            value = int(media_spend / unit_cost * 1000)
        else:
            value = int(media_spend // unit_cost)

        return EstimatedKPI(metric=KPI_METRICS[kind], value=value, unit_cost=unit_cost)

    def _flag_underfunded(self, channels: List[ChannelAllocation]) -> Tuple[List[ChannelAllocation], List[str]]:
        """
        Attach a consolidation warning to channels below the viable minimum.

        The suggested destination is the largest funded channel in the same
        phase, or the largest funded channel overall.
        """
        minimum = self.benchmarks.min_channel_budget
        funded = [c for c in channels if c.total_allocation >= minimum]
        flagged = []
        warnings = []

        for allocation in channels:
            if allocation.total_allocation >= minimum:
                flagged.append(allocation)
                continue

            same_phase = [c for c in funded if c.phase == allocation.phase]
            candidates = same_phase or funded
            if candidates:
                target = max(candidates, key=lambda c: c.total_allocation)
                advice = f"consolidate into {target.channel_name}"
            else:
                advice = "consolidate into fewer channels"

            warning = (
                f"{format_vnd_full(allocation.total_allocation)} is below the "
                f"{format_vnd_full(minimum)} minimum for {allocation.channel_name}; {advice}."
            )
            flagged.append(replace(allocation, warning=warning))
            warnings.append(warning)

        return flagged, warnings
