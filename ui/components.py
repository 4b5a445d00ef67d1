"""
UI components for the IMC Planner application.
"""

import streamlit as st
from typing import Dict, Any, List, Optional, Tuple
import logging
import pandas as pd
import plotly.express as px

from models.data_models import (
    BudgetDistribution, CalculatedMetrics, CampaignFocus, IMCPlan, IMCReport,
    Phase, PlanningMode, RiskLevel
)
from business_logic.channel_allocator import INDUSTRY_CHANNEL_HINTS
from business_logic.formatting import format_vnd, format_vnd_full

logger = logging.getLogger(__name__)


PLANNING_MODE_LABELS = {
    PlanningMode.BUDGET_DRIVEN: "I have a budget",
    PlanningMode.GOAL_DRIVEN: "I have a revenue target",
    PlanningMode.AUDIT: "Check my budget against my target",
}

FOCUS_LABELS = {
    CampaignFocus.CONVERSION: "Conversion (sales)",
    CampaignFocus.BRANDING: "Branding (awareness)",
}


def distribution_to_dataframe(distribution: BudgetDistribution) -> pd.DataFrame:
    """One row per channel allocation, in allocation order."""
    rows = []
    for allocation in distribution.channels:
        rows.append({
            'Phase': allocation.phase.value,
            'Channel': allocation.channel_name,
            'Type': allocation.channel_type.value,
            'Share': round(allocation.share * 100, 1),
            'Total (VND)': allocation.total_allocation,
            'Media (VND)': allocation.media_spend,
            'Production (VND)': allocation.production_cost,
            'KPI': allocation.estimated_kpi.metric,
            'Estimated': allocation.estimated_kpi.value,
            'Action': allocation.action_item,
            'Warning': allocation.warning or '',
        })
    return pd.DataFrame(rows, columns=[
        'Phase', 'Channel', 'Type', 'Share', 'Total (VND)', 'Media (VND)',
        'Production (VND)', 'KPI', 'Estimated', 'Action', 'Warning'
    ])


def phase_summary_dataframe(distribution: BudgetDistribution) -> pd.DataFrame:
    totals = distribution.phase_totals()
    media = distribution.media_budget or 1
    return pd.DataFrame([
        {'Phase': phase.value, 'Budget (VND)': totals[phase], 'Percent': round(totals[phase] / media * 100, 1)}
        for phase in Phase
    ])


def display_notification(notification: Optional[Dict[str, Any]]):
    """Render an error handler notification."""
    if not notification:
        return

    render = {
        'info': st.info,
        'warning': st.warning,
        'error': st.error,
    }.get(notification.get('type'), st.error)

    render(f"**{notification.get('title', 'Error')}:** {notification.get('message', '')}")
    if notification.get('action'):
        st.caption(f"💡 {notification['action']}")
    if notification.get('technical_details'):
        with st.expander("Technical details"):
            st.code(notification['technical_details'])


class IMCPlannerForm:
    """
    Form collecting the campaign brief.

    Budget and revenue target inputs are shown according to the selected
    planning mode; the raw values are parsed by the controller.
    """

    def __init__(self):
        self.industries = ['General'] + sorted(name.title() for name in INDUSTRY_CHANNEL_HINTS)

    def render(self) -> Tuple[Dict[str, Any], bool]:
        """
        Render the form.

        Returns:
            Tuple of (form_data, submitted)
        """
        st.subheader("📋 Campaign Brief")

        planning_mode = st.radio(
            "Planning mode",
            options=list(PLANNING_MODE_LABELS),
            format_func=lambda mode: PLANNING_MODE_LABELS[mode],
            horizontal=True,
            key='planning_mode'
        )

        with st.form("imc_planner_form", clear_on_submit=False):
            col1, col2 = st.columns(2)

            with col1:
                brand = st.text_input("Brand *", key='brand', placeholder="e.g. Highlands Coffee")
                product = st.text_input("Product *", key='product', placeholder="e.g. Cold brew 250ml")
                industry = st.selectbox("Industry", options=self.industries, key='industry')
                campaign_focus = st.radio(
                    "Campaign focus",
                    options=list(FOCUS_LABELS),
                    format_func=lambda focus: FOCUS_LABELS[focus],
                    key='campaign_focus'
                )

            with col2:
                product_price = st.number_input(
                    "Average order value (VND) *", min_value=0, step=10_000, key='product_price')
                timeline_weeks = st.number_input(
                    "Timeline (weeks) *", min_value=1, max_value=52, value=8, key='timeline_weeks')

                budget = 0
                revenue_target = 0
                if planning_mode in (PlanningMode.BUDGET_DRIVEN, PlanningMode.AUDIT):
                    budget = st.number_input(
                        "Total budget (VND) *", min_value=0, step=5_000_000, key='budget',
                        help="Media plus production. Full IMC plans need at least 50M VND.")
                if planning_mode in (PlanningMode.GOAL_DRIVEN, PlanningMode.AUDIT):
                    revenue_target = st.number_input(
                        "Revenue target (VND) *", min_value=0, step=10_000_000, key='revenue_target')

            st.markdown("**What do you already have?**")
            asset_cols = st.columns(3)
            with asset_cols[0]:
                has_website = st.checkbox("Website / landing page", value=True, key='has_website')
            with asset_cols[1]:
                has_customer_list = st.checkbox("Customer list (CRM)", value=True, key='has_customer_list')
            with asset_cols[2]:
                has_creative_assets = st.checkbox("Ready creative assets", value=True, key='has_creative_assets')

            submitted = st.form_submit_button("Calculate", type="primary")

        form_data = {
            'brand': brand.strip(),
            'product': product.strip(),
            'industry': '' if industry == 'General' else industry,
            'planning_mode': planning_mode.value,
            'campaign_focus': campaign_focus.value,
            'product_price': product_price,
            'timeline_weeks': timeline_weeks,
            'budget': budget,
            'revenue_target': revenue_target,
            'has_website': has_website,
            'has_customer_list': has_customer_list,
            'has_creative_assets': has_creative_assets,
        }
        return form_data, submitted


class MetricsPreview:
    """Forecast metrics and the feasibility verdict."""

    RISK_RENDERERS = {
        RiskLevel.LOW: st.success,
        RiskLevel.MEDIUM: st.info,
        RiskLevel.HIGH: st.warning,
        RiskLevel.IMPOSSIBLE: st.error,
    }

    def render(self, report: IMCReport):
        metrics = report.metrics
        st.subheader("📈 Forecast")

        cols = st.columns(4)
        cols[0].metric("Total budget", format_vnd(metrics.total_budget))
        cols[1].metric("Media", format_vnd(metrics.media_spend))
        cols[2].metric("Production", format_vnd(metrics.production_budget),
                       help=f"{metrics.production_ratio:.0%} of the total budget")
        cols[3].metric("ROAS", f"{metrics.implied_roas:.2f}x",
                       delta=f"benchmark {metrics.benchmark_roas:.1f}x", delta_color="off")

        cols = st.columns(3)
        cols[0].metric("Traffic", f"{metrics.estimated_traffic:,}")
        cols[1].metric("Orders", f"{metrics.estimated_orders:,}")
        cols[2].metric("Revenue", format_vnd(metrics.estimated_revenue))

        self._render_feasibility(metrics)
        if metrics.audit is not None:
            self._render_audit(metrics)

    def _render_feasibility(self, metrics: CalculatedMetrics):
        feasibility = metrics.feasibility
        render = self.RISK_RENDERERS[feasibility.risk_level]
        render(f"**{feasibility.risk_level.value}** · {feasibility.warning_message}")
        if feasibility.recommendation:
            st.caption(f"💡 {feasibility.recommendation}")

    def _render_audit(self, metrics: CalculatedMetrics):
        audit = metrics.audit
        with st.expander("🔍 Audit details", expanded=True):
            col1, col2 = st.columns(2)
            with col1:
                st.write("**Your budget can deliver**")
                st.write(f"{audit.achievable.estimated_orders:,} orders · "
                         f"{format_vnd_full(audit.achievable.estimated_revenue)}")
                st.write(f"Revenue gap: {format_vnd_full(audit.revenue_gap)}")
            with col2:
                st.write("**Your target requires**")
                st.write(f"{format_vnd_full(audit.required.total_budget)} total budget")
                st.write(f"Budget gap: {format_vnd_full(audit.budget_gap)}")


class DistributionDisplay:
    """Channel allocation table, phase chart and CSV export."""

    def render(self, distribution: BudgetDistribution, file_prefix: str = "imc_plan"):
        st.subheader("💰 Channel Allocation")

        for warning in distribution.warnings:
            st.warning(warning)

        if not distribution.channels:
            return

        df = distribution_to_dataframe(distribution)
        col1, col2 = st.columns([2, 1])

        with col1:
            st.dataframe(
                df.drop(columns=['Action']),
                use_container_width=True,
                hide_index=True,
                column_config={
                    'Share': st.column_config.NumberColumn(format="%.1f%%"),
                    'Total (VND)': st.column_config.NumberColumn(format="%d"),
                    'Media (VND)': st.column_config.NumberColumn(format="%d"),
                    'Production (VND)': st.column_config.NumberColumn(format="%d"),
                    'Estimated': st.column_config.NumberColumn(format="%d"),
                }
            )

        with col2:
            phase_df = phase_summary_dataframe(distribution)
            fig = px.pie(phase_df, values='Budget (VND)', names='Phase', title="Budget by phase")
            fig.update_traces(textposition='inside', textinfo='percent+label')
            st.plotly_chart(fig, use_container_width=True)

        with st.expander("✅ Action items"):
            for _, row in df.iterrows():
                st.write(f"**{row['Channel']}** ({row['Phase']}): {row['Action']}")

        st.download_button(
            "⬇️ Download allocation (CSV)",
            data=df.to_csv(index=False).encode('utf-8'),
            file_name=f"{file_prefix}_allocation.csv",
            mime="text/csv"
        )


class PlanDisplayComponent:
    """Narrative plan view."""

    def render(self, plan: IMCPlan):
        st.subheader(f"🧭 {plan.campaign_name}")
        st.markdown(f"**Big idea:** {plan.big_idea}")
        st.markdown(f"**Key message:** {plan.key_message}")

        if plan.strategic_foundation:
            with st.expander("Strategic foundation"):
                for key, value in plan.strategic_foundation.items():
                    label = key.replace('_obj', ' objective').replace('_', ' ').capitalize()
                    st.write(f"**{label}:** {value}")

        for warning in plan.validation_warnings:
            st.warning(f"⚠️ {warning}")

        for phase in plan.phases:
            with st.container(border=True):
                st.markdown(f"### {phase.phase.value} · {phase.week_range}")
                st.write(phase.objective_detail)
                st.markdown(f"> {phase.key_hook}")
                cols = st.columns(3)
                cols[0].metric("Budget share", f"{phase.budget_allocation:.0f}%")
                cols[1].metric("Media", format_vnd(phase.media_budget))
                cols[2].metric("Production", format_vnd(phase.production_budget))
                st.write(f"**Channels:** {', '.join(phase.channels)}")
                if phase.kpi_metric:
                    st.write(f"**KPI:** {phase.kpi_metric} · {phase.kpi_target}")


class SavedPlansManager:
    """List of saved plans with load and delete actions."""

    def render(self, plans: List[IMCPlan]) -> Dict[str, Any]:
        """
        Render saved plans.

        Returns:
            Dictionary with at most one of 'load' (plan) or 'delete' (plan id)
        """
        if not plans:
            st.info("No saved plans yet.")
            return {}

        actions = {}
        for plan in plans:
            title = f"{plan.campaign_name} · {plan.brand} · {plan.created_at.strftime('%Y-%m-%d %H:%M')}"
            with st.expander(title):
                st.write(f"**Product:** {plan.product}")
                st.write(f"**Budget:** {format_vnd_full(plan.total_budget)} over {plan.timeline_weeks} weeks")
                st.write(f"**Big idea:** {plan.big_idea}")

                col1, col2 = st.columns(2)
                with col1:
                    if st.button("Open", key=f"load_{plan.plan_id}"):
                        actions['load'] = plan
                with col2:
                    if st.button("Delete", key=f"delete_{plan.plan_id}"):
                        actions['delete'] = plan.plan_id

        return actions
