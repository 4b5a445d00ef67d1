"""
Main entry point for the IMC Planner application.
"""
import logging
import streamlit as st

from business_logic.imc_plan_controller import IMCPlanController
from ui.components import (
    DistributionDisplay, IMCPlannerForm, MetricsPreview, PlanDisplayComponent,
    SavedPlansManager, display_notification
)

# Set up logging
logger = logging.getLogger(__name__)


def get_controller() -> IMCPlanController:
    if 'controller' not in st.session_state:
        st.session_state['controller'] = IMCPlanController()
    return st.session_state['controller']


def render_planner(controller: IMCPlanController):
    form_data, submitted = IMCPlannerForm().render()

    if submitted:
        ok, imc_input, notification = controller.parse_input(form_data)
        if not ok:
            display_notification(notification)
            st.session_state.pop('report', None)
            return

        success, report, message, notification = controller.preview(imc_input)
        display_notification(notification)
        if not success:
            st.session_state.pop('report', None)
            return

        st.session_state['imc_input'] = imc_input
        st.session_state['brief'] = {'brand': form_data['brand'], 'product': form_data['product']}
        st.session_state['report'] = report
        st.session_state.pop('plan', None)
        logger.info(message)

    report = st.session_state.get('report')
    if report is None:
        return

    MetricsPreview().render(report)
    if report.distribution is not None:
        DistributionDisplay().render(report.distribution)

    if report.distribution is None:
        return

    st.divider()
    brief = st.session_state['brief']
    if st.button("🚀 Generate IMC narrative", type="primary", use_container_width=True):
        with st.spinner("🤖 Writing the campaign narrative..."):
            success, plan, message, notification = controller.generate_plan(
                brief['brand'], brief['product'], st.session_state['imc_input'])
        if success:
            st.session_state['plan'] = plan
            st.success(f"✅ {message}")
        else:
            display_notification(notification)

    plan = st.session_state.get('plan')
    if plan is not None:
        PlanDisplayComponent().render(plan)
        if st.button("💾 Save plan"):
            saved, message, notification = controller.save_plan(plan)
            if saved:
                st.success(message)
            else:
                display_notification(notification)


def render_saved_plans(controller: IMCPlanController):
    plans, notification = controller.get_plans()
    display_notification(notification)

    actions = SavedPlansManager().render(plans)
    if 'delete' in actions:
        deleted, message, notification = controller.delete_plan(actions['delete'])
        if deleted:
            st.success(message)
            st.rerun()
        elif notification:
            display_notification(notification)
        else:
            st.warning(message)
    if 'load' in actions:
        PlanDisplayComponent().render(actions['load'])


def main():
    """Main application entry point."""
    st.set_page_config(
        page_title="IMC Planner",
        page_icon="🎯",
        layout="wide",
        initial_sidebar_state="expanded"
    )

    st.title("🎯 IMC Planner")
    st.markdown("Budget, feasibility and channel mix for integrated marketing campaigns")

    controller = get_controller()
    display_notification(controller.benchmark_notification)

    planner_tab, saved_tab = st.tabs(["Planner", "Saved plans"])
    with planner_tab:
        render_planner(controller)
    with saved_tab:
        render_saved_plans(controller)


if __name__ == "__main__":
    main()
