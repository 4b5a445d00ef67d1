"""
Tests for the IMC plan controller workflow.
"""

import shutil
import tempfile
import unittest
from unittest.mock import Mock, patch

from business_logic.benchmarks import DEFAULT_BENCHMARKS
from business_logic.imc_plan_controller import IMCPlanController
from business_logic.narrative_generator import NarrativeGenerationError
from config.settings import AppConfig
from data.plan_store import PlanStore
from models.data_models import CampaignFocus, IMCInput, PlanningMode, RiskLevel


def make_input(**overrides):
    values = dict(
        product_price=300_000,
        timeline_weeks=8,
        industry="FMCG",
        planning_mode=PlanningMode.BUDGET_DRIVEN,
        campaign_focus=CampaignFocus.CONVERSION,
        budget=50_000_000,
    )
    values.update(overrides)
    return IMCInput(**values)


class TestIMCPlanController(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.generator = Mock()
        self.controller = IMCPlanController(
            benchmarks=DEFAULT_BENCHMARKS,
            plan_store=PlanStore(self.temp_dir),
            narrative_generator=self.generator
        )

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_parse_input(self):
        ok, imc_input, notification = self.controller.parse_input({
            'planning_mode': 'AUDIT', 'campaign_focus': 'CONVERSION',
            'product_price': '300,000', 'timeline_weeks': 8,
            'budget': '20,000,000', 'revenue_target': '500,000,000',
        })
        self.assertTrue(ok)
        self.assertIsNone(notification)
        self.assertEqual(imc_input.revenue_target, 500_000_000)

    def test_parse_input_error(self):
        ok, imc_input, notification = self.controller.parse_input({'product_price': 'lots'})

        self.assertFalse(ok)
        self.assertIsNone(imc_input)
        self.assertEqual(notification['title'], 'Input Error')
        self.assertEqual(notification['field'], 'product_price')

    def test_preview_full_plan(self):
        success, report, message, notification = self.controller.preview(make_input())

        self.assertTrue(success)
        self.assertIsNone(notification)
        self.assertIsNotNone(report.distribution)
        self.assertIn("BUDGET_DRIVEN", message)
        self.assertIn("8 channels", message)

    def test_preview_below_minimum_keeps_metrics(self):
        """20M audit against a 500M target."""
        success, report, message, notification = self.controller.preview(make_input(
            planning_mode=PlanningMode.AUDIT, budget=20_000_000, revenue_target=500_000_000))

        self.assertTrue(success)
        self.assertIsNone(report.distribution)
        self.assertEqual(report.metrics.feasibility.risk_level, RiskLevel.IMPOSSIBLE)
        self.assertEqual(notification['field'], 'total_budget')
        self.assertIn("50M", message)

    def test_preview_invalid_input(self):
        success, report, _, notification = self.controller.preview(make_input(budget=None))

        self.assertFalse(success)
        self.assertIsNone(report)
        self.assertEqual(notification['field'], 'budget')

    def test_generate_requires_brand(self):
        success, plan, _, notification = self.controller.generate_plan("  ", "Cold brew", make_input())

        self.assertFalse(success)
        self.assertEqual(notification['field'], 'brand')
        self.generator.generate_plan.assert_not_called()

    def test_generate_refuses_impossible_target(self):
        success, plan, message, notification = self.controller.generate_plan(
            "Highlands", "Cold brew",
            make_input(planning_mode=PlanningMode.AUDIT, budget=60_000_000, revenue_target=900_000_000))

        self.assertFalse(success)
        self.assertIsNone(plan)
        self.assertIn("Impossible target", message)
        self.assertEqual(notification['type'], 'error')
        self.assertIn("Raise the budget", notification['action'])
        self.generator.generate_plan.assert_not_called()

    def test_generate_refuses_budget_below_minimum(self):
        success, _, _, notification = self.controller.generate_plan(
            "Highlands", "Cold brew", make_input(budget=30_000_000))

        self.assertFalse(success)
        self.assertEqual(notification['field'], 'total_budget')

    def test_generate_plan_success(self):
        self.generator.generate_plan.return_value = Mock(campaign_name="Sip the Summer", validation_warnings=["w"])

        success, plan, message, notification = self.controller.generate_plan(
            " Highlands ", "Cold brew", make_input())

        self.assertTrue(success)
        self.assertIsNone(notification)
        self.assertEqual(message, "Generated plan 'Sip the Summer' with 1 warning(s)")

        brand, product, imc_input, report = self.generator.generate_plan.call_args.args
        self.assertEqual(brand, "Highlands")
        self.assertEqual(report.distribution.total_budget, 50_000_000)

    def test_generate_plan_narrative_failure(self):
        self.generator.generate_plan.side_effect = NarrativeGenerationError("The AI narrative was incomplete: x")

        success, plan, message, notification = self.controller.generate_plan("Highlands", "Cold brew", make_input())

        self.assertFalse(success)
        self.assertIsNone(plan)
        self.assertEqual(notification['message'], "The AI narrative was incomplete: x")

    def test_save_list_delete(self):
        plan = Mock()
        self.controller.plan_store = Mock()
        self.controller.plan_store.get_plans.return_value = [plan]
        self.controller.plan_store.delete_plan.side_effect = [True, False]

        ok, message, _ = self.controller.save_plan(Mock(campaign_name="Sip the Summer"))
        self.assertTrue(ok)
        self.assertEqual(message, "Saved plan 'Sip the Summer'")

        plans, notification = self.controller.get_plans()
        self.assertEqual(plans, [plan])
        self.assertIsNone(notification)

        self.assertEqual(self.controller.delete_plan("p1")[:2], (True, "Plan deleted"))
        self.assertEqual(self.controller.delete_plan("p1")[:2], (False, "Plan not found"))

    def test_storage_errors_become_notifications(self):
        self.controller.plan_store = Mock()
        self.controller.plan_store.save_plan.side_effect = PermissionError("denied")
        self.controller.plan_store.get_plans.side_effect = OSError("disk")

        ok, _, notification = self.controller.save_plan(Mock(campaign_name="x"))
        self.assertFalse(ok)
        self.assertEqual(notification['title'], 'Saved Plans Error')

        plans, notification = self.controller.get_plans()
        self.assertEqual(plans, [])
        self.assertIsNotNone(notification)


class TestBenchmarkLoading(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    @patch('business_logic.imc_plan_controller.config_manager')
    def test_configured_minimum_budget(self, mock_config):
        mock_config.load_config.return_value = AppConfig(min_total_budget=30_000_000)

        controller = IMCPlanController(plan_store=PlanStore(self.temp_dir))

        self.assertEqual(controller.benchmarks.min_total_budget, 30_000_000)
        self.assertIsNone(controller.benchmark_notification)

    @patch('business_logic.imc_plan_controller.config_manager')
    def test_missing_benchmark_card_falls_back(self, mock_config):
        mock_config.load_config.return_value = AppConfig(benchmark_file=f"{self.temp_dir}/missing.xlsx")

        controller = IMCPlanController(plan_store=PlanStore(self.temp_dir))

        self.assertEqual(controller.benchmarks.cost_per_click, DEFAULT_BENCHMARKS.cost_per_click)
        self.assertEqual(controller.benchmark_notification['title'], 'Benchmark Card Error')
        self.assertEqual(controller.benchmark_notification['type'], 'warning')


if __name__ == '__main__':
    unittest.main()
