"""
Integration tests for the IMC engine entry points.
"""

import unittest
from dataclasses import replace

from business_logic.benchmarks import DEFAULT_BENCHMARKS
from business_logic.imc_engine import IMCEngine, compute_distribution, compute_metrics
from business_logic.plan_validator import ValidationError
from models.data_models import (
    AssetChecklist, CampaignFocus, IMCInput, PlanningMode, RiskLevel
)


def make_input(**overrides):
    values = dict(
        product_price=200_000,
        timeline_weeks=8,
        industry="",
        planning_mode=PlanningMode.BUDGET_DRIVEN,
        campaign_focus=CampaignFocus.CONVERSION,
        budget=50_000_000,
    )
    values.update(overrides)
    return IMCInput(**values)


class TestIMCEngine(unittest.TestCase):

    def setUp(self):
        self.engine = IMCEngine()

    def test_module_functions(self):
        metrics = compute_metrics(make_input())
        self.assertEqual(metrics.estimated_orders, 175)

        distribution = compute_distribution(50_000_000, CampaignFocus.CONVERSION)
        self.assertEqual(distribution.media_budget, 35_000_000)

    def test_budget_driven_report(self):
        report = self.engine.build_report(make_input())

        self.assertEqual(report.metrics.estimated_orders, 175)
        self.assertIsNotNone(report.distribution)
        self.assertEqual(report.distribution.total_budget, 50_000_000)
        self.assertEqual(report.distribution.production_budget, 15_000_000)

    def test_goal_driven_report_allocates_computed_budget(self):
        report = self.engine.build_report(make_input(
            planning_mode=PlanningMode.GOAL_DRIVEN, budget=None,
            revenue_target=500_000_000, product_price=300_000))

        self.assertEqual(report.metrics.total_budget, 392_235_295)
        self.assertEqual(report.distribution.total_budget, 392_235_295)
        self.assertEqual(
            sum(c.total_allocation for c in report.distribution.channels),
            report.distribution.media_budget
        )

    def test_audit_below_minimum_budget(self):
        imc_input = make_input(
            planning_mode=PlanningMode.AUDIT, budget=20_000_000,
            revenue_target=500_000_000, product_price=300_000)

        metrics = self.engine.compute_metrics(imc_input)
        self.assertEqual(metrics.feasibility.risk_level, RiskLevel.IMPOSSIBLE)

        with self.assertRaises(ValidationError) as ctx:
            self.engine.build_report(imc_input)
        self.assertEqual(ctx.exception.field, 'total_budget')

    def test_metrics_only_report(self):
        report = self.engine.build_report(make_input(budget=20_000_000), include_distribution=False)
        self.assertIsNone(report.distribution)
        self.assertEqual(report.metrics.total_budget, 20_000_000)

    def test_minimum_budget_gate(self):
        self.assertEqual(self.engine.validate_total_budget(50_000_000), 50_000_000)
        with self.assertRaises(ValidationError):
            self.engine.validate_total_budget(49_999_999)

    def test_assets_flow_into_distribution(self):
        report = self.engine.build_report(make_input(
            budget=75_000_000,
            assets=AssetChecklist(has_website=False, has_creative_assets=False)))

        self.assertEqual(report.metrics.production_ratio, 0.35)
        self.assertEqual(report.distribution.production_ratio, 0.35)
        self.assertEqual(len(report.distribution.disabled_channels), 2)

    def test_injected_benchmarks(self):
        engine = IMCEngine(replace(DEFAULT_BENCHMARKS, min_total_budget=10_000_000))
        report = engine.build_report(make_input(budget=20_000_000))
        self.assertIsNotNone(report.distribution)

    def test_repeated_calls_are_independent(self):
        first = self.engine.build_report(make_input())
        second = self.engine.build_report(make_input())
        self.assertEqual(first, second)
        self.assertIsNot(first.distribution.channels, second.distribution.channels)


if __name__ == '__main__':
    unittest.main()
