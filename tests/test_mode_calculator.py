"""
Unit tests for the planning-mode calculator.
"""

import unittest
from dataclasses import replace

from business_logic.benchmarks import DEFAULT_BENCHMARKS
from business_logic.formatting import format_vnd
from business_logic.mode_calculator import ModeCalculator
from business_logic.plan_validator import ValidationError
from models.data_models import (
    AssetChecklist, CampaignFocus, IMCInput, PlanningMode, RiskLevel
)


class TestBudgetTiers(unittest.TestCase):
    """Production ratio tiers: 50M belongs to the small tier, 100M to the large one."""

    def test_tier_boundaries(self):
        cases = [
            (20_000_000, 0.30),
            (50_000_000, 0.30),
            (50_000_001, 0.25),
            (99_999_999, 0.25),
            (100_000_000, 0.15),
            (500_000_000, 0.15),
        ]
        for budget, expected in cases:
            self.assertEqual(DEFAULT_BENCHMARKS.tier_ratio(budget), expected, budget)

    def test_hundred_million_uses_large_tier(self):
        metrics = ModeCalculator().calculate_from_budget(100_000_000, 500_000, CampaignFocus.BRANDING)

        self.assertEqual(metrics.production_ratio, 0.15)
        self.assertAlmostEqual(metrics.production_budget, 15_000_000)
        self.assertAlmostEqual(metrics.media_spend, 85_000_000)
        self.assertEqual(metrics.estimated_traffic, 21_250)
        self.assertEqual(metrics.estimated_orders, 212)

    def test_uplift_keeps_tier(self):
        self.assertEqual(DEFAULT_BENCHMARKS.production_ratio(100_000_000, has_creative_assets=False), 0.25)
        self.assertEqual(DEFAULT_BENCHMARKS.production_ratio(99_000_000, has_creative_assets=False), 0.35)


class TestBudgetDriven(unittest.TestCase):
    """Budget -> traffic -> orders -> revenue."""

    def setUp(self):
        self.calculator = ModeCalculator()

    def test_conversion_budget_scenario(self):
        """50M budget, 200k AOV, conversion focus."""
        metrics = self.calculator.calculate_from_budget(50_000_000, 200_000, CampaignFocus.CONVERSION)

        self.assertEqual(metrics.planning_mode, PlanningMode.BUDGET_DRIVEN)
        self.assertEqual(metrics.production_ratio, 0.30)
        self.assertAlmostEqual(metrics.production_budget, 15_000_000)
        self.assertAlmostEqual(metrics.media_spend, 35_000_000)
        self.assertEqual(metrics.estimated_traffic, 8_750)
        self.assertEqual(metrics.estimated_orders, 175)
        self.assertEqual(metrics.estimated_revenue, 35_000_000)
        self.assertAlmostEqual(metrics.implied_roas, 0.7)
        self.assertEqual(metrics.benchmark_roas, 3.0)
        self.assertEqual(metrics.feasibility.risk_level, RiskLevel.LOW)
        self.assertTrue(metrics.feasibility.is_feasible)

    def test_branding_uses_lower_conversion_rate(self):
        metrics = self.calculator.calculate_from_budget(90_000_000, 500_000, CampaignFocus.BRANDING)

        self.assertEqual(metrics.production_ratio, 0.25)
        self.assertAlmostEqual(metrics.media_spend, 67_500_000)
        self.assertEqual(metrics.estimated_traffic, 16_875)
        self.assertEqual(metrics.estimated_orders, 168)
        self.assertEqual(metrics.estimated_revenue, 84_000_000)
        self.assertEqual(metrics.benchmark_roas, 1.5)

    def test_missing_creative_assets_raise_production_ratio(self):
        """75M without creative assets: 0.25 tier + 0.10 uplift."""
        metrics = self.calculator.calculate_from_budget(
            75_000_000, 200_000, CampaignFocus.CONVERSION,
            AssetChecklist(has_creative_assets=False))

        self.assertEqual(metrics.production_ratio, 0.35)
        self.assertAlmostEqual(metrics.production_budget, 26_250_000)
        self.assertAlmostEqual(metrics.media_spend, 48_750_000)

    def test_large_budget_tier(self):
        metrics = self.calculator.calculate_from_budget(200_000_000, 200_000, CampaignFocus.CONVERSION)
        self.assertEqual(metrics.production_ratio, 0.15)
        self.assertAlmostEqual(metrics.production_budget, 30_000_000)

    def test_production_floor(self):
        metrics = self.calculator.calculate_from_budget(10_000_000, 200_000, CampaignFocus.CONVERSION)
        self.assertAlmostEqual(metrics.production_budget, 5_000_000)
        self.assertAlmostEqual(metrics.media_spend, 5_000_000)

    def test_budget_below_production_floor(self):
        metrics = self.calculator.calculate_from_budget(4_000_000, 200_000, CampaignFocus.CONVERSION)

        self.assertAlmostEqual(metrics.production_budget, 4_000_000)
        self.assertAlmostEqual(metrics.media_spend, 0)
        self.assertEqual(metrics.estimated_orders, 0)
        self.assertEqual(metrics.implied_roas, 0)

    def test_totals_are_consistent(self):
        for budget in (20_000_000, 50_000_000, 73_500_000, 150_000_000):
            metrics = self.calculator.calculate_from_budget(budget, 350_000, CampaignFocus.CONVERSION)
            self.assertAlmostEqual(metrics.media_spend + metrics.production_budget, metrics.total_budget)
            self.assertAlmostEqual(metrics.implied_roas, metrics.estimated_revenue / metrics.total_budget)

    def test_injected_benchmarks(self):
        calculator = ModeCalculator(replace(DEFAULT_BENCHMARKS, cost_per_click=2_000))
        metrics = calculator.calculate_from_budget(50_000_000, 200_000, CampaignFocus.CONVERSION)
        self.assertEqual(metrics.estimated_traffic, 17_500)
        self.assertEqual(metrics.estimated_orders, 350)


class TestGoalDriven(unittest.TestCase):
    """Revenue target -> required budget."""

    def setUp(self):
        self.calculator = ModeCalculator()

    def test_target_grosses_up_in_large_tier(self):
        metrics = self.calculator.calculate_from_target(500_000_000, 300_000, CampaignFocus.CONVERSION)

        self.assertEqual(metrics.planning_mode, PlanningMode.GOAL_DRIVEN)
        self.assertEqual(metrics.estimated_orders, 1_667)
        self.assertEqual(metrics.estimated_traffic, 83_350)
        self.assertAlmostEqual(metrics.media_spend, 333_400_000)
        self.assertEqual(metrics.production_ratio, 0.15)
        self.assertEqual(metrics.total_budget, 392_235_295)
        self.assertEqual(metrics.estimated_revenue, 500_100_000)

    def test_round_trip_reaches_target(self):
        """Budget-driven on the computed budget delivers at least the target."""
        target = 500_000_000
        required = self.calculator.calculate_from_target(target, 300_000, CampaignFocus.CONVERSION)
        achieved = self.calculator.calculate_from_budget(
            required.total_budget, 300_000, CampaignFocus.CONVERSION)

        self.assertEqual(achieved.estimated_traffic, 83_350)
        self.assertEqual(achieved.estimated_orders, 1_667)
        self.assertGreaterEqual(achieved.estimated_revenue, target)

    def test_round_trip_across_targets(self):
        for focus in CampaignFocus:
            for target in (5_000_000, 60_000_000, 120_000_000, 900_000_000):
                required = self.calculator.calculate_from_target(target, 250_000, focus)
                achieved = self.calculator.calculate_from_budget(required.total_budget, 250_000, focus)
                self.assertGreaterEqual(achieved.estimated_revenue, target, f"{focus} {target}")

    def test_production_floor_applied_after_gross_up(self):
        metrics = self.calculator.calculate_from_target(2_000_000, 200_000, CampaignFocus.CONVERSION)

        self.assertAlmostEqual(metrics.media_spend, 2_000_000)
        self.assertAlmostEqual(metrics.production_budget, 5_000_000)
        self.assertEqual(metrics.total_budget, 7_000_000)

    def test_tier_gap_lifts_budget_past_boundary(self):
        """36M media is unreachable at exactly 50M (35M media), so the budget moves to the next tier."""
        metrics = self.calculator.calculate_from_target(36_000_000, 200_000, CampaignFocus.CONVERSION)

        self.assertAlmostEqual(metrics.media_spend, 36_000_000)
        self.assertEqual(metrics.total_budget, 50_000_001)
        achieved = self.calculator.calculate_from_budget(
            metrics.total_budget, 200_000, CampaignFocus.CONVERSION)
        self.assertGreaterEqual(achieved.media_spend, 36_000_000)

    def test_tier_gap_at_hundred_million(self):
        """80M media: the mid tier would need over 100M, and 100M itself is already in the large tier."""
        metrics = self.calculator.calculate_from_target(80_000_000, 200_000, CampaignFocus.CONVERSION)

        self.assertAlmostEqual(metrics.media_spend, 80_000_000)
        self.assertEqual(metrics.total_budget, 100_000_000)
        self.assertEqual(metrics.production_ratio, 0.15)
        achieved = self.calculator.calculate_from_budget(
            metrics.total_budget, 200_000, CampaignFocus.CONVERSION)
        self.assertGreaterEqual(achieved.estimated_revenue, 80_000_000)


class TestAudit(unittest.TestCase):
    """Budget vs target comparison."""

    def setUp(self):
        self.calculator = ModeCalculator()

    def test_impossible_target(self):
        """500M target on a 20M budget."""
        metrics = self.calculator.audit_plan(20_000_000, 500_000_000, 300_000, CampaignFocus.CONVERSION)

        self.assertEqual(metrics.planning_mode, PlanningMode.AUDIT)
        self.assertAlmostEqual(metrics.implied_roas, 25.0)
        self.assertEqual(metrics.feasibility.risk_level, RiskLevel.IMPOSSIBLE)
        self.assertFalse(metrics.feasibility.is_feasible)
        recommendation = metrics.feasibility.recommendation
        self.assertIn("Raise the budget", recommendation)
        self.assertIn(format_vnd(392_235_295), recommendation)
        self.assertIn(format_vnd(21_000_000), recommendation)

        audit = metrics.audit
        self.assertEqual(audit.achievable.total_budget, 20_000_000)
        self.assertEqual(audit.achievable.estimated_revenue, 21_000_000)
        self.assertEqual(audit.required.total_budget, 392_235_295)
        self.assertEqual(audit.budget_gap, 372_235_295)
        self.assertEqual(audit.revenue_gap, 479_000_000)

        # Reported funnel is what the budget buys
        self.assertEqual(metrics.estimated_orders, 70)
        self.assertEqual(metrics.total_budget, 20_000_000)

    def test_high_risk_recommends_half_gap(self):
        metrics = self.calculator.audit_plan(100_000_000, 900_000_000, 300_000, CampaignFocus.CONVERSION)

        self.assertEqual(metrics.feasibility.risk_level, RiskLevel.HIGH)
        # 900M at 300k needs 600M media, grossed up at 0.15 to 705,882,353
        self.assertEqual(metrics.audit.budget_gap, 605_882_353)
        recommendation = metrics.feasibility.recommendation
        self.assertIn("half of the", recommendation)
        self.assertIn(format_vnd(605_882_353 / 2), recommendation)
        self.assertIn(format_vnd(605_882_353), recommendation)

    def test_healthy_audit_has_no_gaps(self):
        metrics = self.calculator.audit_plan(200_000_000, 100_000_000, 300_000, CampaignFocus.CONVERSION)

        self.assertEqual(metrics.feasibility.risk_level, RiskLevel.LOW)
        self.assertEqual(metrics.audit.budget_gap, 0)
        self.assertGreaterEqual(metrics.audit.revenue_gap, 0)


class TestCalculateDispatch(unittest.TestCase):
    """Mode dispatch and input validation."""

    def setUp(self):
        self.calculator = ModeCalculator()

    def make_input(self, **overrides):
        values = dict(
            product_price=200_000,
            timeline_weeks=8,
            industry="FMCG",
            planning_mode=PlanningMode.BUDGET_DRIVEN,
            campaign_focus=CampaignFocus.CONVERSION,
            budget=50_000_000,
        )
        values.update(overrides)
        return IMCInput(**values)

    def test_dispatches_each_mode(self):
        self.assertEqual(
            self.calculator.calculate(self.make_input()).planning_mode, PlanningMode.BUDGET_DRIVEN)
        self.assertEqual(
            self.calculator.calculate(self.make_input(
                planning_mode=PlanningMode.GOAL_DRIVEN, budget=None, revenue_target=100_000_000)
            ).planning_mode,
            PlanningMode.GOAL_DRIVEN)
        self.assertEqual(
            self.calculator.calculate(self.make_input(
                planning_mode=PlanningMode.AUDIT, revenue_target=100_000_000)
            ).planning_mode,
            PlanningMode.AUDIT)

    def test_missing_budget(self):
        with self.assertRaises(ValidationError) as ctx:
            self.calculator.calculate(self.make_input(budget=None))
        self.assertEqual(ctx.exception.field, 'budget')

    def test_missing_target_for_audit(self):
        with self.assertRaises(ValidationError) as ctx:
            self.calculator.calculate(self.make_input(planning_mode=PlanningMode.AUDIT))
        self.assertEqual(ctx.exception.field, 'revenue_target')

    def test_non_positive_values(self):
        for overrides, field in (
            ({'product_price': 0}, 'product_price'),
            ({'timeline_weeks': 0}, 'timeline_weeks'),
            ({'budget': -1}, 'budget'),
        ):
            with self.assertRaises(ValidationError) as ctx:
                self.calculator.calculate(self.make_input(**overrides))
            self.assertEqual(ctx.exception.field, field)

    def test_unknown_focus(self):
        with self.assertRaises(ValidationError) as ctx:
            self.calculator.calculate(self.make_input(campaign_focus="AWARENESS"))
        self.assertEqual(ctx.exception.field, 'campaign_focus')

    def test_results_are_immutable(self):
        metrics = self.calculator.calculate(self.make_input())
        with self.assertRaises(Exception):
            metrics.total_budget = 1


if __name__ == '__main__':
    unittest.main()
