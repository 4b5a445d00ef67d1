# Data layer for the IMC planner

from .parsers import BenchmarkCardParser
from .plan_store import PlanStore

__all__ = ['BenchmarkCardParser', 'PlanStore']
