"""
File-based storage for generated IMC plans.
"""

import logging
import json
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Any
from dataclasses import asdict

from models.data_models import IMCExecutionPhase, IMCPlan, Phase

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class PlanStore:
    """
    Stores IMC plans as one JSON file per plan.

    Saving a plan whose id already exists replaces it.
    """

    def __init__(self, plans_dir: str = "saved_plans"):
        """
        Initialize the store.

        Args:
            plans_dir: Directory holding the plan files (created if missing)
        """
        self.plans_dir = Path(plans_dir)
        self.plans_dir.mkdir(parents=True, exist_ok=True)

    def _plan_path(self, plan_id: str) -> Path:
        """
        File path for a plan id.

        Raises:
            ValueError: If the id is empty or has characters other than
                letters, digits, "-" and "_"
        """
        safe_id = "".join(c for c in str(plan_id) if c.isalnum() or c in "-_")
        if not safe_id or safe_id != plan_id:
            raise ValueError(f"Invalid plan id: {plan_id!r}")
        return self.plans_dir / f"{safe_id}.json"

    def save_plan(self, plan: IMCPlan) -> str:
        """
        Write a plan to disk.

        Returns:
            Path of the written file

        Raises:
            OSError: If the file cannot be written
        """
        path = self._plan_path(plan.plan_id)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(plan), f, indent=2, ensure_ascii=False)

        logger.info(f"Saved plan {plan.plan_id} ({plan.campaign_name})")
        return str(path)

    def get_plan(self, plan_id: str) -> Optional[IMCPlan]:
        """Load one plan, or None when it does not exist."""
        path = self._plan_path(plan_id)
        if not path.exists():
            return None

        with open(path, 'r', encoding='utf-8') as f:
            return self.from_dict(json.load(f))

    def get_plans(self) -> List[IMCPlan]:
        """
        Load every saved plan, newest first.

        Files that cannot be parsed are skipped with a warning.
        """
        plans = []
        for path in self.plans_dir.glob("*.json"):
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    plans.append(self.from_dict(json.load(f)))
            except (json.JSONDecodeError, KeyError, ValueError, TypeError) as e:
                logger.warning(f"Skipping unreadable plan file {path.name}: {str(e)}")

        plans.sort(key=lambda plan: plan.created_at, reverse=True)
        return plans

    def delete_plan(self, plan_id: str) -> bool:
        """Delete a plan. Returns False when it did not exist."""
        path = self._plan_path(plan_id)
        if not path.exists():
            return False

        path.unlink()
        logger.info(f"Deleted plan {plan_id}")
        return True

    @staticmethod
    def to_dict(plan: IMCPlan) -> Dict[str, Any]:
        data = asdict(plan)
        data['created_at'] = plan.created_at.isoformat()
        for phase in data['phases']:
            phase['phase'] = Phase(phase['phase']).value
        return data

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> IMCPlan:
        """
        Rebuild a plan from its stored form.

        Raises:
            KeyError: If a required field is missing
            ValueError: If the payload is not an object, or a phase name or
                timestamp is invalid
        """
        if not isinstance(data, dict):
            raise ValueError(f"Plan data must be an object, got {type(data).__name__}")

        phases = [
            IMCExecutionPhase(
                phase=Phase(phase_data['phase']),
                objective_detail=phase_data.get('objective_detail', ''),
                key_hook=phase_data.get('key_hook', ''),
                channels=list(phase_data.get('channels', [])),
                budget_allocation=float(phase_data.get('budget_allocation', 0.0)),
                kpi_metric=phase_data.get('kpi_metric', ''),
                kpi_target=phase_data.get('kpi_target', ''),
                week_range=phase_data.get('week_range', ''),
                media_budget=float(phase_data.get('media_budget', 0.0)),
                production_budget=float(phase_data.get('production_budget', 0.0))
            )
            for phase_data in data.get('phases', [])
        ]

        return IMCPlan(
            plan_id=data['plan_id'],
            brand=data['brand'],
            product=data['product'],
            industry=data.get('industry', ''),
            campaign_name=data['campaign_name'],
            big_idea=data.get('big_idea', ''),
            key_message=data.get('key_message', ''),
            strategic_foundation=data.get('strategic_foundation') or {},
            total_budget=float(data['total_budget']),
            timeline_weeks=int(data['timeline_weeks']),
            phases=phases,
            created_at=datetime.fromisoformat(data['created_at']),
            metrics=data.get('metrics'),
            distribution=data.get('distribution'),
            validation_warnings=list(data.get('validation_warnings', []))
        )
