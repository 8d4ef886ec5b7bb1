"""
In-memory registry of commission plans.

Assigns plan and criterion ids and the created/updated timestamps the
engine expects. Nothing is persisted; the registry lives as long as the
process.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from backend.core.commission_engine import Clock, IdFactory, default_id_factory, utc_now
from backend.core.errors import PlanNotFoundError
from backend.models.commission_schemas import CommissionPlan, CommissionPlanDraft

from .constraints import validate_plan_draft

logger = logging.getLogger(__name__)


class PlanRegistry:
    def __init__(self, id_factory: Optional[IdFactory] = None, clock: Optional[Clock] = None):
        self.id_factory = id_factory or default_id_factory
        self.clock = clock or utc_now
        # Insertion order is the plan order handed to the engine
        self._plans: Dict[str, CommissionPlan] = {}

    def _with_criteria_ids(self, draft: CommissionPlanDraft) -> List[Dict[str, Any]]:
        criteria = []
        for item in draft.criteria:
            data = item.model_dump()
            if not data["id"]:
                data["id"] = self.id_factory()
            criteria.append(data)
        return criteria

    def create(self, draft: CommissionPlanDraft) -> CommissionPlan:
        """Validate a draft and store it as a new plan."""
        validate_plan_draft(draft)
        now = self.clock()
        plan = CommissionPlan(
            id=self.id_factory(),
            name=draft.name,
            business_line=draft.business_line,
            criteria=self._with_criteria_ids(draft),
            created_at=now,
            updated_at=now,
        )
        self._plans[plan.id] = plan
        logger.info("Created plan %s (%s)", plan.id, plan.name)
        return plan

    def update(self, plan_id: str, draft: CommissionPlanDraft) -> CommissionPlan:
        """Replace a plan's content, keeping its id and creation time."""
        existing = self.get(plan_id)
        validate_plan_draft(draft)
        plan = CommissionPlan(
            id=existing.id,
            name=draft.name,
            business_line=draft.business_line,
            criteria=self._with_criteria_ids(draft),
            created_at=existing.created_at,
            updated_at=self.clock(),
        )
        self._plans[plan_id] = plan
        logger.info("Updated plan %s", plan_id)
        return plan

    def delete(self, plan_id: str) -> None:
        if plan_id not in self._plans:
            raise PlanNotFoundError(f"Plan not found: {plan_id}")
        del self._plans[plan_id]
        logger.info("Deleted plan %s", plan_id)

    def get(self, plan_id: str) -> CommissionPlan:
        plan = self._plans.get(plan_id)
        if plan is None:
            raise PlanNotFoundError(f"Plan not found: {plan_id}")
        return plan

    def list(self) -> List[CommissionPlan]:
        return list(self._plans.values())

    def clear(self) -> None:
        self._plans.clear()

    def load(self, plan_definitions: Iterable[Dict[str, Any]]) -> List[CommissionPlan]:
        """Create plans from config-style dicts (``name``, ``businessLine``, ``criteria``)."""
        created = [
            self.create(CommissionPlanDraft.model_validate(definition))
            for definition in plan_definitions
        ]
        if created:
            logger.info(f"✅ Loaded {len(created)} plans from configuration")
        return created
