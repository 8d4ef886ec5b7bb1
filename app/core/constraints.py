"""Constraint utilities for commission plans."""
from typing import Sequence

from backend.core.errors import PlanValidationError
from backend.models.commission_schemas import CommissionPlan, CommissionPlanDraft


def validate_plan_draft(draft: CommissionPlanDraft) -> None:
    """Validate a plan draft before it is stored.

    Raises:
        PlanValidationError: If a constraint is violated.
    """
    if not draft.name.strip():
        raise PlanValidationError("Plan name must not be empty")

    if not draft.criteria:
        raise PlanValidationError(f"Plan '{draft.name}' needs at least one criterion")

    for index, criteria in enumerate(draft.criteria, start=1):
        if not criteria.name.strip():
            raise PlanValidationError(f"Criterion {index} of plan '{draft.name}' has no name")


def ensure_plans_available(plans: Sequence[CommissionPlan]) -> None:
    """At least one plan must exist before commissions are calculated."""
    if not plans:
        raise PlanValidationError("No commission plans configured")
