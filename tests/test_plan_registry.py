"""Tests for the plan registry and plan constraints."""
from datetime import timedelta

import pytest

from app.core.constraints import ensure_plans_available, validate_plan_draft
from app.core.plan_registry import PlanRegistry
from backend.core.errors import PlanNotFoundError, PlanValidationError
from backend.models.commission_schemas import CommissionCriteria, CommissionPlanDraft

from conftest import FIXED_NOW


def _draft(name="Standard", business_line="line1", criteria=None):
    if criteria is None:
        criteria = [CommissionCriteria(name="Base", type="percentage", value=5)]
    return CommissionPlanDraft(name=name, business_line=business_line, criteria=criteria)


@pytest.fixture
def registry(id_factory, clock):
    return PlanRegistry(id_factory=id_factory, clock=clock)


class TestConstraints:
    def test_valid_draft_passes(self):
        validate_plan_draft(_draft())

    @pytest.mark.parametrize("draft", [
        _draft(name="   "),
        _draft(criteria=[]),
        _draft(criteria=[CommissionCriteria(name="", value=5)]),
    ])
    def test_invalid_drafts(self, draft):
        with pytest.raises(PlanValidationError):
            validate_plan_draft(draft)

    def test_plans_required(self):
        with pytest.raises(PlanValidationError, match="No commission plans"):
            ensure_plans_available([])


class TestPlanRegistry:
    def test_create_assigns_ids_and_timestamps(self, registry):
        plan = registry.create(_draft())

        assert plan.id == "id-1"
        assert plan.criteria[0].id == "id-2"
        assert plan.created_at == plan.updated_at == FIXED_NOW
        assert registry.list() == [plan]

    def test_existing_criteria_ids_are_kept(self, registry):
        plan = registry.create(_draft(criteria=[CommissionCriteria(id="base", name="Base", value=5)]))
        assert plan.criteria[0].id == "base"

    def test_update_keeps_identity(self, id_factory):
        times = iter([FIXED_NOW, FIXED_NOW + timedelta(days=1)])
        registry = PlanRegistry(id_factory=id_factory, clock=lambda: next(times))

        created = registry.create(_draft())
        updated = registry.update(created.id, _draft(name="Renamed", business_line="line2"))

        assert updated.id == created.id
        assert updated.name == "Renamed"
        assert updated.business_line.value == "line2"
        assert updated.created_at == created.created_at
        assert updated.updated_at > created.updated_at

    def test_list_keeps_insertion_order(self, registry):
        first = registry.create(_draft(name="First"))
        second = registry.create(_draft(name="Second"))
        registry.update(first.id, _draft(name="First v2"))

        assert [p.id for p in registry.list()] == [first.id, second.id]

    def test_invalid_draft_is_not_stored(self, registry):
        with pytest.raises(PlanValidationError):
            registry.create(_draft(criteria=[]))
        assert registry.list() == []

    def test_unknown_ids(self, registry):
        with pytest.raises(PlanNotFoundError, match="Plan not found: nope"):
            registry.get("nope")
        with pytest.raises(PlanNotFoundError):
            registry.update("nope", _draft())
        with pytest.raises(PlanNotFoundError):
            registry.delete("nope")

    def test_delete_and_clear(self, registry):
        a = registry.create(_draft(name="A"))
        registry.create(_draft(name="B"))

        registry.delete(a.id)
        assert [p.name for p in registry.list()] == ["B"]

        registry.clear()
        assert registry.list() == []

    def test_load_from_config_definitions(self, registry):
        plans = registry.load([
            {
                "name": "Line 2 Standard",
                "businessLine": "line2",
                "criteria": [
                    {"name": "Base", "type": "percentage", "value": 7.5},
                    {
                        "name": "Band",
                        "type": "fixed",
                        "value": 100,
                        "conditions": [{"field": "amount", "operator": "between", "value": [1000, 5000]}],
                    },
                ],
            },
        ])

        assert len(plans) == 1
        assert plans[0].business_line.value == "line2"
        assert plans[0].criteria[1].conditions[0].value == (1000, 5000)
