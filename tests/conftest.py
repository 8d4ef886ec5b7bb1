"""Shared fixtures: deterministic ids and clock, sample sales and plans."""
import itertools
from datetime import datetime, timezone

import pytest

from backend.models.commission_schemas import (
    CommissionCriteria,
    CommissionPlan,
    Condition,
    SalesData,
)

FIXED_NOW = datetime(2024, 3, 31, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def id_factory():
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


def make_sale(amount, business_line="line1", sale_id="s1", **extra):
    return SalesData(
        id=sale_id,
        rep_id=f"rep-{sale_id}",
        rep_name=f"Rep {sale_id}",
        rep_email=f"{sale_id}@example.com",
        business_line=business_line,
        amount=amount,
        date=datetime(2024, 3, 15),
        extra_fields=extra,
    )


def make_plan(plan_id, business_line, criteria, name=None):
    return CommissionPlan(
        id=plan_id,
        name=name or f"Plan {plan_id}",
        business_line=business_line,
        criteria=criteria,
        created_at=FIXED_NOW,
        updated_at=FIXED_NOW,
    )


@pytest.fixture
def line1_plan():
    return make_plan("p1", "line1", [
        CommissionCriteria(id="c1", name="Base", type="percentage", value=10),
        CommissionCriteria(id="c2", name="Flat bonus", type="fixed", value=50),
        CommissionCriteria(
            id="c3", name="Band bonus", type="fixed", value=25,
            conditions=[Condition(field="amount", operator="between", value=[100, 200])],
        ),
    ])


@pytest.fixture
def line2_plan():
    return make_plan("p2", "line2", [
        CommissionCriteria(id="c4", name="Line 2 base", type="percentage", value=5),
    ])


@pytest.fixture
def sale_factory():
    return make_sale


@pytest.fixture
def plan_factory():
    return make_plan
