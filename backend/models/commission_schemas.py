# models/commission_schemas.py - Pydantic models for sales, plans and calculations
"""
These models mirror the records exchanged with the dashboard front-end.
Field names are snake_case in Python and camelCase on the wire
(``repId``, ``businessLine``, ``commissionAmount`` ...).

Inputs (SalesData, CommissionPlan) are frozen: the engine reads them and
never mutates them. CommissionCalculation is created fresh on every run.
"""
import math
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class BusinessLine(str, Enum):
    LINE1 = "line1"
    LINE2 = "line2"


class CriteriaType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    TIERED = "tiered"


class ConditionOperator(str, Enum):
    EQUALS = "equals"
    GREATER_THAN = "greaterThan"
    LESS_THAN = "lessThan"
    BETWEEN = "between"


class CommissionRecord(BaseModel):
    """Shared config: camelCase aliases, population by name, immutable."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class Condition(CommissionRecord):
    """Gate on a criterion.

    ``value`` is a single threshold, or a ``(min, max)`` pair for
    ``between`` (inclusive on both ends).
    """
    field: str = "amount"
    operator: ConditionOperator
    value: Union[float, Tuple[float, float]]

    @model_validator(mode="after")
    def _check_value_shape(self):
        if self.operator == ConditionOperator.BETWEEN:
            if not isinstance(self.value, tuple):
                raise ValueError("'between' conditions need a [min, max] pair")
            low, high = self.value
            if low > high:
                raise ValueError(f"'between' range is inverted: [{low}, {high}]")
        elif isinstance(self.value, tuple):
            raise ValueError(f"'{self.operator.value}' conditions take a single number")
        return self


class CommissionCriteria(CommissionRecord):
    """One rule inside a plan: a type, a value and optional gating conditions."""
    id: str = ""
    name: str
    type: CriteriaType = CriteriaType.PERCENTAGE
    value: float = 0.0
    conditions: Optional[List[Condition]] = None


class CommissionPlan(CommissionRecord):
    """Business-line scoped collection of criteria."""
    id: str
    name: str
    business_line: BusinessLine = BusinessLine.LINE1
    criteria: List[CommissionCriteria] = []
    created_at: datetime
    updated_at: datetime


class CommissionPlanDraft(CommissionRecord):
    """Plan as submitted by the configuration form, before ids and timestamps."""
    name: str
    business_line: BusinessLine = BusinessLine.LINE1
    criteria: List[CommissionCriteria] = []


class SalesData(CommissionRecord):
    """One observed sale. Unknown CSV columns travel in ``extra_fields``."""
    id: str
    rep_id: str = ""
    rep_name: str = ""
    rep_email: str = ""
    business_line: BusinessLine = BusinessLine.LINE1
    amount: float = Field(0.0, ge=0)
    date: Optional[datetime] = None
    extra_fields: Dict[str, Any] = {}


class CalculationDetail(CommissionRecord):
    criteria_id: str
    criteria_name: str
    amount: float


class CommissionCalculation(CommissionRecord):
    """Result of applying exactly one plan to exactly one sale."""
    id: str
    rep_id: str
    rep_name: str
    rep_email: str
    plan_id: str
    plan_name: str
    sales_amount: float
    commission_amount: float
    calculation_date: datetime
    details: List[CalculationDetail] = []

    @model_validator(mode="after")
    def _total_matches_details(self):
        total = sum(detail.amount for detail in self.details)
        if not math.isclose(total, self.commission_amount, rel_tol=1e-9, abs_tol=1e-9):
            raise ValueError(
                f"commission_amount {self.commission_amount} does not equal "
                f"the sum of details {total}"
            )
        return self


class CommissionSummaryRow(CommissionRecord):
    """Aggregated totals for one representative or one plan."""
    key: str
    label: str
    calculation_count: int = 0
    sales_amount: float = 0.0
    commission_amount: float = 0.0
