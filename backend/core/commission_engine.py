# core/commission_engine.py
"""
Commission engine: applies commission plans to sales records.

For each sale the plan is picked by business line (first match in list
order), every criterion of the plan is applied independently and the
amounts are summed:

    percentage  amount = sale.amount * value / 100
    fixed       amount = value
    tiered      amount = sale.amount * value / 100   (no tier breakpoints yet)

A criterion whose conditions do not all hold contributes 0 and still shows
up in the breakdown. Batches are all-or-nothing: if any sale has no plan,
no calculation is returned.

Ids and timestamps come from an injected ``id_factory`` and ``clock`` so a
run can be reproduced exactly.
"""
import logging
import uuid
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

from backend.calc_engine.config.settings import EngineSettings
from backend.calc_engine.utils.logging_utils import LoggerAdapter
from backend.core.errors import NoMatchingPlanError, PlanConfigurationError
from backend.core.rule_evaluator import conditions_met_for_sale
from backend.models.commission_schemas import (
    CalculationDetail,
    CommissionCalculation,
    CommissionCriteria,
    CommissionPlan,
    CommissionSummaryRow,
    CriteriaType,
    SalesData,
)

logger = logging.getLogger(__name__)

IdFactory = Callable[[], str]
Clock = Callable[[], datetime]


def default_id_factory() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def find_plan_for_sale(sale: SalesData, plans: Sequence[CommissionPlan]) -> Optional[CommissionPlan]:
    """First plan in list order whose business line matches the sale."""
    for plan in plans:
        if plan.business_line == sale.business_line:
            return plan
    return None


def criteria_formula_amount(criteria: CommissionCriteria, sales_amount: float) -> float:
    """Amount produced by a criterion's formula, ignoring its conditions."""
    if criteria.type == CriteriaType.PERCENTAGE:
        return sales_amount * (criteria.value / 100)
    if criteria.type == CriteriaType.FIXED:
        return criteria.value
    if criteria.type == CriteriaType.TIERED:
        # TODO: tier breakpoints need a schema for bands and marginal rates
        return sales_amount * (criteria.value / 100)

    logger.warning(f"Unknown criteria type {criteria.type!r} on '{criteria.name}'; contributes 0")
    return 0.0


class CommissionEngine:
    """Computes commission calculations for sales under commission plans.

    Usage:
        engine = CommissionEngine(EngineSettings(), id_factory=ids, clock=clock)
        calculations = engine.calculate_commissions(sales, plans)
    """

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        id_factory: Optional[IdFactory] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.settings = settings or EngineSettings()
        self.id_factory = id_factory or default_id_factory
        self.clock = clock or utc_now
        self.logger = logging.getLogger(__name__)

    def criteria_amount(self, criteria: CommissionCriteria, sale: SalesData) -> float:
        """Amount one criterion contributes for a sale; 0 when gated out."""
        if criteria.conditions and not conditions_met_for_sale(
            criteria.conditions, sale, self.settings.resolve_condition_fields
        ):
            self.logger.debug(f"Criteria '{criteria.name}' gated out for sale {sale.id}")
            return 0.0
        return criteria_formula_amount(criteria, sale.amount)

    def calculate_commission(self, sale: SalesData, plan: CommissionPlan) -> CommissionCalculation:
        """Apply one plan to one sale.

        Args:
            sale: The sale to compute commission for.
            plan: The plan to apply; its business line is not checked here.

        Returns:
            A CommissionCalculation whose total equals the sum of its details.
        """
        details = [
            CalculationDetail(
                criteria_id=criteria.id,
                criteria_name=criteria.name,
                amount=self.criteria_amount(criteria, sale),
            )
            for criteria in plan.criteria
        ]
        total = sum((detail.amount for detail in details), 0.0)

        return CommissionCalculation(
            id=self.id_factory(),
            rep_id=sale.rep_id,
            rep_name=sale.rep_name,
            rep_email=sale.rep_email,
            plan_id=plan.id,
            plan_name=plan.name,
            sales_amount=sale.amount,
            commission_amount=total,
            calculation_date=self.clock(),
            details=details,
        )

    def check_plan_coverage(self, plans: Sequence[CommissionPlan]) -> None:
        """Reject duplicate business lines when uniqueness is required."""
        if not self.settings.require_unique_business_lines:
            return
        seen: Dict[str, str] = {}
        for plan in plans:
            line = plan.business_line.value
            if line in seen:
                raise PlanConfigurationError(
                    f"Plans '{seen[line]}' and '{plan.name}' both cover business line: {line}"
                )
            seen[line] = plan.name

    def calculate_commissions(
        self,
        sales: Sequence[SalesData],
        plans: Sequence[CommissionPlan],
    ) -> List[CommissionCalculation]:
        """Apply the matching plan to every sale, preserving input order.

        Raises:
            NoMatchingPlanError: a sale's business line has no plan. Raised
                before any calculation is built.
            PlanConfigurationError: duplicate business lines while
                ``require_unique_business_lines`` is set.
        """
        batch_logger = LoggerAdapter(self.logger, {'sales': len(sales), 'plans': len(plans)})
        batch_logger.info("Starting commission calculation")

        self.check_plan_coverage(plans)

        matched = []
        for sale in sales:
            plan = find_plan_for_sale(sale, plans)
            if plan is None:
                batch_logger.error(
                    f"No plan for business line '{sale.business_line.value}' (sale {sale.id})"
                )
                raise NoMatchingPlanError(sale.business_line.value, sale.id)
            self.logger.debug(f"Sale {sale.id} -> plan '{plan.name}'")
            matched.append((sale, plan))

        calculations = [self.calculate_commission(sale, plan) for sale, plan in matched]

        total = sum(calc.commission_amount for calc in calculations)
        batch_logger.info(f"Calculated {len(calculations)} commissions, total {total:.2f}")
        return calculations


def calculate_commission(sale: SalesData, plan: CommissionPlan) -> CommissionCalculation:
    """Single-plan form with default settings, uuid ids and UTC timestamps."""
    return CommissionEngine().calculate_commission(sale, plan)


def calculate_commissions(
    sales: Sequence[SalesData],
    plans: Sequence[CommissionPlan],
) -> List[CommissionCalculation]:
    """Batch form with default settings, uuid ids and UTC timestamps."""
    return CommissionEngine().calculate_commissions(sales, plans)


def summarize_calculations(
    calculations: Sequence[CommissionCalculation],
    group_by: str = "rep",
) -> List[CommissionSummaryRow]:
    """Total calculations per representative (``rep``) or per ``plan``.

    Rows come out in order of first appearance.
    """
    if group_by not in ("rep", "plan"):
        raise ValueError(f"group_by must be 'rep' or 'plan', got {group_by!r}")

    rows: "OrderedDict[str, Dict]" = OrderedDict()
    for calc in calculations:
        if group_by == "rep":
            key, label = calc.rep_id, calc.rep_name
        else:
            key, label = calc.plan_id, calc.plan_name
        row = rows.setdefault(key, {
            'key': key, 'label': label,
            'calculation_count': 0, 'sales_amount': 0.0, 'commission_amount': 0.0,
        })
        row['calculation_count'] += 1
        row['sales_amount'] += calc.sales_amount
        row['commission_amount'] += calc.commission_amount

    return [CommissionSummaryRow(**row) for row in rows.values()]
