# core/rule_evaluator.py
"""
Rule evaluator: decides whether a criterion's gating conditions hold.

Operators:
  - equals       value == threshold
  - greaterThan  value >  threshold
  - lessThan     value <  threshold
  - between      min <= value <= max

Unrecognized operators or malformed values evaluate to False.
"""
import logging
from typing import Any, Iterable, Optional

from backend.models.commission_schemas import Condition, ConditionOperator, SalesData

logger = logging.getLogger(__name__)

AMOUNT_FIELD = "amount"


def evaluate(condition: Condition, value: float) -> bool:
    """Return True when ``condition`` holds for ``value``."""
    operator = condition.operator
    threshold = condition.value

    if operator == ConditionOperator.BETWEEN:
        try:
            low, high = threshold
        except (TypeError, ValueError):
            logger.warning(f"Malformed 'between' value {threshold!r}; condition fails closed")
            return False
        return low <= value <= high

    if isinstance(threshold, (tuple, list)):
        logger.warning(f"Operator '{operator}' got a range {threshold!r}; condition fails closed")
        return False

    if operator == ConditionOperator.EQUALS:
        return value == threshold
    if operator == ConditionOperator.GREATER_THAN:
        return value > threshold
    if operator == ConditionOperator.LESS_THAN:
        return value < threshold

    logger.warning(f"Unknown condition operator {operator!r}; condition fails closed")
    return False


def all_conditions_met(conditions: Optional[Iterable[Condition]], value: float) -> bool:
    """AND over ``conditions``; an empty or missing list holds."""
    if not conditions:
        return True
    return all(evaluate(condition, value) for condition in conditions)


def resolve_field(sale: SalesData, field: str) -> Optional[float]:
    """Look up ``field`` on a sale and coerce it to a number.

    An empty field or ``amount`` maps to the sale amount. Other names are
    looked up as model attributes first, then in ``extra_fields``.
    Returns None when the field is missing or not numeric.
    """
    if not field or field == AMOUNT_FIELD:
        return sale.amount

    raw: Any
    if field in SalesData.model_fields and field != "extra_fields":
        raw = getattr(sale, field)
    elif field in sale.extra_fields:
        raw = sale.extra_fields[field]
    else:
        logger.warning(f"Condition field '{field}' not found on sale {sale.id}")
        return None

    if isinstance(raw, bool):
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        logger.warning(f"Condition field '{field}' on sale {sale.id} is not numeric: {raw!r}")
        return None


def conditions_met_for_sale(
    conditions: Optional[Iterable[Condition]],
    sale: SalesData,
    resolve_fields: bool = False,
) -> bool:
    """Evaluate conditions against a sale.

    With ``resolve_fields`` off every condition compares against the sale
    amount. With it on, each condition reads its own ``field``.
    """
    if not conditions:
        return True
    if not resolve_fields:
        return all_conditions_met(conditions, sale.amount)

    for condition in conditions:
        value = resolve_field(sale, condition.field)
        if value is None or not evaluate(condition, value):
            return False
    return True
