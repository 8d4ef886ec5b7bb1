# core/errors.py
"""Exceptions raised by the commission engine and its collaborators."""
from typing import Optional


class CommissionError(Exception):
    """Base class for commission engine failures."""


class PlanConfigurationError(CommissionError):
    """Plan coverage or plan configuration does not allow a calculation."""


class NoMatchingPlanError(PlanConfigurationError):
    """No plan covers the business line of a sale."""

    def __init__(self, business_line: str, sale_id: Optional[str] = None):
        self.business_line = business_line
        self.sale_id = sale_id
        message = f"No commission plan found for business line: {business_line}"
        if sale_id:
            message += f" (sale {sale_id})"
        super().__init__(message)


class PlanValidationError(PlanConfigurationError, ValueError):
    """A plan draft failed validation."""


class PlanNotFoundError(CommissionError, KeyError):
    """Lookup of an unknown plan id."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Plan not found"


class IngestionError(CommissionError):
    """A sales source could not be read at all."""
