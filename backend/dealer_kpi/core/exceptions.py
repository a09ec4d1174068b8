"""
Custom exceptions for the application.

The KPI engine itself never raises for bad data; these are used by the
admin-side validators and the HTTP layer.
"""

from typing import Any, Optional


class DealerKpiError(Exception):
    """Base exception for dealer-kpi."""

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class BusinessLogicError(DealerKpiError):
    """Business logic constraint violation."""

    pass


class FormulaValidationError(BusinessLogicError):
    """A KPI formula cannot be saved as written."""

    def __init__(self, message: str, kpi_id: str, expression: str):
        super().__init__(message, details={"kpi_id": kpi_id, "expression": expression})
        self.kpi_id = kpi_id
        self.expression = expression
