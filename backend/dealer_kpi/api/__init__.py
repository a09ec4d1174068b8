"""API routers."""

from dealer_kpi.api import kpi

__all__ = [
    "kpi",
]
