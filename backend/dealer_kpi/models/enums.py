"""
Enum definitions for the application.

These enums are used across models and provide type-safe values for KPI
calculation strategies and dashboard derivations.
"""

from enum import Enum


class CalculationType(str, Enum):
    """How a KPI's daily and month-to-date values are derived."""

    DIRECT = "direct"
    CUMULATIVE = "cumulative"
    FORMULA = "formula"
    PERCENTAGE = "percentage"
    TARGET = "target"


class ProgressStatus(str, Enum):
    """Month-to-date progress against target."""

    ACHIEVED = "achieved"
    NEAR = "near"
    BELOW = "below"
    NONE = "none"  # no target defined


class TrendDirection(str, Enum):
    """Direction of change between two readings."""

    UP = "up"
    DOWN = "down"
    FLAT = "flat"
    NONE = "none"  # no previous reading


class KpiSortMode(str, Enum):
    """Row ordering for the multi-brand overview."""

    NAME = "name"
    AVG_PROGRESS_DESC = "avg_progress_desc"
    AVG_PROGRESS_ASC = "avg_progress_asc"
