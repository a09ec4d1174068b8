"""Unit string interpretation shared by the engine and the dashboard."""

from __future__ import annotations

from typing import Optional

from dealer_kpi.models.kpi import UnitMeta
from dealer_kpi.utils.text import normalize

_PERCENT_UNITS = {"yüzde"}
_TL_UNITS = {"tl", "₺"}


def get_unit_meta(unit: Optional[str]) -> UnitMeta:
    trimmed = str(unit or "").strip()
    normalized = normalize(trimmed)
    return UnitMeta(
        is_percent=trimmed == "%" or normalized in _PERCENT_UNITS,
        is_tl=trimmed == "TL" or normalized in _TL_UNITS,
        label=trimmed or None,
    )
