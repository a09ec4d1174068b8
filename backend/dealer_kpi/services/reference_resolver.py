"""
Formula reference resolution.

Maps a token found between {{ }} or [ ] to the id of a KPI in the active set:
an exact id match wins, otherwise the first KPI whose trimmed, case-folded
name matches. Unknown tokens resolve to None and callers count them as zero.
"""

from __future__ import annotations

from typing import Iterable, Optional

from dealer_kpi.models.kpi import Kpi
from dealer_kpi.utils.text import normalize


class ReferenceResolver:
    """Token -> KPI id lookup over one KPI set."""

    def __init__(self, kpis: Iterable[Kpi]):
        self._ids: set[str] = set()
        self._ids_by_name: dict[str, str] = {}
        for kpi in kpis:
            self._ids.add(kpi.id)
            # first KPI in list order owns a shared name
            self._ids_by_name.setdefault(normalize(kpi.name), kpi.id)

    def resolve(self, token: str) -> Optional[str]:
        token = str(token or "").strip()
        if token in self._ids:
            return token
        if not token:
            return None
        return self._ids_by_name.get(normalize(token))


def resolve_reference(token: str, kpis: Iterable[Kpi]) -> Optional[str]:
    """Resolve a single token against a KPI list."""
    return ReferenceResolver(kpis).resolve(token)
