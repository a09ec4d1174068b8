"""
Reference tokenizer for KPI formula strings.

A formula refers to other KPIs as {{token}} or [token], where token is a KPI
id or display name. Scanning rules:
- inside {{...}} the first "}}" closes the reference, inside [...] the first "]"
- an opening delimiter with no closing one is kept as literal text
- no nesting and no escaping
- an empty reference ({{ }}, []) is still a reference, it resolves to nothing
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Iterator


@dataclass(frozen=True)
class FormulaSegment:
    """Literal text or a (trimmed) reference token."""

    text: str
    is_reference: bool = False


def iter_segments(expr: str) -> Iterator[FormulaSegment]:
    literal: list[str] = []
    i = 0
    length = len(expr)

    while i < length:
        if expr.startswith("{{", i):
            opener, closer = "{{", "}}"
        elif expr[i] == "[":
            opener, closer = "[", "]"
        else:
            literal.append(expr[i])
            i += 1
            continue

        end = expr.find(closer, i + len(opener))
        if end == -1:
            literal.append(expr[i:])
            break
        if literal:
            yield FormulaSegment("".join(literal))
            literal = []
        yield FormulaSegment(expr[i + len(opener):end].strip(), is_reference=True)
        i = end + len(closer)

    if literal:
        yield FormulaSegment("".join(literal))


def extract_references(expr: str) -> list[str]:
    """Reference tokens in order of appearance (duplicates kept)."""
    return [segment.text for segment in iter_segments(expr or "") if segment.is_reference]


def format_number(value: float) -> str:
    """Plain decimal rendering the expression evaluator can read back."""
    if not math.isfinite(value) or value == 0:
        return "0"
    return format(Decimal(repr(float(value))), "f")


def substitute_references(expr: str, replace: Callable[[str], float]) -> str:
    """Render expr with every reference replaced by replace(token)."""
    parts: list[str] = []
    for segment in iter_segments(expr or ""):
        if segment.is_reference:
            parts.append(format_number(replace(segment.text)))
        else:
            parts.append(segment.text)
    return "".join(parts)
