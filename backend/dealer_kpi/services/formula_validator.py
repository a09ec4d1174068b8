"""
KPI formula validation.

Run on the admin side before a formula is saved. Unlike the engine, which
silently counts bad references as 0, the validator rejects formulas that
reference unknown KPIs, do not parse, or close a reference cycle.
"""

from __future__ import annotations

from dealer_kpi.core.exceptions import FormulaValidationError
from dealer_kpi.models.enums import CalculationType
from dealer_kpi.models.kpi import BrandData
from dealer_kpi.services.reference_resolver import ReferenceResolver
from dealer_kpi.utils.expression import is_well_formed
from dealer_kpi.utils.formula_tokens import extract_references, substitute_references

_FORMULA_TYPES = (CalculationType.FORMULA, CalculationType.TARGET)


def _resolved_references(expression: str, references: ReferenceResolver) -> list[str]:
    resolved: list[str] = []
    for token in extract_references(expression):
        ref_id = references.resolve(token)
        if ref_id and ref_id not in resolved:
            resolved.append(ref_id)
    return resolved


def build_reference_graph(brand_data: BrandData) -> dict[str, list[str]]:
    """
    KPI id -> ids it reads while being computed.

    Formula and target KPIs point at their resolved formula references,
    percentage KPIs at their numerator and denominator.
    """
    references = ReferenceResolver(brand_data.kpis)
    graph: dict[str, list[str]] = {}
    for kpi in brand_data.kpis:
        if kpi.calculation_type in _FORMULA_TYPES:
            expression = brand_data.formula_expressions.get(kpi.id)
            if expression:
                graph[kpi.id] = _resolved_references(expression, references)
        elif kpi.calculation_type == CalculationType.PERCENTAGE:
            graph[kpi.id] = [
                ref_id
                for ref_id in (kpi.numerator_kpi_id, kpi.denominator_kpi_id)
                if ref_id
            ]
    return graph


def find_formula_cycles(brand_data: BrandData) -> list[list[str]]:
    """
    Find reference cycles using DFS.

    Each cycle is returned as a path that starts and ends on the same id.
    """
    graph = build_reference_graph(brand_data)
    cycles: list[list[str]] = []
    done: set[str] = set()
    path: list[str] = []
    on_path: set[str] = set()

    def visit(node: str) -> None:
        path.append(node)
        on_path.add(node)
        for target in graph.get(node, []):
            if target in on_path:
                cycles.append(path[path.index(target):] + [target])
            elif target not in done:
                visit(target)
        on_path.discard(node)
        path.pop()
        done.add(node)

    for node in graph:
        if node not in done:
            visit(node)
    return cycles


def _find_path_back(
    graph: dict[str, list[str]],
    start: str,
    goal: str,
    visited: set[str],
) -> list[str] | None:
    if start == goal:
        return [start]
    if start in visited:
        return None
    visited.add(start)
    for target in graph.get(start, []):
        rest = _find_path_back(graph, target, goal, visited)
        if rest is not None:
            return [start] + rest
    return None


def validate_formula(kpi_id: str, expression: str, brand_data: BrandData) -> list[str]:
    """
    Validate a formula for kpi_id against the brand's KPI set.

    Returns:
        Resolved reference ids, in order of first appearance

    Raises:
        FormulaValidationError: If the formula cannot be saved as written
    """
    expression = (expression or "").strip()
    if not expression:
        raise FormulaValidationError("Formula expression is empty", kpi_id, expression)

    references = ReferenceResolver(brand_data.kpis)
    resolved: list[str] = []
    for token in extract_references(expression):
        ref_id = references.resolve(token)
        if ref_id is None:
            raise FormulaValidationError(
                f"Unknown KPI reference: {token!r}", kpi_id, expression
            )
        if ref_id == kpi_id:
            raise FormulaValidationError(
                "A formula cannot reference its own KPI", kpi_id, expression
            )
        if ref_id not in resolved:
            resolved.append(ref_id)

    if not is_well_formed(substitute_references(expression, lambda _token: 1.0)):
        raise FormulaValidationError("Formula is not a valid arithmetic expression", kpi_id, expression)

    graph = build_reference_graph(brand_data)
    graph[kpi_id] = resolved
    for ref_id in resolved:
        chain = _find_path_back(graph, ref_id, kpi_id, set())
        if chain is not None:
            raise FormulaValidationError(
                "Circular formula reference: " + " -> ".join([kpi_id] + chain),
                kpi_id,
                expression,
            )
    return resolved
