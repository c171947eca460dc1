"""Topology Validation Engine — Deterministic Rule-Based Short Detection.

Pure Python. No matrix work. Fully unit-testable.

Validates a circuit graph before analysis with 3 checks:
  1. Self-loops: components shorted directly or through a wire loop
  2. Wire paths: +V reaching GND through wires alone
  3. Dead ends: nets that only touch one edge

Input:  CircuitGraph (Pydantic model)
Output: ValidationResult with issues[], has_errors, has_warnings
"""

from __future__ import annotations

import logging
from collections import defaultdict

from circuit_engine.schemas.circuit import CircuitGraph, NodeKind
from circuit_engine.schemas.validation import Severity, ValidationIssue, ValidationResult
from circuit_engine.validation.traversal import has_wire_only_path

logger = logging.getLogger(__name__)


# ─── Internal Helpers ───


def _is_supply_pair(graph: CircuitGraph, a: str, b: str) -> bool:
    return {a, b} <= set(graph.supply_nodes())


# ═══════════════════════════════════════════════════════════
# Check 1: Self-Loops
# ═══════════════════════════════════════════════════════════


def check_direct_loops(graph: CircuitGraph) -> list[ValidationIssue]:
    """Component edges whose two ends sit on the same net."""
    issues: list[ValidationIssue] = []
    for edge in graph.edges.values():
        if edge.is_wire or edge.source_id != edge.target_id:
            continue
        if _is_supply_pair(graph, edge.source_id, edge.target_id):
            continue
        issues.append(
            ValidationIssue(
                severity=Severity.WARNING,
                message="Shorted component detected",
                component_ids=[edge.connection.id],
                node_ids=[edge.source_id],
                suggested_fix="Connect the component to different strips to create a PD.",
            )
        )
    return issues


def check_indirect_loops(graph: CircuitGraph) -> list[ValidationIssue]:
    """Component edges bridged by a loop of wires."""
    issues: list[ValidationIssue] = []
    for edge in graph.edges.values():
        if edge.is_wire or edge.source_id == edge.target_id:
            continue
        if _is_supply_pair(graph, edge.source_id, edge.target_id):
            continue
        if has_wire_only_path(graph, edge.source_id, edge.target_id, [edge.id]):
            issues.append(
                ValidationIssue(
                    severity=Severity.WARNING,
                    message="Indirect short circuit detected!",
                    component_ids=[edge.connection.id],
                    node_ids=[edge.source_id, edge.target_id],
                    suggested_fix="Remove the loop of wires to prevent a short circuit.",
                )
            )
    return issues


def check_self_loops(graph: CircuitGraph) -> list[ValidationIssue]:
    return check_direct_loops(graph) + check_indirect_loops(graph)


# ═══════════════════════════════════════════════════════════
# Check 2: Wire-Only Supply Short
# ═══════════════════════════════════════════════════════════


def check_wire_paths(graph: CircuitGraph) -> list[ValidationIssue]:
    """+V tied to GND with nothing but wires in between."""
    power, ground = graph.supply_nodes()
    if power not in graph.nodes or ground not in graph.nodes:
        return []
    if not has_wire_only_path(graph, power, ground):
        return []
    return [
        ValidationIssue(
            severity=Severity.ERROR,
            message="+V → GND short circuit detected!",
            node_ids=[power, ground],
            suggested_fix="Remove the loop of wires to prevent a short circuit.",
        )
    ]


# ═══════════════════════════════════════════════════════════
# Check 3: Dead Ends
# ═══════════════════════════════════════════════════════════


def check_dead_ends(graph: CircuitGraph) -> list[ValidationIssue]:
    """Regular nets touched by a single edge cannot carry current.

    Reported once for the whole graph, listing every dangling net.
    """
    touching: dict[str, list[str]] = defaultdict(list)
    for edge in graph.edges.values():
        touching[edge.source_id].append(edge.id)
        if edge.target_id != edge.source_id:
            touching[edge.target_id].append(edge.id)

    dead = [
        node.id
        for node in graph.nodes.values()
        if node.kind == NodeKind.REGULAR and len(touching[node.id]) <= 1
    ]
    if not dead:
        return []

    component_ids = sorted(
        {
            graph.edges[edge_id].connection.id
            for node_id in dead
            for edge_id in touching[node_id]
            if not graph.edges[edge_id].is_wire
        }
    )
    return [
        ValidationIssue(
            severity=Severity.WARNING,
            message=f"{len(dead)} dead-end net(s) carry no current: {', '.join(dead)}",
            component_ids=component_ids,
            node_ids=dead,
            suggested_fix="Connect both legs of each component into the circuit.",
        )
    ]


# ═══════════════════════════════════════════════════════════
# Main Validator
# ═══════════════════════════════════════════════════════════

# Registry of all checks, run in this order
ALL_CHECKS = [
    check_self_loops,
    check_wire_paths,
    check_dead_ends,
]


def validate_circuit(
    graph: CircuitGraph,
    checks: list | None = None,
) -> ValidationResult:
    """Run all (or selected) validation checks on a circuit graph.

    Args:
        graph: The circuit graph to validate.
        checks: Optional subset of check functions to run.
                Defaults to ALL_CHECKS.

    Returns:
        ValidationResult with the concatenated issues and severity flags.
    """
    check_fns = checks if checks is not None else ALL_CHECKS
    issues: list[ValidationIssue] = []

    for check_fn in check_fns:
        issues.extend(check_fn(graph))

    has_errors = any(i.severity == Severity.ERROR for i in issues)
    has_warnings = any(i.severity == Severity.WARNING for i in issues)
    if issues:
        logger.info(
            "Validation found %d issue(s) (errors=%s, warnings=%s)",
            len(issues),
            has_errors,
            has_warnings,
        )

    return ValidationResult(issues=issues, has_errors=has_errors, has_warnings=has_warnings)
