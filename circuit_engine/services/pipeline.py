"""Analysis Pipeline

Runs one analysis request end to end:
  Snapshot → Graph → Validate → Restrict → DC iterate → Readings

Every failure is returned as ``AnalysisResult(success=False, error=...)``;
nothing raises past this module.
"""

from __future__ import annotations

import logging

from circuit_engine.config import AnalysisSettings, get_settings
from circuit_engine.exceptions import CircuitEngineError, TopologyError
from circuit_engine.graph.builder import (
    NO_CIRCUIT,
    build_circuit_graph,
    find_connected_circuit,
    prune_dead_ends,
)
from circuit_engine.graph.rails import RailResolver
from circuit_engine.schemas.analysis import AnalysisResult
from circuit_engine.schemas.circuit import CircuitGraph
from circuit_engine.schemas.snapshot import CircuitSnapshot
from circuit_engine.solver.dc import run_dc_analysis
from circuit_engine.validation.engine import validate_circuit

logger = logging.getLogger(__name__)


def restrict_to_circuit(graph: CircuitGraph, settings: AnalysisSettings) -> CircuitGraph:
    """Keep only the part of ``graph`` that can carry supply current.

    The supply nodes are the ones the rail resolver tagged, so resolvers
    with their own node names work unchanged.
    """
    power, ground = graph.supply_nodes(settings.power_node, settings.ground_node)
    circuit = find_connected_circuit(graph, power)
    if ground not in circuit.nodes:
        raise TopologyError(NO_CIRCUIT)
    return prune_dead_ends(circuit, keep={power, ground})


def analyse_snapshot(
    snapshot: CircuitSnapshot,
    previous: AnalysisResult | None = None,
    settings: AnalysisSettings | None = None,
    rails: RailResolver | None = None,
) -> AnalysisResult:
    """Analyse one editor snapshot.

    Args:
        snapshot: Placed components, wires and board strips.
        previous: Result of the last analysis, used to warm-start
                  non-linear models.
        settings: Analysis settings. Defaults to ``get_settings()``.
        rails: Rail resolver override. Defaults to a flood fill from
               the power supply.
    """
    settings = settings or get_settings()
    logger.info(
        "Analysis START: %d components, %d wires",
        len(snapshot.components),
        len(snapshot.wires),
    )

    # Stage 1: topology
    try:
        if rails is None:
            rails = RailResolver.from_snapshot(
                snapshot, settings.power_node, settings.ground_node
            )
        graph = build_circuit_graph(snapshot, rails)
    except TopologyError as e:
        logger.error("Graph build failed: %s", e)
        return AnalysisResult(success=False, error=NO_CIRCUIT)

    # Stage 2: validation (errors stop before any matrix work)
    validation = validate_circuit(graph)
    if validation.has_errors:
        message = validation.errors[0].message
        logger.error("Validation rejected circuit: %s", message)
        return AnalysisResult(success=False, error=message, validation=validation)
    for issue in validation.warnings:
        logger.warning("Validation warning: %s", issue.message)

    # Stage 3: restrict and solve
    try:
        circuit = restrict_to_circuit(graph, settings)
    except CircuitEngineError as e:
        logger.error(
            "No current path from %s to %s",
            *graph.supply_nodes(settings.power_node, settings.ground_node),
        )
        return AnalysisResult(success=False, error=str(e), validation=validation)

    result = run_dc_analysis(circuit, snapshot, settings, previous)
    result.validation = validation

    logger.info(
        "Analysis %s after %d iteration(s)%s",
        "converged" if result.success else "failed",
        result.iterations,
        f": {result.error}" if result.error else "",
    )
    return result
