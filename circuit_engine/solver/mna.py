"""MNA Assembler & Solver — models → node voltages.

Builds the augmented Modified Nodal Analysis system for one set of model
states and solves it with numpy. Branch-current rows for voltage sources
and logic-gate outputs are counted up front so the matrix is allocated
once at its final size.

Pure Python + numpy. Deterministic: stamp order follows model order.
"""

from __future__ import annotations

import logging

import numpy as np

from circuit_engine.exceptions import SolverError
from circuit_engine.models.factory import apply_component_stamp
from circuit_engine.schemas.circuit import CircuitGraph
from circuit_engine.schemas.models import BRANCH_MODEL_KINDS, ComponentModel, ModelKind
from circuit_engine.solver.system import MNASystem

logger = logging.getLogger(__name__)

GROUND_NODE = "unified-ground"
POWER_NODE = "unified-power"
POWER_CURRENT_KEY = "unified_power_current"


def create_node_map(graph: CircuitGraph, reference: str = GROUND_NODE) -> dict[str, int]:
    """Index every node except the reference, in graph order."""
    node_ids = [node_id for node_id in graph.nodes if node_id != reference]
    return {node_id: index for index, node_id in enumerate(node_ids)}


def assemble_system(
    graph: CircuitGraph,
    models: dict[str, ComponentModel] | list[ComponentModel],
    reference: str = GROUND_NODE,
) -> MNASystem:
    model_list = list(models.values()) if isinstance(models, dict) else list(models)
    branch_count = sum(1 for m in model_list if m.kind in BRANCH_MODEL_KINDS)

    system = MNASystem(create_node_map(graph, reference), branch_count, reference=reference)
    for model in model_list:
        apply_component_stamp(system, model)
    return system


def solve_linear_system(matrix: np.ndarray, rhs: np.ndarray) -> np.ndarray:
    """Solve ``matrix · x = rhs``.

    Raises:
        SolverError: the system is not square, is singular, or yields a
                     non-finite solution.
    """
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise SolverError(f"MNA matrix must be square, got shape {matrix.shape}")
    if rhs.shape[0] != matrix.shape[0]:
        raise SolverError(
            f"Right-hand side has {rhs.shape[0]} rows, matrix has {matrix.shape[0]}"
        )
    if matrix.shape[0] == 0:
        return np.zeros(0)

    try:
        solution = np.linalg.solve(matrix, rhs)
    except np.linalg.LinAlgError as e:
        raise SolverError(f"Circuit matrix is singular: {e}") from e

    if not np.all(np.isfinite(solution)):
        raise SolverError("Circuit solution contains non-finite values")
    return solution


def read_voltages(
    system: MNASystem,
    solution: np.ndarray,
    models: dict[str, ComponentModel] | list[ComponentModel],
    power_node: str = POWER_NODE,
) -> dict[str, float]:
    """Map a solution vector back to node voltages plus supply current."""
    voltages: dict[str, float] = {system.reference: 0.0}
    for node_id, index in system.node_map.items():
        voltages[node_id] = float(solution[index])

    # Branch current flows into the source's positive terminal, so negate
    # to report current delivered to the load.
    model_list = models.values() if isinstance(models, dict) else models
    supply_current = 0.0
    for model in model_list:
        if model.kind == ModelKind.VOLTAGE_SOURCE and model.edge.source_id == power_node:
            supply_current -= float(solution[system.branches[model.edge.id]])
    voltages[POWER_CURRENT_KEY] = supply_current
    return voltages


def solve_circuit(
    graph: CircuitGraph,
    models: dict[str, ComponentModel] | list[ComponentModel],
    reference: str = GROUND_NODE,
    power_node: str = POWER_NODE,
) -> dict[str, float]:
    """Assemble, solve and read back node voltages and ``unified_power_current``."""
    system = assemble_system(graph, models, reference)
    solution = solve_linear_system(system.matrix, system.rhs)
    logger.debug("Solved %dx%d MNA system", system.size, system.size)
    return read_voltages(system, solution, models, power_node)
