"""Unit tests for MNA assembly and the linear solver."""

import numpy as np
import pytest

from circuit_engine.exceptions import SolverError
from circuit_engine.schemas.circuit import (
    CircuitEdge,
    CircuitGraph,
    CircuitNode,
    ComponentConnection,
    NodeKind,
)
from circuit_engine.schemas.models import (
    CurrentSourceModel,
    ResistorModel,
    VoltageSourceModel,
)
from circuit_engine.schemas.snapshot import ComponentType
from circuit_engine.solver.mna import (
    POWER_CURRENT_KEY,
    assemble_system,
    create_node_map,
    solve_circuit,
    solve_linear_system,
)

POWER = "unified-power"
GROUND = "unified-ground"


# ─── Fixtures ───


def _graph(*node_ids: str, edges=()) -> CircuitGraph:
    kinds = {POWER: NodeKind.POWER, GROUND: NodeKind.GROUND}
    return CircuitGraph(
        nodes={n: CircuitNode(id=n, kind=kinds.get(n, NodeKind.REGULAR)) for n in node_ids},
        edges={e.id: e for e in edges},
    )


def _edge(component_id: str, src: str, tgt: str, component_type=ComponentType.RESISTOR) -> CircuitEdge:
    return CircuitEdge(
        id=f"edge-{component_id}",
        source_id=src,
        target_id=tgt,
        connection=ComponentConnection(id=component_id, component_type=component_type),
    )


def _supply(voltage: float, component_id: str = "PS1") -> VoltageSourceModel:
    return VoltageSourceModel(
        edge=_edge(component_id, POWER, GROUND, ComponentType.POWER_SUPPLY),
        voltage=voltage,
    )


def _resistor(component_id: str, src: str, tgt: str, ohms: float) -> ResistorModel:
    return ResistorModel(edge=_edge(component_id, src, tgt), conductance=1 / ohms)


def _solve(models, *extra_nodes):
    graph = _graph(POWER, GROUND, *extra_nodes, edges=[m.edge for m in models])
    return solve_circuit(graph, models)


# ═══════════════════════════════════════════════════════════
# Node Map & Assembly
# ═══════════════════════════════════════════════════════════


class TestNodeMap:
    def test_reference_excluded(self):
        graph = _graph(GROUND, "a", POWER)
        assert create_node_map(graph) == {"a": 0, POWER: 1}

    def test_custom_reference(self):
        graph = _graph("a", "b")
        assert create_node_map(graph, reference="b") == {"a": 0}


class TestAssembly:
    def test_system_presized_for_branches(self):
        models = [_supply(5.0), _resistor("R1", POWER, GROUND, 100)]
        graph = _graph(POWER, GROUND, edges=[m.edge for m in models])
        system = assemble_system(graph, models)

        assert system.size == 2
        assert system.branches == {"edge-PS1": 1}
        np.testing.assert_allclose(system.matrix, [[0.01, 1.0], [1.0, 0.0]])
        np.testing.assert_allclose(system.rhs, [0.0, 5.0])

    def test_branch_order_follows_model_order(self):
        models = [
            VoltageSourceModel(edge=_edge("V1", "a", GROUND), voltage=1.0),
            VoltageSourceModel(edge=_edge("V2", "b", GROUND), voltage=2.0),
        ]
        graph = _graph("a", "b", GROUND, edges=[m.edge for m in models])
        system = assemble_system(graph, models)
        assert system.branches == {"edge-V1": 2, "edge-V2": 3}


# ═══════════════════════════════════════════════════════════
# Solving
# ═══════════════════════════════════════════════════════════


class TestSolveCircuit:
    def test_single_resistor_across_supply(self):
        voltages = _solve([_supply(10.0), _resistor("R1", POWER, GROUND, 100)])

        assert voltages[POWER] == pytest.approx(10.0)
        assert voltages[GROUND] == 0.0
        assert voltages[POWER_CURRENT_KEY] == pytest.approx(0.1)

    def test_voltage_divider(self):
        voltages = _solve(
            [
                _supply(9.0),
                _resistor("R1", POWER, "mid", 2000),
                _resistor("R2", "mid", GROUND, 1000),
            ],
            "mid",
        )
        assert voltages["mid"] == pytest.approx(3.0)
        assert voltages[POWER_CURRENT_KEY] == pytest.approx(9.0 / 3000)

    def test_current_source_into_resistor(self):
        models = [
            CurrentSourceModel(edge=_edge("I1", GROUND, "a", ComponentType.CURRENT_SOURCE), current=1e-3),
            _resistor("R1", "a", GROUND, 1000),
        ]
        graph = _graph("a", GROUND, edges=[m.edge for m in models])
        voltages = solve_circuit(graph, models)
        assert voltages["a"] == pytest.approx(1.0)
        assert voltages[POWER_CURRENT_KEY] == 0.0

    def test_ground_always_zero(self):
        voltages = _solve([_supply(3.3), _resistor("R1", POWER, GROUND, 10)])
        assert voltages[GROUND] == 0.0

    def test_parallel_supplies_are_singular(self):
        with pytest.raises(SolverError):
            _solve([_supply(5.0, "PS1"), _supply(5.0, "PS2")])

    def test_floating_node_is_singular(self):
        with pytest.raises(SolverError):
            _solve([_supply(5.0), _resistor("R1", POWER, GROUND, 100)], "floating")


class TestSolveLinearSystem:
    def test_non_square_rejected(self):
        with pytest.raises(SolverError):
            solve_linear_system(np.zeros((2, 3)), np.zeros(2))

    def test_rhs_mismatch_rejected(self):
        with pytest.raises(SolverError):
            solve_linear_system(np.eye(2), np.zeros(3))

    def test_solves_identity(self):
        np.testing.assert_array_equal(
            solve_linear_system(np.eye(2), np.array([1.0, 2.0])), [1.0, 2.0]
        )
