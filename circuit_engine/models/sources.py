"""Independent current and voltage sources."""

from __future__ import annotations

from circuit_engine.exceptions import ModelError, StampError
from circuit_engine.schemas.circuit import CircuitEdge
from circuit_engine.schemas.models import CurrentSourceModel, VoltageSourceModel
from circuit_engine.schemas.snapshot import Component
from circuit_engine.solver.system import MNASystem

DEFAULT_SUPPLY_VOLTAGE = 5.0


def _number(component: Component, key: str, default: float) -> float:
    try:
        return float(component.properties.get(key, default))
    except (TypeError, ValueError):
        raise ModelError(f"{component.type.value} {component.id}: '{key}' is not a number") from None


# ─── Current Source ───


def create_current_source_model(component: Component, edge: CircuitEdge) -> CurrentSourceModel:
    return CurrentSourceModel(edge=edge, current=_number(component, "current", 0.0))


def apply_current_source_stamp(system: MNASystem, model: CurrentSourceModel) -> None:
    """Current leaves the source node and enters the target node."""
    if model.current == 0:
        return
    i = system.index(model.edge.source_id)
    j = system.index(model.edge.target_id)
    if i is not None:
        system.rhs[i] -= model.current
    if j is not None:
        system.rhs[j] += model.current


# ─── Voltage Source ───


def create_voltage_source_model(component: Component, edge: CircuitEdge) -> VoltageSourceModel:
    return VoltageSourceModel(edge=edge, voltage=_number(component, "voltage", DEFAULT_SUPPLY_VOLTAGE))


def _terminal_index(system: MNASystem, node_id: str, edge_id: str) -> int | None:
    index = system.index(node_id)
    if index is None and node_id != system.reference:
        raise StampError(f"Voltage source {edge_id}: node '{node_id}' is not in the node map")
    return index


def stamp_voltage_source(
    system: MNASystem,
    owner: str,
    source_id: str,
    target_id: str,
    voltage: float,
) -> int:
    """Stamp ``V(source) - V(target) = voltage`` and return the branch index."""
    i = _terminal_index(system, source_id, owner)
    j = _terminal_index(system, target_id, owner)
    k = system.allocate_branch(owner)
    m = system.matrix

    if i is not None:
        m[i, k] += 1
        m[k, i] += 1
    if j is not None:
        m[j, k] -= 1
        m[k, j] -= 1
    system.rhs[k] = voltage
    return k


def apply_voltage_source_stamp(system: MNASystem, model: VoltageSourceModel) -> None:
    stamp_voltage_source(
        system,
        model.edge.id,
        model.edge.source_id,
        model.edge.target_id,
        model.voltage,
    )
