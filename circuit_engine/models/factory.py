"""Component Model Factory — CircuitGraph edges → stampable models.

One model per edge, except IC input edges, which are grouped into one
logic-gate model per gate. Stamping dispatches on ``ModelKind`` through
the ``STAMPS`` table.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable

from circuit_engine.exceptions import ModelError
from circuit_engine.models.led import DEFAULT_FORWARD_VOLTAGE, create_led_model, apply_led_stamp
from circuit_engine.models.logic_gate import apply_logic_gate_stamp, create_logic_gate_model
from circuit_engine.models.resistor import (
    apply_resistor_stamp,
    create_resistor_model,
    create_wire_model,
)
from circuit_engine.models.sources import (
    apply_current_source_stamp,
    apply_voltage_source_stamp,
    create_current_source_model,
    create_voltage_source_model,
)
from circuit_engine.models.switch import apply_dip_switch_stamp, create_dip_switch_model
from circuit_engine.schemas.circuit import CircuitEdge, CircuitGraph
from circuit_engine.schemas.models import ComponentModel, ModelKind
from circuit_engine.schemas.snapshot import CircuitSnapshot, Component, ComponentType
from circuit_engine.solver.system import MNASystem

logger = logging.getLogger(__name__)

CREATORS: dict[ComponentType, Callable[[Component, CircuitEdge], ComponentModel]] = {
    ComponentType.RESISTOR: create_resistor_model,
    ComponentType.DIP_SWITCH: create_dip_switch_model,
    ComponentType.POWER_SUPPLY: create_voltage_source_model,
    ComponentType.CURRENT_SOURCE: create_current_source_model,
}

STAMPS: dict[ModelKind, Callable[[MNASystem, ComponentModel], None]] = {
    ModelKind.RESISTOR: apply_resistor_stamp,
    ModelKind.CURRENT_SOURCE: apply_current_source_stamp,
    ModelKind.VOLTAGE_SOURCE: apply_voltage_source_stamp,
    ModelKind.DIP_SWITCH: apply_dip_switch_stamp,
    ModelKind.LED: apply_led_stamp,
    ModelKind.LOGIC_GATE: apply_logic_gate_stamp,
}


def gate_model_id(component_id: str, gate_index: int) -> str:
    return f"edge-{component_id}:{gate_index}"


def linearization_point(model: ComponentModel) -> float | None:
    """Voltage a non-linear model is currently linearised at."""
    if model.kind == ModelKind.LED:
        return model.last_voltage
    if model.kind == ModelKind.LOGIC_GATE:
        return model.last_output_voltage
    return None


def seed_linearization_point(model: ComponentModel, voltage: float) -> ComponentModel:
    """Return ``model`` re-linearised at ``voltage``; linear models pass through."""
    if model.kind == ModelKind.LED:
        return create_led_model(
            model.edge,
            voltage,
            saturation_current=model.saturation_current,
            ideality=model.ideality,
        )
    if model.kind == ModelKind.LOGIC_GATE:
        return model.model_copy(update={"last_output_voltage": voltage})
    return model


def _is_gate_input(edge: CircuitEdge) -> bool:
    conn = edge.connection
    return (
        conn.kind == "component"
        and conn.component_type == ComponentType.IC
        and conn.pin_function == "input"
    )


def _create_gate_models(edges: list[CircuitEdge]) -> dict[str, ComponentModel]:
    groups: dict[tuple[str, int], list[CircuitEdge]] = defaultdict(list)
    for edge in edges:
        groups[(edge.connection.id, edge.connection.sub_index)].append(edge)

    models: dict[str, ComponentModel] = {}
    for (component_id, gate_index), gate_edges in groups.items():
        gate_edges.sort(key=lambda e: e.connection.input_index or 0)
        outputs = {e.target_id for e in gate_edges}
        if len(outputs) != 1:
            raise ModelError(f"Gate {gate_index} of {component_id} drives more than one output net")
        models[gate_model_id(component_id, gate_index)] = create_logic_gate_model(
            gate_edges[0],
            [e.source_id for e in gate_edges],
            outputs.pop(),
        )
    return models


def create_component_models(
    graph: CircuitGraph,
    snapshot: CircuitSnapshot,
    linearization_points: dict[str, float] | None = None,
    led_initial_voltage: float = DEFAULT_FORWARD_VOLTAGE,
) -> dict[str, ComponentModel]:
    """Create every model for ``graph``, keyed by model id in sorted order.

    ``linearization_points`` seeds non-linear models from a previous
    analysis (LED terminal voltage, gate output voltage).
    """
    models: dict[str, ComponentModel] = {}
    gate_edges: list[CircuitEdge] = []

    for edge in graph.edges.values():
        if edge.is_wire:
            models[edge.id] = create_wire_model(edge)
            continue
        if _is_gate_input(edge):
            gate_edges.append(edge)
            continue

        component = snapshot.components.get(edge.connection.id)
        if component is None:
            logger.warning("Edge %s references missing component %s", edge.id, edge.connection.id)
            continue

        if component.type == ComponentType.LED:
            models[edge.id] = create_led_model(edge, led_initial_voltage)
            continue

        create = CREATORS.get(component.type)
        if create is None:
            logger.warning("No model for component type %s (%s)", component.type.value, component.id)
            continue
        models[edge.id] = create(component, edge)

    models.update(_create_gate_models(gate_edges))
    if linearization_points:
        models = seed_linearization_points(models, linearization_points)
    return {k: models[k] for k in sorted(models)}


def seed_linearization_points(
    models: dict[str, ComponentModel],
    points: dict[str, float],
) -> dict[str, ComponentModel]:
    return {
        model_id: seed_linearization_point(model, points[model_id]) if model_id in points else model
        for model_id, model in models.items()
    }


def apply_component_stamp(system: MNASystem, model: ComponentModel) -> None:
    STAMPS[model.kind](system, model)
