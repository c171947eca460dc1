"""Resistor and wire models: the conductance stamp every passive reuses."""

from __future__ import annotations

from circuit_engine.exceptions import ModelError
from circuit_engine.schemas.circuit import CircuitEdge
from circuit_engine.schemas.models import ResistorModel
from circuit_engine.schemas.snapshot import Component
from circuit_engine.solver.system import MNASystem

UNIT_FACTORS: dict[str, float] = {
    "Ω": 1.0,
    "kΩ": 1e3,
    "MΩ": 1e6,
}

WIRE_CONDUCTANCE = 1.0


def convert_to_base_units(value: float, unit: str = "Ω") -> float:
    """Resistance in ohms. Unknown units raise ModelError."""
    try:
        return value * UNIT_FACTORS[unit]
    except KeyError:
        raise ModelError(f"Unknown resistance unit '{unit}'") from None


def create_resistor_model(component: Component, edge: CircuitEdge) -> ResistorModel:
    props = component.properties
    try:
        value = float(props.get("value", 0))
    except (TypeError, ValueError):
        raise ModelError(f"Resistor {component.id} has a non-numeric value") from None

    resistance = convert_to_base_units(value, props.get("unit", "Ω"))
    if resistance <= 0:
        raise ModelError(f"Resistor {component.id} must have positive resistance, got {resistance}Ω")
    return ResistorModel(edge=edge, conductance=1.0 / resistance)


def apply_resistor_stamp(system: MNASystem, model: ResistorModel) -> None:
    """Add ``g`` between the edge's nodes; an unmapped node only drops its row/column."""
    g = model.conductance
    i = system.index(model.edge.source_id)
    j = system.index(model.edge.target_id)
    m = system.matrix

    if i is not None:
        m[i, i] += g
    if j is not None:
        m[j, j] += g
    if i is not None and j is not None:
        m[i, j] -= g
        m[j, i] -= g


def create_wire_model(edge: CircuitEdge) -> ResistorModel:
    return ResistorModel(edge=edge, conductance=WIRE_CONDUCTANCE)


def apply_wire_stamp(system: MNASystem, model: ResistorModel) -> None:
    apply_resistor_stamp(system, model)
