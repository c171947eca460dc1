from __future__ import annotations

from circuit_engine.models.resistor import apply_resistor_stamp
from circuit_engine.schemas.circuit import CircuitEdge
from circuit_engine.schemas.models import DipSwitchModel, ResistorModel
from circuit_engine.schemas.snapshot import Component
from circuit_engine.solver.system import MNASystem

CLOSED_SWITCH_CONDUCTANCE = 1e10
OPEN_SWITCH_CONDUCTANCE = 1e-20


def switch_conductance(closed: bool) -> float:
    return CLOSED_SWITCH_CONDUCTANCE if closed else OPEN_SWITCH_CONDUCTANCE


def create_dip_switch_model(component: Component, edge: CircuitEdge) -> DipSwitchModel:
    index = edge.connection.sub_index
    states = component.properties.get("switch_states") or []
    closed = bool(states[index]) if index < len(states) else False
    return DipSwitchModel(edge=edge, switch_index=index, closed=closed)


def apply_dip_switch_stamp(system: MNASystem, model: DipSwitchModel) -> None:
    apply_resistor_stamp(
        system,
        ResistorModel(edge=model.edge, conductance=switch_conductance(model.closed)),
    )
