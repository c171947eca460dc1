"""LED / diode companion model.

The exponential diode law is linearised around ``last_voltage`` into a
conductance ``g`` in parallel with a current source ``Ieq``:

    I(V)  = Is · (exp(V / Vt) - 1)
    g     = Is / Vt · exp(V / Vt)
    Ieq   = I(V) - g · V

``Vt`` is the thermal voltage already scaled by the ideality factor.
Each update moves the linearisation point by at most ``5 · Vt`` so
Newton steps stay small, and the exponent is capped at ``MAX_EXPONENT``
so a forced terminal voltage (an LED straight across the supply) cannot
overflow it.
"""

from __future__ import annotations

import math

from circuit_engine.models.resistor import apply_resistor_stamp
from circuit_engine.models.sources import apply_current_source_stamp
from circuit_engine.schemas.circuit import CircuitEdge
from circuit_engine.schemas.models import CurrentSourceModel, LEDModel, ResistorModel
from circuit_engine.solver.system import MNASystem

THERMAL_VOLTAGE = 0.026  # V at room temperature
DEFAULT_IDEALITY = 3.0
DEFAULT_SATURATION_CURRENT = 1e-15  # A
DEFAULT_FORWARD_VOLTAGE = 2.0  # V
MAX_STEP_THERMAL_VOLTAGES = 5
MAX_EXPONENT = 80.0  # exp() stays finite; about 6.2 V at the default ideality


def _diode_exp(voltage: float, thermal_voltage: float) -> float:
    return math.exp(min(voltage / thermal_voltage, MAX_EXPONENT))


def led_current(voltage: float, saturation_current: float, thermal_voltage: float) -> float:
    return saturation_current * (_diode_exp(voltage, thermal_voltage) - 1)


def linearise(voltage: float, saturation_current: float, thermal_voltage: float) -> tuple[float, float]:
    """Return ``(g, Ieq)`` at the given terminal voltage."""
    exp_term = _diode_exp(voltage, thermal_voltage)
    current = saturation_current * (exp_term - 1)
    conductance = saturation_current / thermal_voltage * exp_term
    return conductance, current - conductance * voltage


def create_led_model(
    edge: CircuitEdge,
    last_voltage: float | None = None,
    saturation_current: float = DEFAULT_SATURATION_CURRENT,
    ideality: float = DEFAULT_IDEALITY,
) -> LEDModel:
    thermal_voltage = THERMAL_VOLTAGE * ideality
    voltage = DEFAULT_FORWARD_VOLTAGE if last_voltage is None else last_voltage
    g, i_eq = linearise(voltage, saturation_current, thermal_voltage)
    return LEDModel(
        edge=edge,
        saturation_current=saturation_current,
        ideality=ideality,
        thermal_voltage=thermal_voltage,
        last_voltage=voltage,
        equivalent_conductance=g,
        equivalent_current=i_eq,
    )


def update_led_model(model: LEDModel, new_voltage: float) -> LEDModel:
    max_step = model.thermal_voltage * MAX_STEP_THERMAL_VOLTAGES
    step = max(-max_step, min(max_step, new_voltage - model.last_voltage))
    voltage = model.last_voltage + step
    g, i_eq = linearise(voltage, model.saturation_current, model.thermal_voltage)
    return model.model_copy(
        update={
            "last_voltage": voltage,
            "equivalent_conductance": g,
            "equivalent_current": i_eq,
        }
    )


def apply_led_stamp(system: MNASystem, model: LEDModel) -> None:
    apply_resistor_stamp(
        system, ResistorModel(edge=model.edge, conductance=model.equivalent_conductance)
    )
    apply_current_source_stamp(
        system, CurrentSourceModel(edge=model.edge, current=model.equivalent_current)
    )
