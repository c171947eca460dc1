"""TTL-style logic gate model.

Inputs below 0.8 V read low, above 2.0 V read high. Inside the forbidden
band an input keeps the level of the gate's last output. The output is an
ideal 5 V / 0 V voltage source from the output node to ground. Each input
is a 1 GΩ load to ground, so an unconnected input net reads low instead
of leaving the system singular.
"""

from __future__ import annotations

from circuit_engine.schemas.circuit import CircuitEdge
from circuit_engine.schemas.models import LogicGateModel
from circuit_engine.solver.system import MNASystem
from circuit_engine.models.sources import stamp_voltage_source

INPUT_LOW_MAX = 0.8
INPUT_HIGH_MIN = 2.0
OUTPUT_HIGH = 5.0
OUTPUT_LOW = 0.0
HYSTERESIS_THRESHOLD = 2.5
INPUT_CONDUCTANCE = 1e-9  # S

GATE_FUNCTIONS = {
    "AND": all,
    "OR": any,
    "NAND": lambda states: not all(states),
    "NOR": lambda states: not any(states),
    "XOR": lambda states: sum(states) % 2 == 1,
    "NOT": lambda states: not states[0],
}


def _input_state(voltage: float, last_output: float) -> bool:
    if voltage < INPUT_LOW_MAX:
        return False
    if voltage > INPUT_HIGH_MIN:
        return True
    return last_output > HYSTERESIS_THRESHOLD


def evaluate_logic_gate(gate_type: str, input_voltages: list[float], last_output: float) -> float:
    """Output voltage for the given inputs. Unknown gate types drive low."""
    fn = GATE_FUNCTIONS.get(gate_type.upper())
    if fn is None or not input_voltages:
        return OUTPUT_LOW
    states = [_input_state(v, last_output) for v in input_voltages]
    return OUTPUT_HIGH if fn(states) else OUTPUT_LOW


def create_logic_gate_model(
    edge: CircuitEdge,
    input_node_ids: list[str],
    output_node_id: str,
    last_output_voltage: float = OUTPUT_LOW,
) -> LogicGateModel:
    return LogicGateModel(
        edge=edge,
        gate_type=edge.connection.gate_type or "unknown",
        input_node_ids=list(input_node_ids),
        output_node_id=output_node_id,
        last_input_voltages=[0.0] * len(input_node_ids),
        last_output_voltage=last_output_voltage,
    )


def update_logic_gate_model(model: LogicGateModel, voltages: dict[str, float]) -> LogicGateModel:
    inputs = [voltages.get(node_id, 0.0) for node_id in model.input_node_ids]
    output = evaluate_logic_gate(model.gate_type, inputs, model.last_output_voltage)
    return model.model_copy(
        update={"last_input_voltages": inputs, "last_output_voltage": output}
    )


def apply_logic_gate_stamp(system: MNASystem, model: LogicGateModel) -> None:
    for node_id in model.input_node_ids:
        i = system.index(node_id)
        if i is not None:
            system.matrix[i, i] += INPUT_CONDUCTANCE
    stamp_voltage_source(
        system,
        model.edge.id,
        model.output_node_id,
        system.reference,
        model.last_output_voltage,
    )
