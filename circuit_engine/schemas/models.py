from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from circuit_engine.schemas.circuit import CircuitEdge


class ModelKind(str, Enum):
    RESISTOR = "resistor"
    CURRENT_SOURCE = "current-source"
    VOLTAGE_SOURCE = "voltage-source"
    DIP_SWITCH = "dip-switch"
    LED = "led"
    LOGIC_GATE = "logic-gate"


class _ModelBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    edge: CircuitEdge
    is_linear: bool = True


class ResistorModel(_ModelBase):
    kind: Literal[ModelKind.RESISTOR] = ModelKind.RESISTOR
    conductance: float


class CurrentSourceModel(_ModelBase):
    kind: Literal[ModelKind.CURRENT_SOURCE] = ModelKind.CURRENT_SOURCE
    current: float


class VoltageSourceModel(_ModelBase):
    kind: Literal[ModelKind.VOLTAGE_SOURCE] = ModelKind.VOLTAGE_SOURCE
    voltage: float


class DipSwitchModel(_ModelBase):
    kind: Literal[ModelKind.DIP_SWITCH] = ModelKind.DIP_SWITCH
    switch_index: int
    closed: bool = False


class LEDModel(_ModelBase):
    kind: Literal[ModelKind.LED] = ModelKind.LED
    is_linear: bool = False
    saturation_current: float
    ideality: float
    thermal_voltage: float  # already scaled by ideality
    last_voltage: float
    equivalent_conductance: float
    equivalent_current: float


class LogicGateModel(_ModelBase):
    kind: Literal[ModelKind.LOGIC_GATE] = ModelKind.LOGIC_GATE
    is_linear: bool = False
    gate_type: str
    input_node_ids: list[str] = Field(default_factory=list)
    output_node_id: str
    last_input_voltages: list[float] = Field(default_factory=list)
    last_output_voltage: float = 0.0


ComponentModel = Annotated[
    Union[
        ResistorModel,
        CurrentSourceModel,
        VoltageSourceModel,
        DipSwitchModel,
        LEDModel,
        LogicGateModel,
    ],
    Field(discriminator="kind"),
]

# Models that claim an auxiliary branch-current unknown in the MNA system
BRANCH_MODEL_KINDS = frozenset({ModelKind.VOLTAGE_SOURCE, ModelKind.LOGIC_GATE})
