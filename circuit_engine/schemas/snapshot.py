from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, model_validator

# Edge ids append ":<index>" to these, so ":" is reserved
ID_PATTERN = r"^[^:]+$"


class ComponentType(str, Enum):
    RESISTOR = "resistor"
    LED = "led"
    DIP_SWITCH = "dip-switch"
    POWER_SUPPLY = "power-supply"
    CURRENT_SOURCE = "current-source"
    IC = "ic"
    BREADBOARD = "breadboard"


class ConnectorKind(str, Enum):
    INPUT = "input"
    OUTPUT = "output"
    BIDIRECTIONAL = "bidirectional"
    POSITIVE = "positive"
    NEGATIVE = "negative"
    ANODE = "anode"
    CATHODE = "cathode"


class StripKind(str, Enum):
    REGULAR = "bidirectional"
    POSITIVE = "positive"
    NEGATIVE = "negative"


class Strip(BaseModel):
    id: str
    kind: StripKind = StripKind.REGULAR
    connector_ids: list[str] = Field(default_factory=list)

    @property
    def is_rail(self) -> bool:
        return self.kind != StripKind.REGULAR


class Connector(BaseModel):
    id: str
    component_id: str
    kind: ConnectorKind = ConnectorKind.BIDIRECTIONAL
    strip_id: str | None = None  # None = not seated on the board
    gate_index: int | None = None  # IC pins only
    input_index: int | None = None


class Component(BaseModel):
    id: str = Field(pattern=ID_PATTERN)
    type: ComponentType
    connectors: list[Connector] = Field(default_factory=list)
    properties: dict = Field(default_factory=dict)


class Wire(BaseModel):
    id: str = Field(pattern=ID_PATTERN)
    source_strip: str
    target_strip: str


class CircuitSnapshot(BaseModel):
    """Live editor state handed to the engine for one analysis request."""

    components: dict[str, Component] = Field(default_factory=dict)
    wires: dict[str, Wire] = Field(default_factory=dict)
    strips: dict[str, Strip] = Field(default_factory=dict)

    def components_of_type(self, component_type: ComponentType) -> list[Component]:
        return [c for c in self.components.values() if c.type == component_type]

    @model_validator(mode="after")
    def _ids_are_distinct(self) -> "CircuitSnapshot":
        shared = set(self.components) & set(self.wires)
        if shared:
            raise ValueError(f"Ids used by both a component and a wire: {sorted(shared)}")
        return self
