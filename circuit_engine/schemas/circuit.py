from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, model_validator

from circuit_engine.schemas.snapshot import ComponentType


class NodeKind(str, Enum):
    REGULAR = "regular"
    POWER = "unified-power"
    GROUND = "unified-ground"


class CircuitNode(BaseModel):
    id: str
    kind: NodeKind = NodeKind.REGULAR


class WireConnection(BaseModel):
    kind: Literal["wire"] = "wire"
    id: str  # wire id


class ComponentConnection(BaseModel):
    kind: Literal["component"] = "component"
    id: str  # component id
    component_type: ComponentType
    sub_index: int = 0  # DIP segment or IC gate
    gate_type: str | None = None
    pin_function: str | None = None  # "input" for IC gate edges
    input_index: int | None = None


CircuitConnection = Annotated[
    Union[WireConnection, ComponentConnection],
    Field(discriminator="kind"),
]


class CircuitEdge(BaseModel):
    id: str
    source_id: str
    target_id: str
    connection: CircuitConnection

    @property
    def is_wire(self) -> bool:
        return self.connection.kind == "wire"

    def other_end(self, node_id: str) -> str:
        return self.target_id if self.source_id == node_id else self.source_id


class CircuitGraph(BaseModel):
    nodes: dict[str, CircuitNode] = Field(default_factory=dict)
    edges: dict[str, CircuitEdge] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _edges_reference_nodes(self) -> "CircuitGraph":
        for edge in self.edges.values():
            for node_id in (edge.source_id, edge.target_id):
                if node_id not in self.nodes:
                    raise ValueError(
                        f"Edge {edge.id} references unknown node '{node_id}'"
                    )
        return self

    def supply_nodes(
        self,
        power: str = "unified-power",
        ground: str = "unified-ground",
    ) -> tuple[str, str]:
        """Return (power id, ground id) as tagged by the rail resolver.

        ``power`` and ``ground`` are only used when no node carries the
        matching kind, as in hand-built graphs.
        """
        for node in self.nodes.values():
            if node.kind == NodeKind.POWER:
                power = node.id
            elif node.kind == NodeKind.GROUND:
                ground = node.id
        return power, ground
