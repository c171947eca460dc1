"""Rail resolution: maps breadboard rail strips onto power/ground super-nodes.

All rails fed by the supply (directly or through same-polarity jumper
wires) collapse into one power node and one ground node. The resolver is
a plain object so tests and future multi-domain boards can supply their
own rail sets and node names.
"""

from __future__ import annotations

import logging

import networkx as nx

from circuit_engine.schemas.circuit import NodeKind
from circuit_engine.schemas.snapshot import (
    CircuitSnapshot,
    ComponentType,
    StripKind,
)

logger = logging.getLogger(__name__)

POWER_NODE = "unified-power"
GROUND_NODE = "unified-ground"
MAX_RAILS_PER_POLARITY = 4


class RailResolver:
    def __init__(
        self,
        powered_rails: set[str] | frozenset[str] = frozenset(),
        grounded_rails: set[str] | frozenset[str] = frozenset(),
        power_node: str = POWER_NODE,
        ground_node: str = GROUND_NODE,
    ):
        overlap = set(powered_rails) & set(grounded_rails)
        if overlap:
            raise ValueError(f"Rails cannot be both powered and grounded: {sorted(overlap)}")
        self.powered_rails = frozenset(powered_rails)
        self.grounded_rails = frozenset(grounded_rails)
        self.power_node = power_node
        self.ground_node = ground_node

    @property
    def is_energised(self) -> bool:
        return bool(self.powered_rails) and bool(self.grounded_rails)

    def resolve(self, strip_id: str) -> str:
        """Return the graph node id a strip belongs to."""
        if strip_id in self.powered_rails:
            return self.power_node
        if strip_id in self.grounded_rails:
            return self.ground_node
        return strip_id

    def node_kind(self, node_id: str) -> NodeKind:
        if node_id == self.power_node:
            return NodeKind.POWER
        if node_id == self.ground_node:
            return NodeKind.GROUND
        return NodeKind.REGULAR

    @classmethod
    def from_snapshot(
        cls,
        snapshot: CircuitSnapshot,
        power_node: str = POWER_NODE,
        ground_node: str = GROUND_NODE,
    ) -> "RailResolver":
        """Flood-fill rails from the supply's terminals across jumper wires."""
        supplies = sorted(
            snapshot.components_of_type(ComponentType.POWER_SUPPLY), key=lambda c: c.id
        )
        if not supplies:
            return cls(power_node=power_node, ground_node=ground_node)
        if len(supplies) > 1:
            logger.warning(
                "%d power supplies placed, rails follow %s", len(supplies), supplies[0].id
            )

        powered: set[str] = set()
        grounded: set[str] = set()
        for connector in supplies[0].connectors:
            strip = snapshot.strips.get(connector.strip_id or "")
            if strip is None or not strip.is_rail:
                continue
            rails = powered if strip.kind == StripKind.POSITIVE else grounded
            _flood_rails(snapshot, strip.id, strip.kind, rails)

        return cls(powered, grounded, power_node=power_node, ground_node=ground_node)


def _rail_jumpers(snapshot: CircuitSnapshot, kind: StripKind) -> nx.Graph:
    """Strips of one polarity, joined wherever a wire bridges two of them."""
    jumpers = nx.Graph()
    for wire in snapshot.wires.values():
        ends = [snapshot.strips.get(wire.source_strip), snapshot.strips.get(wire.target_strip)]
        if all(strip is not None and strip.kind == kind for strip in ends):
            jumpers.add_edge(wire.source_strip, wire.target_strip)
    return jumpers


def _flood_rails(
    snapshot: CircuitSnapshot,
    start: str,
    kind: StripKind,
    rails: set[str],
) -> None:
    jumpers = _rail_jumpers(snapshot, kind)
    jumpers.add_node(start)
    reached = [start] + [v for _, v in nx.bfs_edges(jumpers, start, sort_neighbors=sorted)]
    for strip_id in reached:
        if len(rails) >= MAX_RAILS_PER_POLARITY:
            break
        rails.add(strip_id)
