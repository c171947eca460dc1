"""Circuit Graph Builder — Snapshot → electrical CircuitGraph.

Converts placed components and wires into nets (nodes) and conducting
paths (edges). Each breadboard strip is one net; rails fed by the supply
collapse into the power/ground super-nodes via the RailResolver.

Pure Python. Deterministic: ids are derived from component/wire ids and
everything is emitted in sorted order.
"""

from __future__ import annotations

import logging
from collections import defaultdict

import networkx as nx

from circuit_engine.exceptions import TopologyError
from circuit_engine.graph.networks import net_adjacency, subgraph, to_multigraph
from circuit_engine.graph.rails import RailResolver
from circuit_engine.schemas.circuit import (
    CircuitEdge,
    CircuitGraph,
    CircuitNode,
    ComponentConnection,
    WireConnection,
)
from circuit_engine.schemas.snapshot import (
    CircuitSnapshot,
    Component,
    ComponentType,
    Connector,
    ConnectorKind,
)

logger = logging.getLogger(__name__)

NO_CIRCUIT = "No valid circuit detected"

# ─── IC Catalogue ───

IC_GATE_TYPES: dict[str, str] = {
    "7400": "NAND",
    "7402": "NOR",
    "7404": "NOT",
    "7408": "AND",
    "7432": "OR",
    "7486": "XOR",
}

TWO_TERMINAL_TYPES = frozenset(
    {ComponentType.RESISTOR, ComponentType.LED, ComponentType.CURRENT_SOURCE}
)


# ─── Internal Helpers ───


def edge_id(connection_id: str, *parts: int) -> str:
    # ":" is rejected in snapshot ids, so sub-indices cannot collide with them
    return ":".join([f"edge-{connection_id}", *(str(p) for p in parts)])


class _GraphBuilder:
    """Accumulates nodes and edges for a single snapshot."""

    def __init__(self, snapshot: CircuitSnapshot, rails: RailResolver):
        self.snapshot = snapshot
        self.rails = rails
        self.nodes: dict[str, CircuitNode] = {}
        self.edges: dict[str, CircuitEdge] = {}

    def net_for(self, connector: Connector) -> str:
        # Unseated pins get a node of their own
        node_id = self.rails.resolve(connector.strip_id) if connector.strip_id else connector.id
        return self.add_node(node_id)

    def add_node(self, node_id: str) -> str:
        if node_id not in self.nodes:
            self.nodes[node_id] = CircuitNode(id=node_id, kind=self.rails.node_kind(node_id))
        return node_id

    def add_edge(self, edge: CircuitEdge) -> None:
        if edge.id in self.edges:
            raise TopologyError(f"Duplicate edge id '{edge.id}'")
        self.edges[edge.id] = edge

    def graph(self) -> CircuitGraph:
        return CircuitGraph(
            nodes={k: self.nodes[k] for k in sorted(self.nodes)},
            edges={k: self.edges[k] for k in sorted(self.edges)},
        )


def _component_connection(component: Component, **extra) -> ComponentConnection:
    return ComponentConnection(id=component.id, component_type=component.type, **extra)


def _ordered_terminals(component: Component) -> list[Connector]:
    """Anode first for polarised parts, otherwise placement order."""
    rank = {ConnectorKind.ANODE: 0, ConnectorKind.CATHODE: 1}
    return sorted(component.connectors, key=lambda c: rank.get(c.kind, 0))


def _find_power_supply(snapshot: CircuitSnapshot) -> Component:
    supplies = sorted(snapshot.components_of_type(ComponentType.POWER_SUPPLY), key=lambda c: c.id)
    if not supplies:
        raise TopologyError(NO_CIRCUIT)
    return supplies[0]


# ─── Edge Emitters ───


def _emit_power_supply(builder: _GraphBuilder, component: Component) -> None:
    rails = builder.rails
    builder.add_edge(
        CircuitEdge(
            id=edge_id(component.id),
            source_id=builder.add_node(rails.power_node),
            target_id=builder.add_node(rails.ground_node),
            connection=_component_connection(component),
        )
    )


def _emit_two_terminal(builder: _GraphBuilder, component: Component) -> None:
    terminals = _ordered_terminals(component)
    if len(terminals) != 2:
        logger.warning(
            "Skipping %s %s: expected 2 connectors, got %d",
            component.type.value,
            component.id,
            len(terminals),
        )
        return
    builder.add_edge(
        CircuitEdge(
            id=edge_id(component.id),
            source_id=builder.net_for(terminals[0]),
            target_id=builder.net_for(terminals[1]),
            connection=_component_connection(component),
        )
    )


def _emit_dip_switch(builder: _GraphBuilder, component: Component) -> None:
    connectors = component.connectors
    if len(connectors) % 2:
        logger.warning("DIP switch %s has an odd connector count, last pin ignored", component.id)
    for segment in range(len(connectors) // 2):
        a, b = connectors[2 * segment], connectors[2 * segment + 1]
        builder.add_edge(
            CircuitEdge(
                id=edge_id(component.id, segment),
                source_id=builder.net_for(a),
                target_id=builder.net_for(b),
                connection=_component_connection(component, sub_index=segment),
            )
        )


def _emit_ic(builder: _GraphBuilder, component: Component) -> None:
    ic_type = str(component.properties.get("ic_type", ""))
    gate_type = component.properties.get("gate_type") or IC_GATE_TYPES.get(ic_type)
    if gate_type is None:
        logger.warning("Skipping IC %s: unknown type '%s'", component.id, ic_type)
        return

    gates: dict[int, list[Connector]] = defaultdict(list)
    for connector in component.connectors:
        if connector.gate_index is not None:
            gates[connector.gate_index].append(connector)

    for gate_index in sorted(gates):
        pins = gates[gate_index]
        outputs = [p for p in pins if p.kind == ConnectorKind.OUTPUT]
        inputs = sorted(
            (p for p in pins if p.kind == ConnectorKind.INPUT),
            key=lambda p: p.input_index or 0,
        )
        if len(outputs) != 1 or not inputs:
            logger.warning("Skipping gate %d of %s: incomplete pinout", gate_index, component.id)
            continue

        output_node = builder.net_for(outputs[0])
        for position, pin in enumerate(inputs):
            input_index = pin.input_index if pin.input_index is not None else position
            builder.add_edge(
                CircuitEdge(
                    id=edge_id(component.id, gate_index, input_index),
                    source_id=builder.net_for(pin),
                    target_id=output_node,
                    connection=_component_connection(
                        component,
                        sub_index=gate_index,
                        gate_type=gate_type,
                        pin_function="input",
                        input_index=input_index,
                    ),
                )
            )


EMITTERS = {
    ComponentType.RESISTOR: _emit_two_terminal,
    ComponentType.LED: _emit_two_terminal,
    ComponentType.CURRENT_SOURCE: _emit_two_terminal,
    ComponentType.DIP_SWITCH: _emit_dip_switch,
    ComponentType.IC: _emit_ic,
}


# ═══════════════════════════════════════════════════════════
# Graph Construction
# ═══════════════════════════════════════════════════════════


def build_circuit_graph(
    snapshot: CircuitSnapshot,
    rails: RailResolver | None = None,
) -> CircuitGraph:
    """Build the electrical graph of a snapshot.

    Args:
        snapshot: Placed components, wires and the board's strips.
        rails: Rail resolver to use. Defaults to a flood fill from the
               power supply's seated rails.

    Raises:
        TopologyError: no power supply, or the supply does not reach both
                       a positive and a negative rail.
    """
    supply = _find_power_supply(snapshot)
    rails = rails if rails is not None else RailResolver.from_snapshot(snapshot)
    if not rails.is_energised:
        raise TopologyError(NO_CIRCUIT)

    builder = _GraphBuilder(snapshot, rails)
    _emit_power_supply(builder, supply)

    for wire_id in sorted(snapshot.wires):
        wire = snapshot.wires[wire_id]
        builder.add_edge(
            CircuitEdge(
                id=edge_id(wire.id),
                source_id=builder.add_node(rails.resolve(wire.source_strip)),
                target_id=builder.add_node(rails.resolve(wire.target_strip)),
                connection=WireConnection(id=wire.id),
            )
        )

    for component_id in sorted(snapshot.components):
        component = snapshot.components[component_id]
        emit = EMITTERS.get(component.type)
        if emit is not None:
            emit(builder, component)

    graph = builder.graph()
    logger.debug("Built graph: %d nodes, %d edges", len(graph.nodes), len(graph.edges))
    return graph


# ═══════════════════════════════════════════════════════════
# Sub-graph Passes
# ═══════════════════════════════════════════════════════════


def find_connected_circuit(graph: CircuitGraph, start: str) -> CircuitGraph:
    """Return the sub-graph reachable from ``start`` over any edge."""
    if start not in graph.nodes:
        raise TopologyError(NO_CIRCUIT)
    return subgraph(graph, nx.node_connected_component(to_multigraph(graph), start))


def prune_dead_ends(graph: CircuitGraph, keep: set[str] | frozenset[str]) -> CircuitGraph:
    """Iteratively drop nets that touch at most one other net.

    No current can flow through such a net, so removing it (and the edges
    touching it) leaves only paths between the kept super-nodes. This is a
    2-core of the net adjacency in which ``keep`` is never peeled.
    """
    adjacency = net_adjacency(graph)
    while True:
        dead = [n for n, degree in adjacency.degree() if degree <= 1 and n not in keep]
        if not dead:
            break
        adjacency.remove_nodes_from(dead)
    return subgraph(graph, adjacency.nodes)
