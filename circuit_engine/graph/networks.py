"""networkx views of a CircuitGraph.

Every pass that only asks "what is connected to what" runs on one of
these views instead of walking the pydantic edges by hand.
"""

from __future__ import annotations

from typing import Iterable

import networkx as nx

from circuit_engine.schemas.circuit import CircuitGraph


def to_multigraph(
    graph: CircuitGraph,
    wires_only: bool = False,
    exclude_edge_ids: Iterable[str] = (),
) -> nx.MultiGraph:
    """All nodes of ``graph``, with one keyed edge per circuit edge kept."""
    exclude = set(exclude_edge_ids)
    multigraph = nx.MultiGraph()
    multigraph.add_nodes_from(graph.nodes)
    for edge in graph.edges.values():
        if edge.id in exclude or (wires_only and not edge.is_wire):
            continue
        multigraph.add_edge(edge.source_id, edge.target_id, key=edge.id)
    return multigraph


def net_adjacency(graph: CircuitGraph) -> nx.Graph:
    """Which nets touch which: parallel edges merged, self-loops dropped."""
    adjacency = nx.Graph(to_multigraph(graph))
    adjacency.remove_edges_from(list(nx.selfloop_edges(adjacency)))
    return adjacency


def subgraph(graph: CircuitGraph, node_ids: Iterable[str]) -> CircuitGraph:
    """``graph`` restricted to ``node_ids`` and the edges between them."""
    keep = set(node_ids)
    return CircuitGraph(
        nodes={k: v for k, v in graph.nodes.items() if k in keep},
        edges={
            k: e
            for k, e in graph.edges.items()
            if e.source_id in keep and e.target_id in keep
        },
    )
