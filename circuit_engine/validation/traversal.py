from __future__ import annotations

from typing import Iterable

import networkx as nx

from circuit_engine.graph.networks import to_multigraph
from circuit_engine.schemas.circuit import CircuitGraph


def has_wire_only_path(
    graph: CircuitGraph,
    from_id: str,
    to_id: str,
    exclude_edge_ids: Iterable[str] = (),
) -> bool:
    """True if ``from_id`` reaches ``to_id`` through wire edges alone.

    Component edges never carry the path. Edges in ``exclude_edge_ids``
    are ignored, so a component's own edge cannot count as its short.
    """
    if from_id == to_id:
        return True

    wires = to_multigraph(graph, wires_only=True, exclude_edge_ids=exclude_edge_ids)
    if from_id not in wires or to_id not in wires:
        return False
    return nx.has_path(wires, from_id, to_id)
