from circuit_engine.graph.breadboard import create_breadboard_strips
from circuit_engine.graph.builder import (
    IC_GATE_TYPES,
    build_circuit_graph,
    find_connected_circuit,
    prune_dead_ends,
)
from circuit_engine.graph.rails import RailResolver

__all__ = [
    "IC_GATE_TYPES",
    "RailResolver",
    "build_circuit_graph",
    "create_breadboard_strips",
    "find_connected_circuit",
    "prune_dead_ends",
]
