from circuit_engine.schemas.snapshot import (
    CircuitSnapshot,
    Component,
    ComponentType,
    Connector,
    ConnectorKind,
    Strip,
    StripKind,
    Wire,
)
from circuit_engine.schemas.circuit import (
    CircuitConnection,
    CircuitEdge,
    CircuitGraph,
    CircuitNode,
    ComponentConnection,
    NodeKind,
    WireConnection,
)
from circuit_engine.schemas.models import ComponentModel, ModelKind
from circuit_engine.schemas.validation import Severity, ValidationIssue, ValidationResult
from circuit_engine.schemas.analysis import AnalysisResult, AnalysisState, ComponentReading

__all__ = [
    "CircuitSnapshot",
    "Component",
    "ComponentType",
    "Connector",
    "ConnectorKind",
    "Strip",
    "StripKind",
    "Wire",
    "CircuitConnection",
    "CircuitEdge",
    "CircuitGraph",
    "CircuitNode",
    "ComponentConnection",
    "NodeKind",
    "WireConnection",
    "ComponentModel",
    "ModelKind",
    "Severity",
    "ValidationIssue",
    "ValidationResult",
    "AnalysisResult",
    "AnalysisState",
    "ComponentReading",
]
