from circuit_engine.validation.engine import ALL_CHECKS, validate_circuit
from circuit_engine.validation.traversal import has_wire_only_path

__all__ = ["ALL_CHECKS", "has_wire_only_path", "validate_circuit"]
