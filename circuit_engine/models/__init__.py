from circuit_engine.models.factory import apply_component_stamp, create_component_models

__all__ = ["apply_component_stamp", "create_component_models"]
