from __future__ import annotations

from enum import Enum

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from circuit_engine.schemas.validation import ValidationResult


class AnalysisState(str, Enum):
    INIT = "init"
    LINEARIZE = "linearize"
    SOLVE = "solve"
    CHECK = "check"
    CONVERGED = "converged"
    ERROR = "error"


TERMINAL_STATES = frozenset({AnalysisState.CONVERGED, AnalysisState.ERROR})


class IterationSnapshot(BaseModel):
    """One assemble-and-solve pass of the iteration driver."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    iteration: int
    matrix: np.ndarray
    rhs: np.ndarray
    solution: np.ndarray
    voltages: dict[str, float] = Field(default_factory=dict)
    max_delta: float = 0.0


class ComponentReading(BaseModel):
    voltage: float
    current: float


class AnalysisResult(BaseModel):
    success: bool
    voltages: dict[str, float] = Field(default_factory=dict)
    readings: dict[str, dict[int, ComponentReading]] = Field(default_factory=dict)
    linearization_points: dict[str, float] = Field(default_factory=dict)
    iterations: int = 0
    error: str | None = None
    validation: ValidationResult | None = None

    @property
    def valid_circuit(self) -> bool:
        return self.success
