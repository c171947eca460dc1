"""Error taxonomy for the analysis engine.

Library code raises these; the iteration driver and the pipeline convert
them into a failed ``AnalysisResult`` so nothing reaches the editor layer
as an unhandled exception.
"""

from __future__ import annotations


class CircuitEngineError(Exception):
    """Base class for every failure the engine reports."""


class TopologyError(CircuitEngineError):
    """No usable circuit could be derived from the snapshot."""


class ModelError(CircuitEngineError):
    """A component carries properties no model can be built from."""


class StampError(CircuitEngineError):
    """A model could not be stamped into the MNA system."""


class SolverError(CircuitEngineError):
    """The assembled linear system is singular or inconsistent."""


class ConvergenceError(CircuitEngineError):
    """Non-linear iteration hit its cap without converging."""

    def __init__(self, iterations: int, max_delta: float):
        self.iterations = iterations
        self.max_delta = max_delta
        super().__init__(
            f"Failed to converge after {iterations} iterations "
            f"(last voltage change {max_delta:.3e}V)"
        )
