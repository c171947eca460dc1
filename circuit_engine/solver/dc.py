"""Non-linear DC Iteration Driver.

Runs the linearise → solve → check loop as an explicit state machine:

    init → linearize → solve → check ─┬→ converged
                         ↑            ├→ error
                         └────────────┘

Each solve is exposed as an ``IterationSnapshot`` through
``DCAnalyser.iterations()`` so convergence and divergence can be observed
step by step. Purely linear circuits converge after a single solve.
"""

from __future__ import annotations

import logging
import math
from typing import Iterator

from circuit_engine.config import AnalysisSettings, get_settings
from circuit_engine.exceptions import CircuitEngineError, ConvergenceError
from circuit_engine.models.factory import (
    create_component_models,
    linearization_point,
    seed_linearization_points,
)
from circuit_engine.models.led import led_current, update_led_model
from circuit_engine.models.logic_gate import update_logic_gate_model
from circuit_engine.models.switch import switch_conductance
from circuit_engine.schemas.analysis import (
    TERMINAL_STATES,
    AnalysisResult,
    AnalysisState,
    ComponentReading,
    IterationSnapshot,
)
from circuit_engine.schemas.circuit import CircuitGraph
from circuit_engine.schemas.models import ComponentModel, ModelKind
from circuit_engine.schemas.snapshot import CircuitSnapshot
from circuit_engine.solver.mna import (
    POWER_CURRENT_KEY,
    assemble_system,
    read_voltages,
    solve_linear_system,
)

logger = logging.getLogger(__name__)


class DCAnalyser:
    """Single-point DC operating-point analysis of one circuit graph."""

    def __init__(
        self,
        graph: CircuitGraph,
        snapshot: CircuitSnapshot,
        settings: AnalysisSettings | None = None,
        previous: AnalysisResult | None = None,
    ):
        self.graph = graph
        self.snapshot = snapshot
        self.settings = settings or get_settings()
        self.previous = previous
        self.reset()

    def reset(self) -> None:
        self.state = AnalysisState.INIT
        self.models: dict[str, ComponentModel] = {}
        self.voltages: dict[str, float] = {}
        self.iteration = 0
        self.max_delta = math.inf
        self.failure: CircuitEngineError | None = None
        self._pending: IterationSnapshot | None = None

    @property
    def non_linear_models(self) -> dict[str, ComponentModel]:
        return {k: m for k, m in self.models.items() if not m.is_linear}

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES

    # ─── State Transitions ───

    def step(self) -> IterationSnapshot | None:
        """Advance one transition. Returns a snapshot after each check."""
        if self.finished:
            return None
        handler = {
            AnalysisState.INIT: self._init,
            AnalysisState.LINEARIZE: self._linearize,
            AnalysisState.SOLVE: self._solve,
            AnalysisState.CHECK: self._check,
        }[self.state]
        try:
            return handler()
        except CircuitEngineError as e:
            self._fail(e)
            return None

    def iterations(self) -> Iterator[IterationSnapshot]:
        while not self.finished:
            snapshot = self.step()
            if snapshot is not None:
                yield snapshot

    def _init(self) -> None:
        self.models = create_component_models(
            self.graph,
            self.snapshot,
            led_initial_voltage=self.settings.led_initial_voltage,
        )
        self.state = AnalysisState.LINEARIZE

    def _linearize(self) -> None:
        if self.previous is not None and self.previous.success:
            self.models = seed_linearization_points(
                self.models, self.previous.linearization_points
            )
        self.state = AnalysisState.SOLVE

    def _solve(self) -> None:
        power, ground = self.graph.supply_nodes(
            self.settings.power_node, self.settings.ground_node
        )
        system = assemble_system(self.graph, self.models, ground)
        solution = solve_linear_system(system.matrix, system.rhs)
        self.voltages = read_voltages(system, solution, self.models, power)
        self.iteration += 1
        self._pending = IterationSnapshot(
            iteration=self.iteration,
            matrix=system.matrix,
            rhs=system.rhs,
            solution=solution,
            voltages=dict(self.voltages),
        )
        self.state = AnalysisState.CHECK

    def _check(self) -> IterationSnapshot:
        snapshot = self._pending
        updated, max_delta = self._update_non_linear()
        self.models.update(updated)
        self.max_delta = max_delta
        snapshot.max_delta = max_delta
        logger.debug("Iteration %d: max voltage change %.3e V", self.iteration, max_delta)

        if max_delta < self.settings.convergence_threshold:
            self.state = AnalysisState.CONVERGED
        elif self.iteration >= self.settings.max_iterations:
            self._fail(ConvergenceError(self.iteration, max_delta))
        else:
            self.state = AnalysisState.SOLVE
        return snapshot

    def _fail(self, error: CircuitEngineError) -> None:
        logger.error("DC analysis failed at iteration %d: %s", self.iteration, error)
        self.failure = error
        self.state = AnalysisState.ERROR

    def _terminal_voltage(self, model: ComponentModel) -> float:
        v = self.voltages
        return v.get(model.edge.source_id, 0.0) - v.get(model.edge.target_id, 0.0)

    def _update_non_linear(self) -> tuple[dict[str, ComponentModel], float]:
        updated: dict[str, ComponentModel] = {}
        max_delta = 0.0
        for model_id, model in self.non_linear_models.items():
            if model.kind == ModelKind.LED:
                new_voltage = self._terminal_voltage(model)
                delta = abs(new_voltage - model.last_voltage)
                updated[model_id] = update_led_model(model, new_voltage)
            else:
                new_model = update_logic_gate_model(model, self.voltages)
                delta = abs(new_model.last_output_voltage - model.last_output_voltage)
                updated[model_id] = new_model
            max_delta = max(max_delta, delta)
        return updated, max_delta

    # ─── Results ───

    def run(self) -> AnalysisResult:
        """Drive the machine to a terminal state and report the outcome."""
        for _ in self.iterations():
            pass

        if self.state == AnalysisState.ERROR:
            return AnalysisResult(
                success=False,
                iterations=self.iteration,
                error=str(self.failure),
            )

        return AnalysisResult(
            success=True,
            voltages=self._report_voltages(),
            readings=self.readings(),
            linearization_points=self.linearization_points(),
            iterations=self.iteration,
        )

    def _round(self, value: float) -> float:
        decimals = self.settings.report_decimals
        return value if decimals is None else round(value, decimals)

    def _report_voltages(self) -> dict[str, float]:
        return {
            k: (v if k == POWER_CURRENT_KEY else self._round(v))
            for k, v in self.voltages.items()
        }

    def linearization_points(self) -> dict[str, float]:
        points = {}
        for model_id, model in self.non_linear_models.items():
            point = linearization_point(model)
            if point is not None:
                points[model_id] = point
        return points

    def readings(self) -> dict[str, dict[int, ComponentReading]]:
        """Per-component, per-segment voltage/current at the final solution."""
        readings: dict[str, dict[int, ComponentReading]] = {}
        for model in self.models.values():
            if model.edge.is_wire:
                continue
            conn = model.edge.connection
            voltage, current = self._reading(model)
            readings.setdefault(conn.id, {})[conn.sub_index] = ComponentReading(
                voltage=self._round(voltage), current=current
            )
        return {k: readings[k] for k in sorted(readings)}

    def _reading(self, model: ComponentModel) -> tuple[float, float]:
        if model.kind == ModelKind.LOGIC_GATE:
            return self.voltages.get(model.output_node_id, 0.0), 0.0

        v = self._terminal_voltage(model)
        if model.kind == ModelKind.RESISTOR:
            return v, v * model.conductance
        if model.kind == ModelKind.DIP_SWITCH:
            return v, v * switch_conductance(model.closed)
        if model.kind == ModelKind.LED:
            return v, led_current(v, model.saturation_current, model.thermal_voltage)
        if model.kind == ModelKind.CURRENT_SOURCE:
            return v, model.current
        # Voltage source: the supply
        return v, self.voltages.get(POWER_CURRENT_KEY, 0.0)


def run_dc_analysis(
    graph: CircuitGraph,
    snapshot: CircuitSnapshot,
    settings: AnalysisSettings | None = None,
    previous: AnalysisResult | None = None,
) -> AnalysisResult:
    return DCAnalyser(graph, snapshot, settings, previous).run()
