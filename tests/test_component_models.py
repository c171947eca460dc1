"""Unit tests for the component model library and its stamps."""

import math

import numpy as np
import pytest

from circuit_engine.exceptions import ModelError, StampError
from circuit_engine.models.factory import (
    STAMPS,
    apply_component_stamp,
    create_component_models,
    gate_model_id,
)
from circuit_engine.models.led import (
    apply_led_stamp,
    create_led_model,
    led_current,
    linearise,
    update_led_model,
)
from circuit_engine.models.logic_gate import (
    INPUT_CONDUCTANCE,
    apply_logic_gate_stamp,
    create_logic_gate_model,
    evaluate_logic_gate,
    update_logic_gate_model,
)
from circuit_engine.models.resistor import (
    apply_resistor_stamp,
    apply_wire_stamp,
    convert_to_base_units,
    create_resistor_model,
    create_wire_model,
)
from circuit_engine.models.sources import (
    apply_current_source_stamp,
    apply_voltage_source_stamp,
    create_voltage_source_model,
)
from circuit_engine.models.switch import apply_dip_switch_stamp, create_dip_switch_model
from circuit_engine.schemas.circuit import (
    CircuitEdge,
    CircuitGraph,
    CircuitNode,
    ComponentConnection,
    WireConnection,
)
from circuit_engine.schemas.models import (
    CurrentSourceModel,
    DipSwitchModel,
    ModelKind,
    ResistorModel,
    VoltageSourceModel,
)
from circuit_engine.schemas.snapshot import CircuitSnapshot, Component, ComponentType
from circuit_engine.solver.system import MNASystem


# ─── Fixtures ───


def _edge(
    src: str = "a",
    tgt: str = "b",
    component_id: str = "R1",
    component_type: ComponentType = ComponentType.RESISTOR,
    **conn,
) -> CircuitEdge:
    return CircuitEdge(
        id=f"edge-{component_id}",
        source_id=src,
        target_id=tgt,
        connection=ComponentConnection(id=component_id, component_type=component_type, **conn),
    )


def _system(*node_ids: str, branches: int = 0) -> MNASystem:
    return MNASystem({n: i for i, n in enumerate(node_ids)}, branch_count=branches)


def _resistor(value, unit="Ω", component_id="R1") -> Component:
    return Component(
        id=component_id,
        type=ComponentType.RESISTOR,
        properties={"value": value, "unit": unit},
    )


def _gate_edge(gate_type: str = "AND", src: str = "in0", tgt: str = "out") -> CircuitEdge:
    return _edge(
        src,
        tgt,
        component_id="U1",
        component_type=ComponentType.IC,
        gate_type=gate_type,
        pin_function="input",
        input_index=0,
    )


# ═══════════════════════════════════════════════════════════
# Resistor & Wire
# ═══════════════════════════════════════════════════════════


class TestResistorModel:
    @pytest.mark.parametrize(
        "value,unit,ohms",
        [(220, "Ω", 220.0), (2, "kΩ", 2000.0), (0.5, "MΩ", 500000.0)],
    )
    def test_unit_conversion(self, value, unit, ohms):
        assert convert_to_base_units(value, unit) == ohms

    def test_conductance_is_reciprocal_resistance(self):
        model = create_resistor_model(_resistor(2, "kΩ"), _edge())
        assert model.conductance == pytest.approx(1 / 2000)
        assert model.is_linear

    def test_unknown_unit_rejected(self):
        with pytest.raises(ModelError):
            convert_to_base_units(1, "mΩ")

    def test_zero_resistance_rejected(self):
        with pytest.raises(ModelError):
            create_resistor_model(_resistor(0), _edge())

    def test_non_numeric_value_rejected(self):
        with pytest.raises(ModelError):
            create_resistor_model(_resistor("ten"), _edge())

    def test_stamp_is_symmetric(self):
        system = _system("a", "b")
        apply_resistor_stamp(system, ResistorModel(edge=_edge(), conductance=0.5))

        expected = np.array([[0.5, -0.5], [-0.5, 0.5]])
        np.testing.assert_array_equal(system.matrix, expected)
        np.testing.assert_array_equal(system.rhs, [0.0, 0.0])

    def test_stamp_with_unmapped_node_touches_only_diagonal(self):
        system = _system("a", "x")
        apply_resistor_stamp(
            system, ResistorModel(edge=_edge("a", "unified-ground"), conductance=0.25)
        )

        assert system.matrix[0, 0] == 0.25
        assert np.count_nonzero(system.matrix) == 1

    def test_stamps_accumulate(self):
        system = _system("a", "b")
        model = ResistorModel(edge=_edge(), conductance=1.0)
        apply_resistor_stamp(system, model)
        apply_resistor_stamp(system, model)
        assert system.matrix[0, 1] == -2.0

    def test_wire_is_unit_conductance(self):
        edge = CircuitEdge(
            id="edge-W1", source_id="a", target_id="b", connection=WireConnection(id="W1")
        )
        model = create_wire_model(edge)
        assert model.conductance == 1.0

        system = _system("a", "b")
        apply_wire_stamp(system, model)
        assert system.matrix[0, 0] == 1.0
        assert system.matrix[1, 0] == -1.0


# ═══════════════════════════════════════════════════════════
# DIP Switch
# ═══════════════════════════════════════════════════════════


class TestDipSwitchModel:
    def _switch(self, states) -> Component:
        return Component(
            id="SW1", type=ComponentType.DIP_SWITCH, properties={"switch_states": states}
        )

    def test_state_read_from_segment(self):
        edge = _edge(component_id="SW1", component_type=ComponentType.DIP_SWITCH, sub_index=2)
        model = create_dip_switch_model(self._switch([False, False, True]), edge)
        assert model.switch_index == 2
        assert model.closed

    def test_missing_state_defaults_open(self):
        edge = _edge(component_id="SW1", component_type=ComponentType.DIP_SWITCH, sub_index=5)
        model = create_dip_switch_model(self._switch([True]), edge)
        assert not model.closed

    @pytest.mark.parametrize("closed,g", [(True, 1e10), (False, 1e-20)])
    def test_stamp_conductance(self, closed, g):
        system = _system("a", "b")
        apply_dip_switch_stamp(
            system, DipSwitchModel(edge=_edge(), switch_index=0, closed=closed)
        )
        assert system.matrix[0, 0] == g
        assert system.matrix[1, 1] == g
        assert system.matrix[0, 1] == -g
        assert system.matrix[1, 0] == -g


# ═══════════════════════════════════════════════════════════
# Independent Sources
# ═══════════════════════════════════════════════════════════


class TestCurrentSource:
    def test_subtracts_from_source_adds_to_target(self):
        system = _system("a", "b")
        apply_current_source_stamp(system, CurrentSourceModel(edge=_edge(), current=0.01))
        np.testing.assert_array_equal(system.rhs, [-0.01, 0.01])
        assert not system.matrix.any()

    def test_zero_current_is_noop(self):
        system = _system("a", "b")
        apply_current_source_stamp(system, CurrentSourceModel(edge=_edge(), current=0.0))
        assert not system.rhs.any()

    def test_only_mapped_row_updated(self):
        system = _system("a")
        apply_current_source_stamp(
            system, CurrentSourceModel(edge=_edge("unified-ground", "a"), current=2.0)
        )
        np.testing.assert_array_equal(system.rhs, [2.0])


class TestVoltageSource:
    def test_grows_system_by_one(self):
        system = _system("a", "b")
        apply_voltage_source_stamp(system, VoltageSourceModel(edge=_edge(), voltage=9.0))

        assert system.size == 3
        assert system.matrix[0, 2] == 1
        assert system.matrix[2, 0] == 1
        assert system.matrix[1, 2] == -1
        assert system.matrix[2, 1] == -1
        assert system.rhs[2] == 9.0

    def test_presized_system_does_not_grow(self):
        system = _system("a", branches=1)
        apply_voltage_source_stamp(
            system, VoltageSourceModel(edge=_edge("a", "unified-ground"), voltage=5.0)
        )
        assert system.size == 2
        assert system.branches == {"edge-R1": 1}
        np.testing.assert_array_equal(system.matrix, [[0, 1], [1, 0]])

    def test_unmapped_terminal_fails(self):
        system = _system("a")
        with pytest.raises(StampError):
            apply_voltage_source_stamp(
                system, VoltageSourceModel(edge=_edge("a", "floating"), voltage=5.0)
            )

    def test_voltage_read_from_properties(self):
        supply = Component(id="PS1", type=ComponentType.POWER_SUPPLY, properties={"voltage": 12})
        model = create_voltage_source_model(supply, _edge())
        assert model.voltage == 12.0


# ═══════════════════════════════════════════════════════════
# LED
# ═══════════════════════════════════════════════════════════


class TestLEDModel:
    def _led(self, voltage=None):
        return create_led_model(_edge("a", "unified-ground", "D1", ComponentType.LED), voltage)

    def test_defaults(self):
        model = self._led()
        assert not model.is_linear
        assert model.last_voltage == 2.0
        assert model.saturation_current == 1e-15
        assert model.thermal_voltage == pytest.approx(0.078)

    def test_linearisation(self):
        model = self._led(1.5)
        vt = model.thermal_voltage
        g = 1e-15 / vt * math.exp(1.5 / vt)
        i_eq = 1e-15 * (math.exp(1.5 / vt) - 1) - g * 1.5
        assert model.equivalent_conductance == pytest.approx(g)
        assert model.equivalent_current == pytest.approx(i_eq)

    def test_update_clamps_large_steps(self):
        model = self._led(2.0)
        up = update_led_model(model, 10.0)
        down = update_led_model(model, -10.0)
        assert up.last_voltage == pytest.approx(2.0 + 5 * model.thermal_voltage)
        assert down.last_voltage == pytest.approx(2.0 - 5 * model.thermal_voltage)

    def test_update_small_step_exact(self):
        model = self._led(2.0)
        assert update_led_model(model, 2.1).last_voltage == pytest.approx(2.1)

    def test_update_returns_copy(self):
        model = self._led(2.0)
        update_led_model(model, 2.3)
        assert model.last_voltage == 2.0

    def test_stamp_composes_conductance_and_current(self):
        model = self._led(2.0)
        system = _system("a")
        apply_led_stamp(system, model)
        assert system.matrix[0, 0] == pytest.approx(model.equivalent_conductance)
        assert system.rhs[0] == pytest.approx(-model.equivalent_current)

    def test_forward_current_positive(self):
        assert led_current(2.0, 1e-15, 0.078) > 0
        assert led_current(0.0, 1e-15, 0.078) == 0

    def test_exponent_capped_at_high_voltage(self):
        g, i_eq = linearise(100.0, 1e-15, 0.078)
        assert math.isfinite(g)
        assert math.isfinite(i_eq)
        assert math.isfinite(led_current(100.0, 1e-15, 0.078))
        assert linearise(100.0, 1e-15, 0.078)[0] == linearise(50.0, 1e-15, 0.078)[0]


# ═══════════════════════════════════════════════════════════
# Logic Gates
# ═══════════════════════════════════════════════════════════


class TestLogicGate:
    @pytest.mark.parametrize(
        "gate,inputs,expected",
        [
            ("AND", [5, 5], 5.0),
            ("AND", [5, 0], 0.0),
            ("OR", [0, 5], 5.0),
            ("OR", [0, 0], 0.0),
            ("NAND", [5, 5], 0.0),
            ("NAND", [0, 5], 5.0),
            ("NOR", [0, 0], 5.0),
            ("NOR", [5, 0], 0.0),
            ("XOR", [5, 0], 5.0),
            ("XOR", [5, 5], 0.0),
            ("NOT", [0], 5.0),
            ("NOT", [5], 0.0),
        ],
    )
    def test_truth_tables(self, gate, inputs, expected):
        assert evaluate_logic_gate(gate, inputs, 0.0) == expected

    def test_forbidden_band_follows_last_output(self):
        assert evaluate_logic_gate("AND", [1.5, 5], 5.0) == 5.0
        assert evaluate_logic_gate("AND", [1.5, 5], 0.0) == 0.0

    def test_unknown_gate_drives_low(self):
        assert evaluate_logic_gate("MAJORITY", [5, 5, 5], 0.0) == 0.0

    def test_update_reads_input_voltages(self):
        model = create_logic_gate_model(_gate_edge("NOT"), ["in0"], "out")
        updated = update_logic_gate_model(model, {"in0": 0.1})
        assert updated.last_input_voltages == [0.1]
        assert updated.last_output_voltage == 5.0
        assert model.last_output_voltage == 0.0

    def test_stamp_drives_output_to_ground(self):
        model = create_logic_gate_model(_gate_edge(), ["in0"], "out", last_output_voltage=5.0)
        system = _system("out")
        apply_logic_gate_stamp(system, model)
        assert system.size == 2
        np.testing.assert_array_equal(system.matrix, [[0, 1], [1, 0]])
        assert system.rhs[1] == 5.0

    def test_stamp_loads_inputs_to_ground(self):
        model = create_logic_gate_model(_gate_edge("NAND"), ["in0", "in1"], "out")
        system = _system("in0", "in1", "out")
        apply_logic_gate_stamp(system, model)
        assert system.matrix[0, 0] == INPUT_CONDUCTANCE
        assert system.matrix[1, 1] == INPUT_CONDUCTANCE
        assert system.matrix[0, 1] == 0.0
        assert system.matrix[2, 2] == 0.0


# ═══════════════════════════════════════════════════════════
# Factory
# ═══════════════════════════════════════════════════════════


class TestFactory:
    def test_every_model_kind_has_a_stamp(self):
        assert set(STAMPS) == set(ModelKind)

    def test_dispatch(self):
        system = _system("a", "b")
        apply_component_stamp(system, ResistorModel(edge=_edge(), conductance=2.0))
        assert system.matrix[0, 0] == 2.0

    def test_gate_inputs_grouped_into_one_model(self):
        edges = [
            CircuitEdge(
                id=f"edge-U1:0:{i}",
                source_id=f"in{i}",
                target_id="out",
                connection=ComponentConnection(
                    id="U1",
                    component_type=ComponentType.IC,
                    sub_index=0,
                    gate_type="NAND",
                    pin_function="input",
                    input_index=i,
                ),
            )
            for i in range(2)
        ]
        graph = CircuitGraph(
            nodes={n: CircuitNode(id=n) for n in ("in0", "in1", "out")},
            edges={e.id: e for e in edges},
        )
        snapshot = CircuitSnapshot(
            components={"U1": Component(id="U1", type=ComponentType.IC, properties={"ic_type": "7400"})}
        )

        models = create_component_models(graph, snapshot)
        assert list(models) == [gate_model_id("U1", 0)]
        gate = models[gate_model_id("U1", 0)]
        assert gate.gate_type == "NAND"
        assert gate.input_node_ids == ["in0", "in1"]
        assert gate.output_node_id == "out"

    def test_warm_start_seeds_led(self):
        edge = _edge("a", "unified-ground", "D1", ComponentType.LED)
        graph = CircuitGraph(
            nodes={n: CircuitNode(id=n) for n in ("a", "unified-ground")},
            edges={edge.id: edge},
        )
        snapshot = CircuitSnapshot(
            components={"D1": Component(id="D1", type=ComponentType.LED)}
        )
        models = create_component_models(graph, snapshot, {"edge-D1": 1.9})
        assert models["edge-D1"].last_voltage == 1.9
