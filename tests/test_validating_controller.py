"""
Unit tests for the validating (position) actuator controller.

Tests goal validation, position commands from tunables, shared status
publication, operator voltage pass-through and per-tick telemetry.
"""

import math
import pytest

from actuator_core.control.validating_controller import ValidatingActuatorController
from actuator_core.subsystems import IntakeRollerState, PivotState
from actuator_core.tunable import StaticTunableSource


@pytest.fixture
def status_slot(robot_state):
    return robot_state.slot("Pivot")


@pytest.fixture
def pivot(sim_port, tunables, telemetry, notifications, robot_state,
          status_slot, error_reporter, alert_group, clock):
    """Pivot controller starting in MOVING."""
    return ValidatingActuatorController(
        "Pivot", sim_port, PivotState.MOVING,
        tunables=tunables,
        telemetry=telemetry,
        notifications=notifications,
        status_slot=status_slot,
        error_reporter=error_reporter,
        alert_group=alert_group,
        clock=clock,
    )


class TestInitialState:
    """Tests for the state after construction."""

    def test_starts_in_initial_goal(self, pivot):
        """Initial goal may be transition-only and is not validated."""
        assert pivot.goal_state is PivotState.MOVING
        assert pivot.get_goal_state() is PivotState.MOVING

    def test_status_not_published_at_construction(self, pivot, status_slot):
        """Construction should not write the shared status."""
        assert status_slot.get_current_goal_status() is None
        assert status_slot.update_count == 0

    def test_no_command_at_construction(self, pivot, sim_port):
        """Construction should not move the motor."""
        assert len(sim_port.commands) == 0


class TestTransitionOnlyGoal:
    """Tests for rejecting transition-only goals."""

    def test_rejected_with_one_error(self, pivot, error_reporter):
        """Assigning MOVING should report exactly one error."""
        accepted = pivot.set_goal_state(PivotState.MOVING)

        assert accepted is False
        error_reporter.report_error.assert_called_once()
        message = error_reporter.report_error.call_args[0][0]
        assert "MOVING" in message
        assert "Pivot" in message

    def test_goal_and_status_unchanged(self, pivot, status_slot, sim_port):
        """A rejected goal should change nothing."""
        pivot.set_goal_state(PivotState.UP)
        commands_before = list(sim_port.commands)

        pivot.set_goal_state(PivotState.MOVING)

        assert pivot.goal_state is PivotState.UP
        assert status_slot.get_current_goal_status() is PivotState.UP
        assert status_slot.update_count == 1
        assert list(sim_port.commands) == commands_before
        assert pivot.rejected_count == 1

    def test_rejection_does_not_reset_timer(self, pivot, clock):
        """The state timer should keep counting after a rejection."""
        pivot.set_goal_state(PivotState.STOW)
        pivot.step()
        clock.advance(0.3)

        pivot.set_goal_state(PivotState.MOVING)
        pivot.step()

        assert pivot.state_time == pytest.approx(0.3)


class TestTerminalGoal:
    """Tests for terminal goal assignment."""

    def test_commands_position_and_publishes(self, pivot, sim_port, status_slot):
        """UP should command its position and publish UP."""
        accepted = pivot.set_goal_state(PivotState.UP)

        assert accepted is True
        assert pivot.goal_state is PivotState.UP
        assert sim_port.position_commands() == pytest.approx([math.pi / 2])
        assert status_slot.get_current_goal_status() is PivotState.UP

    def test_position_read_at_call_time(self, pivot, sim_port, tunables):
        """The setpoint should be read fresh from the tunables."""
        pivot.set_goal_state(PivotState.UP)
        tunables.set("Pivot/Up", 1.25)

        pivot.set_goal_state(PivotState.UP)

        assert sim_port.position_commands() == pytest.approx([math.pi / 2, 1.25])

    def test_stow(self, pivot, sim_port, status_slot):
        """STOW should command zero and publish STOW."""
        pivot.set_goal_state(PivotState.STOW)

        assert sim_port.position_commands() == [0.0]
        assert status_slot.get_current_goal_status() is PivotState.STOW

    def test_no_voltage_commanded(self, pivot, sim_port):
        """Terminal goals are position controlled only."""
        pivot.set_goal_state(PivotState.UP)
        for _ in range(5):
            pivot.step()

        assert sim_port.voltage_commands() == []

    def test_wrong_enum_rejected(self, pivot):
        """A goal from another enumeration is a programming error."""
        with pytest.raises(TypeError):
            pivot.set_goal_state(IntakeRollerState.INTAKE)


class TestOperatorOverride:
    """Tests for operator-override mode."""

    def test_publishes_manual_control(self, pivot, sim_port, status_slot):
        """OPERATOR_CONTROL should publish status without a position command."""
        accepted = pivot.set_goal_state(PivotState.OPERATOR_CONTROL)

        assert accepted is True
        assert pivot.goal_state is PivotState.OPERATOR_CONTROL
        assert status_slot.get_current_goal_status() is PivotState.OPERATOR_CONTROL
        assert sim_port.position_commands() == []

    def test_run_volts_passes_through(self, pivot, sim_port):
        """run_volts should drive the port directly under operator control."""
        pivot.set_goal_state(PivotState.OPERATOR_CONTROL)

        assert pivot.run_volts(3.0) is True
        assert pivot.run_volts(-2.5) is True

        assert sim_port.voltage_commands() == [3.0, -2.5]

    def test_run_volts_ignored_outside_override(self, pivot, sim_port):
        """run_volts should not fight the position loop."""
        pivot.set_goal_state(PivotState.UP)

        assert pivot.run_volts(3.0) is False
        assert sim_port.voltage_commands() == []

    def test_target_position_nan_under_override(self, pivot):
        """There is no position target under operator control."""
        pivot.set_goal_state(PivotState.OPERATOR_CONTROL)

        assert math.isnan(pivot.target_position)


class TestStep:
    """Tests for the periodic step."""

    def test_telemetry_every_tick(self, pivot, telemetry):
        """Goal, current state and target position are recorded each tick."""
        pivot.set_goal_state(PivotState.UP)

        for _ in range(3):
            pivot.step()
            telemetry.end_cycle()

        assert len(telemetry.cycles) == 3
        for frame in telemetry.cycles:
            assert frame["Pivot/GoalState"] == "UP"
            assert frame["Pivot/CurrentState"] == "UP"
            assert frame["Pivot/TargetPosition"] == pytest.approx(math.pi / 2)
            assert "Pivot/Inputs/position" in frame

    def test_current_state_none_before_assignment(self, pivot, telemetry):
        """CurrentState should show NONE until a goal is published."""
        pivot.step()

        assert telemetry.values["Pivot/GoalState"] == "MOVING"
        assert telemetry.values["Pivot/CurrentState"] == "NONE"

    def test_operator_volts_recorded(self, pivot, telemetry):
        """Operator voltage should be recorded under override."""
        pivot.set_goal_state(PivotState.OPERATOR_CONTROL)
        pivot.run_volts(2.0)
        pivot.step()

        assert telemetry.values["Pivot/OperatorVolts"] == pytest.approx(2.0)

    def test_state_timer_resets_on_accepted_goal(self, pivot, clock):
        """Timer resets on the tick after an accepted goal change."""
        pivot.step()
        clock.advance(1.0)
        pivot.step()
        assert pivot.state_time == pytest.approx(1.0)

        pivot.set_goal_state(PivotState.STOW)
        clock.advance(1.0)
        pivot.step()

        assert pivot.state_time == 0.0

    def test_pivot_moves_toward_goal(self, pivot, sim_port):
        """The simulated pivot should approach the commanded position."""
        pivot.set_goal_state(PivotState.UP)

        for _ in range(200):
            pivot.step()

        assert pivot.snapshot.position == pytest.approx(math.pi / 2, abs=0.05)

    def test_retuned_position_resent(self, pivot, sim_port, tunables):
        """A tuned position change for the held goal is sent once."""
        pivot.set_goal_state(PivotState.UP)
        pivot.step()
        assert sim_port.position_commands() == pytest.approx([math.pi / 2])

        tunables.set("Pivot/Up", 1.25)
        for _ in range(3):
            pivot.step()

        assert sim_port.position_commands() == pytest.approx([math.pi / 2, 1.25])

    def test_unrelated_tunable_ignored(self, pivot, sim_port, tunables):
        """Changing another goal's position does not move the pivot."""
        pivot.set_goal_state(PivotState.UP)
        tunables.set("Pivot/Stow", 0.2)

        pivot.step()

        assert sim_port.position_commands() == pytest.approx([math.pi / 2])

    def test_no_position_resent_under_override(self, pivot, sim_port, tunables):
        pivot.set_goal_state(PivotState.OPERATOR_CONTROL)
        tunables.set("Pivot/OperatorVoltage", 6.0)

        pivot.step()

        assert sim_port.position_commands() == []


class TestDisconnect:
    """Tests for disconnect handling in the validating controller."""

    def test_single_notification(self, pivot, sim_port, notifications):
        """Disconnect handling matches the voltage controller."""
        pivot.step()
        sim_port.set_connected(False)
        for _ in range(3):
            pivot.step()

        assert notifications.send.call_count == 1

        sim_port.set_connected(True)
        pivot.step()
        sim_port.set_connected(False)
        pivot.step()

        assert notifications.send.call_count == 2

    def test_goal_assignment_while_disconnected(self, pivot, sim_port, status_slot):
        """Goals can be assigned while disconnected without raising."""
        sim_port.set_connected(False)
        pivot.step()

        assert pivot.set_goal_state(PivotState.STOW) is True
        assert status_slot.get_current_goal_status() is PivotState.STOW


class TestIndependentStatus:
    """Tests that controllers only write their own status slot."""

    def test_separate_slots(self, sim_port, telemetry, notifications,
                            robot_state, error_reporter):
        """Two pivots should publish into separate slots."""
        tunables = StaticTunableSource()
        left = ValidatingActuatorController(
            "Left", sim_port, PivotState.MOVING,
            tunables=tunables, telemetry=telemetry, notifications=notifications,
            status_slot=robot_state.slot("Left"), error_reporter=error_reporter,
        )
        right = ValidatingActuatorController(
            "Right", sim_port, PivotState.MOVING,
            tunables=tunables, telemetry=telemetry, notifications=notifications,
            status_slot=robot_state.slot("Right"), error_reporter=error_reporter,
        )

        left.set_goal_state(PivotState.UP)
        right.set_goal_state(PivotState.STOW)

        assert robot_state.get("Left") is PivotState.UP
        assert robot_state.get("Right") is PivotState.STOW
