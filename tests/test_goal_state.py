"""
Unit tests for goal state enumerations.

Tests setpoint resolution through tunable sources, kind classification
and handoff voltages.
"""

import math
import pytest

from actuator_core.control.goal_state import GoalState, SetpointKind
from actuator_core.subsystems import IntakeRollerState, PivotState
from actuator_core.tunable import StaticTunableSource


class ShooterState(GoalState):
    OFF = ("Shooter/Off", 0.0)
    SPIN_UP = ("Shooter/SpinUp", 9, SetpointKind.TRANSITION_ONLY)
    JOG = ("Shooter/Jog", 2.0, SetpointKind.OPERATOR_OVERRIDE)


class TestSetpointKind:
    """Tests for goal classification."""

    def test_default_kind_is_terminal(self):
        """Members without an explicit kind should be terminal."""
        assert ShooterState.OFF.kind is SetpointKind.TERMINAL
        assert ShooterState.OFF.is_terminal
        assert not ShooterState.OFF.is_transition_only
        assert not ShooterState.OFF.is_operator_override

    def test_transition_only(self):
        """Transition-only members should be classified as such."""
        assert ShooterState.SPIN_UP.is_transition_only
        assert not ShooterState.SPIN_UP.is_terminal

    def test_operator_override(self):
        """Override members should be classified as such."""
        assert ShooterState.JOG.is_operator_override
        assert not ShooterState.JOG.is_terminal

    def test_pivot_kinds(self):
        """Pivot MOVING is transition-only, OPERATOR_CONTROL is override."""
        assert PivotState.STOW.is_terminal
        assert PivotState.UP.is_terminal
        assert PivotState.MOVING.is_transition_only
        assert PivotState.OPERATOR_CONTROL.is_operator_override


class TestSetpointResolution:
    """Tests for reading setpoints through a tunable source."""

    def test_default_used_when_not_tuned(self):
        """Unset keys should resolve to the member default."""
        source = StaticTunableSource()

        assert PivotState.UP.setpoint(source) == pytest.approx(math.pi / 2)
        assert PivotState.OPERATOR_CONTROL.setpoint(source) == pytest.approx(4.5)

    def test_integer_default_is_float(self):
        """Integer defaults should be stored as floats."""
        assert ShooterState.SPIN_UP.default_setpoint == 9.0
        assert isinstance(ShooterState.SPIN_UP.default_setpoint, float)

    def test_tuned_value_overrides_default(self):
        """A tuned value should replace the default."""
        source = StaticTunableSource({"Pivot/Up": 1.2})

        assert PivotState.UP.setpoint(source) == pytest.approx(1.2)

    def test_setpoint_read_fresh(self):
        """Changing the source should change the next resolution."""
        source = StaticTunableSource()
        assert IntakeRollerState.INTAKE.setpoint(source) == pytest.approx(12.0)

        source.set("Intake/Intake", 10.5)

        assert IntakeRollerState.INTAKE.setpoint(source) == pytest.approx(10.5)

    def test_members_have_distinct_keys(self):
        """Each pivot member should have its own tunable key."""
        keys = [state.setpoint_key for state in PivotState]

        assert len(keys) == len(set(keys))


class TestHandoffSetpoint:
    """Tests for handoff voltage resolution."""

    def test_handoff_defaults_to_setpoint(self):
        """Members without a handoff key should use their setpoint."""
        source = StaticTunableSource({"Intake/Intake": 11.0})

        assert IntakeRollerState.INTAKE.handoff_setpoint(source) == pytest.approx(11.0)

    def test_separate_handoff_key(self):
        """Members with a handoff key should resolve it separately."""
        source = StaticTunableSource()

        assert IntakeRollerState.HANDOFF.setpoint(source) == pytest.approx(8.0)
        assert IntakeRollerState.HANDOFF.handoff_setpoint(source) == pytest.approx(6.0)

        source.set("Intake/HandoffFeed", 5.0)
        assert IntakeRollerState.HANDOFF.handoff_setpoint(source) == pytest.approx(5.0)


class TestGoalStateStr:
    """Tests for string conversion."""

    def test_str_is_name(self):
        """str() should give the member name for logging."""
        assert str(PivotState.STOW) == "STOW"
