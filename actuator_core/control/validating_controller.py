"""
Validating Actuator Controller
==============================

Position controller for mechanisms with a small set of named positions
(pivots, wrists, elevators).

Goal assignment is validated:
    - terminal goals move the mechanism to the goal's tunable position and
      publish the goal as the shared status
    - a terminal goal whose tuned position changes while it is held is
      re-sent on the next step()
    - the operator-override goal hands the motor to run_volts() and
      publishes "under manual control"
    - transition-only goals (e.g. MOVING) describe motion in progress and
      are rejected with an operator-visible error

Threading:
    step(), set_goal_state() and run_volts() must be called from the same
    tick thread. Nothing here takes a lock.
"""

import math
import time
from typing import Callable, Optional
import logging

from ..alerts import AlertGroup, ErrorReporter, NotificationSink
from ..robot_state import StatusSlot
from ..telemetry import TelemetryRecorder
from ..tunable import TunableParameterSource
from .actuator_interface import ActuatorPort, ControllerSnapshot
from .goal_state import GoalState
from .subsystem_core import SubsystemCore

logger = logging.getLogger(__name__)


class ValidatingActuatorController:
    """
    Goal-validating position controller.

    Args:
        name: Subsystem name, used for alerts and telemetry keys
        port: Actuator I/O port
        initial_goal: Goal at construction. Not validated and not published,
            so a mechanism may start in a transition-only state.
        tunables: Source of goal setpoints
        telemetry: Per-cycle telemetry sink
        notifications: One-shot operator notifications
        status_slot: Shared status written on goal assignment
        error_reporter: Channel for rejected goal assignments
        alert_group: Group for the persistent disconnect alert
        clock: Time source for the state timer
    """

    def __init__(
        self,
        name: str,
        port: ActuatorPort,
        initial_goal: GoalState,
        tunables: TunableParameterSource,
        telemetry: TelemetryRecorder,
        notifications: NotificationSink,
        status_slot: StatusSlot,
        error_reporter: ErrorReporter,
        alert_group: Optional[AlertGroup] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if not isinstance(initial_goal, GoalState):
            raise TypeError(f"initial_goal must be a GoalState, got {initial_goal!r}")

        self.tunables = tunables
        self.status_slot = status_slot
        self.error_reporter = error_reporter
        self.core = SubsystemCore(
            name, port, telemetry, notifications,
            alert_group=alert_group, clock=clock,
        )

        self._goal = initial_goal
        self._goal_type = type(initial_goal)
        self._operator_volts = 0.0
        self._rejected_count = 0
        self._setpoint_changed(initial_goal)

    def set_goal_state(self, goal: GoalState) -> bool:
        """
        Request a new goal.

        Args:
            goal: Member of this controller's goal enumeration

        Returns:
            True if the goal was accepted
        """
        if not isinstance(goal, self._goal_type):
            raise TypeError(
                f"{self.name}: goal must be a {self._goal_type.__name__}, got {goal!r}"
            )

        if goal.is_transition_only:
            self._rejected_count += 1
            self.error_reporter.report_error(
                f"{self.name}: {goal.name} is an invalid goal state; "
                f"it is a transition state!"
            )
            return False

        self._goal = goal

        if goal.is_operator_override:
            self._operator_volts = 0.0
            self.status_slot.set_current_goal_status(goal)
            logger.info(f"{self.name}: operator control")
            return True

        self._setpoint_changed(goal)
        position = goal.setpoint(self.tunables)
        self.core.port.command_position(position)
        self.status_slot.set_current_goal_status(goal)
        logger.info(f"{self.name}: moving to {goal.name} ({position:.3f})")
        return True

    def run_volts(self, volts: float) -> bool:
        """
        Drive the motor directly while under operator control.

        Returns:
            False (and sends nothing) if not in operator-override mode
        """
        if not self._goal.is_operator_override:
            logger.warning(
                f"{self.name}: run_volts ignored, goal is {self._goal.name} "
                f"not operator control"
            )
            return False

        self._operator_volts = volts
        self.core.port.command_voltage(volts)
        return True

    def step(self):
        """Run one control cycle."""
        goal = self._goal
        self.core.update(goal)

        # Tuned position for the held goal, re-sent on the tick it changes
        if goal.is_terminal and self._setpoint_changed(goal):
            position = goal.setpoint(self.tunables)
            self.core.port.command_position(position)
            logger.info(f"{self.name}: {goal.name} retuned to {position:.3f}")

        status = self.status_slot.get_current_goal_status()
        telemetry = self.core.telemetry
        telemetry.record_value(f"{self.name}/GoalState", goal.name)
        telemetry.record_value(f"{self.name}/CurrentState", status if status is not None else "NONE")
        telemetry.record_value(f"{self.name}/TargetPosition", self.target_position)
        telemetry.record_value(f"{self.name}/StateTime", self.state_time)
        if goal.is_operator_override:
            telemetry.record_value(f"{self.name}/OperatorVolts", self._operator_volts)

    def _setpoint_changed(self, goal: GoalState) -> bool:
        return self.tunables.has_changed(
            goal.setpoint_key, goal.default_setpoint, consumer=self.name
        )

    @property
    def name(self) -> str:
        return self.core.name

    @property
    def goal_state(self) -> GoalState:
        return self._goal

    def get_goal_state(self) -> GoalState:
        return self._goal

    @property
    def target_position(self) -> float:
        """Position for the current goal, NaN under operator control."""
        if self._goal.is_operator_override:
            return math.nan
        return self._goal.setpoint(self.tunables)

    @property
    def state_time(self) -> float:
        """Seconds since the goal last changed."""
        return self.core.state_time

    @property
    def snapshot(self) -> Optional[ControllerSnapshot]:
        """Snapshot read on the last tick, None before the first tick."""
        return self.core.context.snapshot

    @property
    def connected(self) -> bool:
        snapshot = self.snapshot
        return snapshot is not None and snapshot.connected

    @property
    def rejected_count(self) -> int:
        """Number of rejected goal assignments."""
        return self._rejected_count
