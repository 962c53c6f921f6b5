"""
Actuator Controller
===================

Voltage-driven controller for one actuator (rollers, flywheels, belts).

Each tick the controller reads the motor status, applies the voltage bound
to its current goal and reports what it did. Subclasses decide what the
goal is by implementing get_goal_state(); the controller only reacts to it.

Threading:
    step() and goal setters must all be called from the same tick thread.
    Nothing here takes a lock.
"""

import time
from abc import ABC, abstractmethod
from typing import Callable, Optional
import logging

from ..alerts import AlertGroup, NotificationSink
from ..telemetry import TelemetryRecorder
from ..tunable import TunableParameterSource
from .actuator_interface import ActuatorPort, ControllerSnapshot
from .goal_state import GoalState
from .subsystem_core import SubsystemCore

logger = logging.getLogger(__name__)


class ActuatorController(ABC):
    """
    Base voltage controller.

    Args:
        name: Subsystem name, used for alerts and telemetry keys
        port: Actuator I/O port
        tunables: Source of goal setpoints, read every tick
        telemetry: Per-cycle telemetry sink
        notifications: One-shot operator notifications
        alert_group: Group for the persistent disconnect alert
        clock: Time source for the state timer
    """

    def __init__(
        self,
        name: str,
        port: ActuatorPort,
        tunables: TunableParameterSource,
        telemetry: TelemetryRecorder,
        notifications: NotificationSink,
        alert_group: Optional[AlertGroup] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.tunables = tunables
        self.core = SubsystemCore(
            name, port, telemetry, notifications,
            alert_group=alert_group, clock=clock,
        )
        self._target_volts = 0.0

    @abstractmethod
    def get_goal_state(self) -> GoalState:
        """Goal the actuator should pursue this tick."""

    def step(self):
        """Run one control cycle."""
        goal = self.get_goal_state()
        self.core.update(goal)

        self._target_volts = goal.setpoint(self.tunables)
        self.core.port.command_voltage(self._target_volts)

        telemetry = self.core.telemetry
        telemetry.record_value(f"{self.name}/Goal", goal.name)
        telemetry.record_value(f"{self.name}/StateTime", self.state_time)
        telemetry.record_value(f"{self.name}/TargetVolts", self._target_volts)

    @property
    def name(self) -> str:
        return self.core.name

    @property
    def goal_state(self) -> GoalState:
        return self.get_goal_state()

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
    def target_volts(self) -> float:
        """Voltage commanded on the last tick."""
        return self._target_volts


class GoalActuatorController(ActuatorController):
    """
    Voltage controller whose goal is a plain settable field.

    Args:
        initial_goal: Goal held until set_goal_state() is called
    """

    def __init__(self, name: str, port: ActuatorPort, initial_goal: GoalState, **kwargs):
        if not isinstance(initial_goal, GoalState):
            raise TypeError(f"initial_goal must be a GoalState, got {initial_goal!r}")
        super().__init__(name, port, **kwargs)
        self._goal = initial_goal

    def get_goal_state(self) -> GoalState:
        return self._goal

    def set_goal_state(self, goal: GoalState):
        """Change the goal; takes effect on the next step()."""
        if not isinstance(goal, GoalState):
            raise TypeError(f"goal must be a GoalState, got {goal!r}")
        self._goal = goal

    def handoff_volts(self) -> float:
        """Handoff voltage for the current goal, read fresh."""
        return self._goal.handoff_setpoint(self.tunables)
