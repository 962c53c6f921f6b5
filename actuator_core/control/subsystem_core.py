"""
Subsystem Core
==============

Per-tick bookkeeping shared by every actuator controller:

    - read the hardware snapshot and log it as inputs
    - keep the persistent "motor disconnected" alert in sync
    - send one notification when the motor disconnects (not every cycle)
    - restart the state timer whenever the goal changes

Controllers own one SubsystemCore each and call update() at the start of
their step().
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional
import logging

from ..alerts import (
    Alert,
    AlertGroup,
    AlertType,
    Notification,
    NotificationLevel,
    NotificationSink,
)
from ..telemetry import TelemetryRecorder
from .actuator_interface import ActuatorPort, ControllerSnapshot
from .goal_state import GoalState

logger = logging.getLogger(__name__)


class StateTimer:
    """
    Elapsed-time counter restarted on every goal change.

    Args:
        clock: Monotonic time source in seconds
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._start_time = clock()

    def reset(self):
        """Restart counting from zero."""
        self._start_time = self._clock()

    def get(self) -> float:
        """Seconds since the last reset."""
        return self._clock() - self._start_time


@dataclass
class ControllerContext:
    """Mutable state owned by one controller."""
    goal: Optional[GoalState] = None
    last_goal: Optional[GoalState] = None
    was_connected: bool = True
    snapshot: Optional[ControllerSnapshot] = None
    cycle_count: int = 0


class SubsystemCore:
    """
    Shared tick and alert handling.

    Not thread-safe: update() must be called from the tick thread only, the
    same thread that assigns goals.
    """

    def __init__(
        self,
        name: str,
        port: ActuatorPort,
        telemetry: TelemetryRecorder,
        notifications: NotificationSink,
        alert_group: Optional[AlertGroup] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if not name:
            raise ValueError("Subsystem name must not be empty")

        self.name = name
        self.port = port
        self.telemetry = telemetry
        self.notifications = notifications

        self.context = ControllerContext()
        self.state_timer = StateTimer(clock)

        self.disconnected_alert = Alert(
            f"{name} motor disconnected!", AlertType.WARNING, alert_group
        )
        self.disconnected_notification = Notification(
            NotificationLevel.WARNING, f"{name} Warning", f"{name} motor disconnected!"
        )
        self._disconnect_count = 0

    def update(self, goal: GoalState) -> ControllerSnapshot:
        """
        Run the shared part of one tick.

        Args:
            goal: Goal the controller is pursuing this tick

        Returns:
            The snapshot read this tick
        """
        ctx = self.context

        snapshot = self.port.read_snapshot()
        ctx.snapshot = snapshot
        ctx.cycle_count += 1
        self.telemetry.record_inputs(self.name, snapshot.as_dict())

        self.disconnected_alert.set(not snapshot.connected)

        ctx.goal = goal
        if goal != ctx.last_goal:
            self.state_timer.reset()
            logger.info(f"{self.name} goal: {ctx.last_goal} → {goal}")
            ctx.last_goal = goal

        # prevents notification spam
        if not snapshot.connected and ctx.was_connected:
            self._disconnect_count += 1
            n = self.disconnected_notification
            self.notifications.send(n.level, n.title, n.description)
        ctx.was_connected = snapshot.connected

        return snapshot

    @property
    def state_time(self) -> float:
        """Seconds the current goal has been held."""
        return self.state_timer.get()

    @property
    def disconnect_count(self) -> int:
        """Number of disconnect edges seen."""
        return self._disconnect_count
