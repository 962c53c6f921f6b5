"""
Robot State
===========

Shared, externally-observable status values.

A validating controller publishes the goal it is holding (or that it is
under manual control) into a StatusSlot. Other parts of the robot read the
slot without holding a reference to the controller. RobotState is an
ordinary object passed to whoever needs it; there is no process-wide
instance.
"""

import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class StatusSlot:
    """Single shared goal-status value."""

    def __init__(self, name: str, initial: Any = None):
        self.name = name
        self._value = initial
        self._update_count = 0

    def set_current_goal_status(self, value: Any):
        if value != self._value:
            logger.debug(f"{self.name} status: {self._value} -> {value}")
        self._value = value
        self._update_count += 1

    def get_current_goal_status(self) -> Any:
        return self._value

    @property
    def update_count(self) -> int:
        """Number of times the status has been written."""
        return self._update_count


class RobotState:
    """Registry of named status slots."""

    def __init__(self):
        self._slots: Dict[str, StatusSlot] = {}

    def slot(self, name: str, initial: Any = None) -> StatusSlot:
        """Get the slot for name, creating it on first use."""
        if name not in self._slots:
            self._slots[name] = StatusSlot(name, initial)
        return self._slots[name]

    def get(self, name: str) -> Optional[Any]:
        """Current status for name, or None if nothing was published."""
        slot = self._slots.get(name)
        return slot.get_current_goal_status() if slot else None

    def snapshot(self) -> Dict[str, Any]:
        """All published statuses, as strings for display."""
        return {
            name: str(slot.get_current_goal_status())
            for name, slot in self._slots.items()
        }
