"""
Goal States
===========

Base enumeration for the discrete goals an actuator controller drives toward.

Each member carries the key of a tunable setpoint and its default value.
The numeric setpoint is never stored on the member: it is looked up through
a TunableParameterSource every time it is needed, so setpoints can be
changed while the robot is running.

Member values are tuples:
    (setpoint_key, default_setpoint)
    (setpoint_key, default_setpoint, kind)
    (setpoint_key, default_setpoint, kind, (handoff_key, handoff_default))

Example:
    class PivotState(GoalState):
        STOW = ("Pivot/Stow", 0.0)
        MOVING = ("Pivot/Moving", 0.0, SetpointKind.TRANSITION_ONLY)
"""

from enum import Enum, auto
from typing import Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from ..tunable import TunableParameterSource


class SetpointKind(Enum):
    """How a goal state may be used."""
    TERMINAL = auto()            # Externally assignable, held by the controller
    TRANSITION_ONLY = auto()     # "In motion" marker, never externally assigned
    OPERATOR_OVERRIDE = auto()   # Operator drives raw voltage


class GoalState(Enum):
    """
    Base class for goal enumerations.

    Subclasses declare members only; the behaviour lives here.
    """

    def __init__(
        self,
        setpoint_key: str,
        default_setpoint: float,
        kind: SetpointKind = SetpointKind.TERMINAL,
        handoff: Optional[Tuple[str, float]] = None,
    ):
        self.setpoint_key = setpoint_key
        self.default_setpoint = float(default_setpoint)
        self.kind = kind
        self._handoff = handoff

    def setpoint(self, source: 'TunableParameterSource') -> float:
        """Resolve the current setpoint (volts or position) for this goal."""
        return source.get(self.setpoint_key, self.default_setpoint)

    def handoff_setpoint(self, source: 'TunableParameterSource') -> float:
        """
        Resolve the voltage used while handing off to another mechanism.

        Falls back to the regular setpoint when the member names no
        separate handoff key.
        """
        if self._handoff is None:
            return self.setpoint(source)
        key, default = self._handoff
        return source.get(key, float(default))

    @property
    def is_terminal(self) -> bool:
        return self.kind is SetpointKind.TERMINAL

    @property
    def is_transition_only(self) -> bool:
        return self.kind is SetpointKind.TRANSITION_ONLY

    @property
    def is_operator_override(self) -> bool:
        return self.kind is SetpointKind.OPERATOR_OVERRIDE

    def __str__(self) -> str:
        return self.name
