"""
Intake Pivot
============

Pivot arm with stow and deployed positions plus operator jog control.
"""

import math

from ..control.goal_state import GoalState, SetpointKind


class PivotState(GoalState):
    """Pivot goals. Positions are radians, OPERATOR_CONTROL is volts."""
    STOW = ("Pivot/Stow", 0.0)
    MOVING = ("Pivot/Moving", 0.0, SetpointKind.TRANSITION_ONLY)
    UP = ("Pivot/Up", math.radians(90))

    # voltage at which the pivot moves when controlled by the operator
    OPERATOR_CONTROL = ("Pivot/OperatorVoltage", 4.5, SetpointKind.OPERATOR_OVERRIDE)


PIVOT_NAME = "Pivot"

# Starts "in motion" until the first real goal is assigned
PIVOT_INITIAL_GOAL = PivotState.MOVING
