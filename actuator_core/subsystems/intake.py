"""
Intake Roller
=============

Roller goals, all open-loop voltages.
"""

from ..control.goal_state import GoalState, SetpointKind


class IntakeRollerState(GoalState):
    IDLE = ("Intake/Idle", 0.0)
    INTAKE = ("Intake/Intake", 12.0)
    EJECT = ("Intake/Eject", -12.0)
    HANDOFF = ("Intake/Handoff", 8.0, SetpointKind.TERMINAL, ("Intake/HandoffFeed", 6.0))


INTAKE_NAME = "Intake"
