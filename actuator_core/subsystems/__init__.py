"""
Subsystems
==========

Goal enumerations for the mechanisms driven by the control loop.
"""

from .intake import INTAKE_NAME, IntakeRollerState
from .pivot import PIVOT_INITIAL_GOAL, PIVOT_NAME, PivotState

__all__ = [
    'INTAKE_NAME',
    'IntakeRollerState',
    'PIVOT_INITIAL_GOAL',
    'PIVOT_NAME',
    'PivotState',
]
