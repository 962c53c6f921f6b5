"""
Control System Modules
======================

Actuator controllers and the pieces they share.

Components:
    - ActuatorController / GoalActuatorController: voltage-driven goal control
    - ValidatingActuatorController: validated position goals with operator
      override
    - SubsystemCore: snapshot, disconnect alert and state timer handling
    - ActuatorPort / SerialActuatorPort: hardware I/O boundary
    - GoalState / SetpointKind: goal enumeration base
"""

from .goal_state import GoalState, SetpointKind

from .actuator_interface import (
    ActuatorPort,
    ActuatorPortConfig,
    ControllerSnapshot,
    SerialActuatorPort,
    compute_checksum,
)

from .subsystem_core import (
    ControllerContext,
    StateTimer,
    SubsystemCore,
)

from .actuator_controller import (
    ActuatorController,
    GoalActuatorController,
)

from .validating_controller import ValidatingActuatorController

__all__ = [
    'GoalState',
    'SetpointKind',
    'ActuatorPort',
    'ActuatorPortConfig',
    'ControllerSnapshot',
    'SerialActuatorPort',
    'compute_checksum',
    'ControllerContext',
    'StateTimer',
    'SubsystemCore',
    'ActuatorController',
    'GoalActuatorController',
    'ValidatingActuatorController',
]
