"""
Simulation
==========

In-process stand-ins for actuator hardware.
"""

from .actuator_sim import (
    CommandRecord,
    SimulatedActuatorPort,
    SimulatedPortConfig,
)

__all__ = [
    'CommandRecord',
    'SimulatedActuatorPort',
    'SimulatedPortConfig',
]
