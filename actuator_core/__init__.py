"""
actuator-core
=============

Tick-driven goal-state controllers for single actuators.
"""

__version__ = "0.1.0"
