"""
Shared test fixtures for actuator controller unit tests.
"""

import pytest
from unittest.mock import Mock

from actuator_core.alerts import AlertGroup, ErrorReporter, NotificationSink
from actuator_core.robot_state import RobotState
from actuator_core.simulation.actuator_sim import SimulatedActuatorPort, SimulatedPortConfig
from actuator_core.telemetry import MemoryTelemetryRecorder
from actuator_core.tunable import StaticTunableSource


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    """Fake clock for exact state-timer assertions."""
    return FakeClock()


@pytest.fixture
def sim_port():
    """Connected simulated actuator port."""
    return SimulatedActuatorPort(SimulatedPortConfig(dt=0.02))


@pytest.fixture
def tunables():
    """Empty in-memory tunables; every goal uses its default."""
    return StaticTunableSource()


@pytest.fixture
def telemetry():
    """In-memory telemetry recorder."""
    return MemoryTelemetryRecorder()


@pytest.fixture
def notifications():
    """Mock notification sink."""
    return Mock(spec=NotificationSink)


@pytest.fixture
def error_reporter():
    """Mock error reporter."""
    return Mock(spec=ErrorReporter)


@pytest.fixture
def alert_group():
    """Alert group for disconnect alerts."""
    return AlertGroup()


@pytest.fixture
def robot_state():
    """Fresh shared robot state."""
    return RobotState()
