"""
Simulated Actuator Port
=======================

Tick-driven motor model standing in for real hardware.

Every read_snapshot() advances the model by one fixed time step, so a
controller stepped N times sees exactly N * dt of simulated time. Nothing
runs in the background.

Model:
    Voltage mode:  velocity follows kv * volts with a first-order lag
    Position mode: rate-limited proportional move toward the target
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional, Tuple

import numpy as np

from ..control.actuator_interface import ActuatorPort, ControllerSnapshot

logger = logging.getLogger(__name__)


@dataclass
class SimulatedPortConfig:
    """Physical parameters of the simulated motor."""
    dt: float = 0.02                    # Seconds per tick (50Hz)
    kv: float = 40.0                    # rad/s per volt, free speed
    time_constant: float = 0.05         # Velocity lag (s)
    position_kp: float = 8.0            # 1/s, position loop gain
    max_position_rate: float = 6.0      # rad/s in position mode
    supply_voltage: float = 12.0
    position_limits: Optional[Tuple[float, float]] = None

    # Current / thermal
    base_current: float = 0.2           # A at rest
    current_per_volt: float = 1.5       # A per applied volt
    ambient_temp: float = 25.0          # °C
    heating_rate: float = 0.002         # °C per A² per tick
    cooling_rate: float = 0.01          # Fraction of excess lost per tick

    history: int = 1000                 # Commands kept for inspection


@dataclass
class CommandRecord:
    """A command received by the simulated port."""
    kind: str                           # "voltage" or "position"
    value: float
    tick: int


class SimulatedActuatorPort(ActuatorPort):
    """
    In-process motor simulation.

    set_connected(False) makes the port report a disconnected motor and
    ignore commands until reconnected, as a motor controller dropping off
    the CAN bus would.
    """

    def __init__(self, config: Optional[SimulatedPortConfig] = None):
        self.config = config or SimulatedPortConfig()

        # [position, velocity]
        self._state = np.zeros(2)
        self._applied_voltage = 0.0
        self._temperature = self.config.ambient_temp
        self._mode = "voltage"
        self._voltage_demand = 0.0
        self._position_target = 0.0
        self._connected = True
        self._tick = 0

        self.commands: Deque[CommandRecord] = deque(maxlen=self.config.history)

    def set_connected(self, connected: bool):
        """Simulate the motor dropping off or rejoining the bus."""
        if connected != self._connected:
            logger.info(f"Simulated motor {'connected' if connected else 'disconnected'}")
        self._connected = connected

    def read_snapshot(self) -> ControllerSnapshot:
        self._tick += 1
        now = self._tick * self.config.dt

        if not self._connected:
            return ControllerSnapshot(timestamp=now, connected=False)

        self._advance(self.config.dt)
        current = self.config.base_current + abs(self._applied_voltage) * self.config.current_per_volt

        return ControllerSnapshot(
            timestamp=now,
            connected=True,
            position=float(self._state[0]),
            velocity=float(self._state[1]),
            applied_voltage=self._applied_voltage,
            supply_current=current,
            temperature=self._temperature,
        )

    def command_voltage(self, volts: float):
        self.commands.append(CommandRecord("voltage", volts, self._tick))
        if not self._connected:
            return
        self._mode = "voltage"
        self._voltage_demand = volts

    def command_position(self, position: float):
        self.commands.append(CommandRecord("position", position, self._tick))
        if not self._connected:
            return
        self._mode = "position"
        self._position_target = position

    def _advance(self, dt: float):
        cfg = self.config
        position, velocity = self._state

        if self._mode == "position":
            error = self._position_target - position
            target_velocity = np.clip(cfg.position_kp * error,
                                      -cfg.max_position_rate, cfg.max_position_rate)
            volts = target_velocity / cfg.kv
        else:
            volts = self._voltage_demand

        volts = float(np.clip(volts, -cfg.supply_voltage, cfg.supply_voltage))
        alpha = min(1.0, dt / cfg.time_constant)
        velocity += (cfg.kv * volts - velocity) * alpha
        position += velocity * dt

        if cfg.position_limits is not None:
            low, high = cfg.position_limits
            if not low <= position <= high:
                position = float(np.clip(position, low, high))
                velocity = 0.0

        self._state = np.array([position, velocity])
        self._applied_voltage = volts

        current = cfg.base_current + abs(volts) * cfg.current_per_volt
        excess = self._temperature - cfg.ambient_temp
        self._temperature += cfg.heating_rate * current ** 2 - cfg.cooling_rate * excess

    @property
    def last_command(self) -> Optional[CommandRecord]:
        return self.commands[-1] if self.commands else None

    def voltage_commands(self) -> List[float]:
        """Values of recent voltage commands, oldest first."""
        return [c.value for c in self.commands if c.kind == "voltage"]

    def position_commands(self) -> List[float]:
        """Values of recent position commands, oldest first."""
        return [c.value for c in self.commands if c.kind == "position"]
