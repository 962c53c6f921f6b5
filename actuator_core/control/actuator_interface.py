"""
Actuator Port Interface
=======================

The I/O boundary between a controller and one motor.

A controller reads a ControllerSnapshot from its ActuatorPort once per
tick and sends voltage or position commands back. Ports must never block
the tick: read_snapshot() returns the latest known status immediately.

SerialActuatorPort talks to a motor controller MCU over a serial link.

Serial Protocol:
    Commands (host → MCU):
        $VLT,<volts>*XX              - Open-loop voltage output
        $POS,<position>*XX           - Closed-loop position target (rad)

    Status (MCU → host, ~50Hz):
        $STS,<position>,<velocity>,<volts>,<amps>,<temp>*XX

    XX is the XOR of every payload character, as two hex digits.
"""

import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional
import logging

import serial

logger = logging.getLogger(__name__)


@dataclass
class ControllerSnapshot:
    """One tick's read of the hardware."""
    timestamp: float = 0.0
    connected: bool = False
    position: float = 0.0          # rad
    velocity: float = 0.0          # rad/s
    applied_voltage: float = 0.0   # V
    supply_current: float = 0.0    # A
    temperature: float = 0.0       # °C

    def as_dict(self) -> Dict[str, Any]:
        """Fields for input logging."""
        return asdict(self)


class ActuatorPort(ABC):
    """Opaque capability for one actuator."""

    @abstractmethod
    def read_snapshot(self) -> ControllerSnapshot:
        """Return the latest hardware status without blocking."""

    @abstractmethod
    def command_voltage(self, volts: float):
        """Drive the motor open-loop at volts."""

    @abstractmethod
    def command_position(self, position: float):
        """Drive the motor closed-loop to position."""


@dataclass
class ActuatorPortConfig:
    """Configuration for the serial actuator port."""
    port: str = "/dev/ttyACM0"
    baudrate: int = 115200
    timeout: float = 0.1

    # Status validity
    max_status_age_s: float = 0.25  # Older status means disconnected

    # Identical commands are not resent faster than this
    min_command_interval_s: float = 0.02

    # Output clamp
    max_voltage: float = 12.0


def compute_checksum(payload: str) -> int:
    """Compute XOR checksum of payload."""
    checksum = 0
    for c in payload:
        checksum ^= ord(c)
    return checksum


class SerialActuatorPort(ActuatorPort):
    """
    Serial link to a motor controller MCU.

    A background thread parses status sentences; read_snapshot() copies the
    latest one under a lock. The MCU runs its own position loop, so this
    class only forwards targets.
    """

    def __init__(self, config: Optional[ActuatorPortConfig] = None):
        self.config = config or ActuatorPortConfig()
        self._serial: Optional[serial.Serial] = None
        self._status = ControllerSnapshot()
        self._lock = threading.Lock()
        self._running = False
        self._read_thread: Optional[threading.Thread] = None

        self._last_command: Optional[str] = None
        self._last_command_time = 0.0

        # Statistics
        self._commands_sent = 0
        self._status_received = 0
        self._parse_errors = 0

    def start(self) -> bool:
        """Open serial connection and start status reader thread."""
        try:
            self._serial = serial.Serial(
                port=self.config.port,
                baudrate=self.config.baudrate,
                timeout=self.config.timeout
            )
            self._serial.reset_input_buffer()

            self._running = True
            self._read_thread = threading.Thread(target=self._read_loop, daemon=True)
            self._read_thread.start()

            logger.info(f"Actuator port started on {self.config.port}")
            return True

        except (serial.SerialException, OSError) as e:
            logger.error(f"Failed to open serial port {self.config.port}: {e}")
            return False

    def stop(self):
        """Zero the output and close the port."""
        self.command_voltage(0.0)

        self._running = False
        if self._read_thread:
            self._read_thread.join(timeout=1.0)

        if self._serial:
            self._serial.close()
            self._serial = None

        logger.info("Actuator port stopped")

    def read_snapshot(self) -> ControllerSnapshot:
        """
        Get latest status from the MCU.

        Returns:
            ControllerSnapshot with connected=False if the port is closed or
            the status is stale
        """
        with self._lock:
            snapshot = ControllerSnapshot(**asdict(self._status))

        if not self._serial or not self._serial.is_open:
            snapshot.connected = False

        age = time.time() - snapshot.timestamp
        if age > self.config.max_status_age_s:
            snapshot.connected = False

        return snapshot

    def command_voltage(self, volts: float):
        limit = self.config.max_voltage
        volts = max(-limit, min(limit, volts))
        self._send_command(f"VLT,{volts:.3f}")

    def command_position(self, position: float):
        self._send_command(f"POS,{position:.4f}")

    def _send_command(self, payload: str):
        """Send a command, skipping identical repeats inside the rate limit."""
        now = time.time()
        if (payload == self._last_command and
                now - self._last_command_time < self.config.min_command_interval_s):
            return
        self._last_command = payload
        self._last_command_time = now

        if self._send_raw(payload):
            self._commands_sent += 1

    def _send_raw(self, payload: str) -> bool:
        """Send raw command with checksum."""
        if not self._serial or not self._serial.is_open:
            return False

        checksum = compute_checksum(payload)
        message = f"${payload}*{checksum:02X}\r\n"

        try:
            self._serial.write(message.encode('ascii'))
            return True
        except (serial.SerialException, OSError) as e:
            logger.warning(f"Failed to send command: {e}")
            return False

    def _read_loop(self):
        """Background thread reading status messages."""
        buffer = ""

        while self._running:
            try:
                if self._serial and self._serial.in_waiting:
                    data = self._serial.read(self._serial.in_waiting).decode('ascii', errors='ignore')
                    buffer += data

                    while '\n' in buffer:
                        line, buffer = buffer.split('\n', 1)
                        line = line.strip()
                        if line.startswith('$STS,'):
                            self._parse_status(line)
                else:
                    time.sleep(0.005)

            except (serial.SerialException, OSError) as e:
                logger.warning(f"Read error: {e}")
                time.sleep(0.1)

    def _parse_status(self, message: str):
        """Parse status message from MCU."""
        try:
            if not message.startswith('$') or '*' not in message:
                self._parse_errors += 1
                return

            payload, checksum_str = message[1:].rsplit('*', 1)
            expected_checksum = int(checksum_str, 16)
            actual_checksum = compute_checksum(payload)

            if expected_checksum != actual_checksum:
                self._parse_errors += 1
                logger.debug(f"Checksum mismatch: expected {expected_checksum:02X}, got {actual_checksum:02X}")
                return

            parts = payload.split(',')
            if len(parts) != 6 or parts[0] != 'STS':
                self._parse_errors += 1
                return

            position = float(parts[1])
            velocity = float(parts[2])
            volts = float(parts[3])
            amps = float(parts[4])
            temp = float(parts[5])

            with self._lock:
                self._status.timestamp = time.time()
                self._status.connected = True
                self._status.position = position
                self._status.velocity = velocity
                self._status.applied_voltage = volts
                self._status.supply_current = amps
                self._status.temperature = temp

            self._status_received += 1

        except (ValueError, IndexError) as e:
            self._parse_errors += 1
            logger.debug(f"Failed to parse status: {e}")

    @property
    def stats(self) -> dict:
        """Get interface statistics."""
        return {
            "commands_sent": self._commands_sent,
            "status_received": self._status_received,
            "parse_errors": self._parse_errors
        }
