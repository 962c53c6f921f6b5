"""
Control Loop Application
========================

Runs the intake pivot and intake roller controllers at a fixed tick rate,
on simulated or serial-connected motors.
"""

import time
import signal
import sys
import argparse
import logging
from dataclasses import dataclass
from typing import Optional, TextIO

from .alerts import (
    AlertGroup,
    JsonNotificationSink,
    LoggingErrorReporter,
    LoggingNotificationSink,
    NotificationSink,
)
from .control.actuator_controller import GoalActuatorController
from .control.actuator_interface import ActuatorPortConfig, SerialActuatorPort
from .control.validating_controller import ValidatingActuatorController
from .robot_state import RobotState
from .simulation.actuator_sim import SimulatedActuatorPort, SimulatedPortConfig
from .subsystems import (
    INTAKE_NAME,
    IntakeRollerState,
    PIVOT_INITIAL_GOAL,
    PIVOT_NAME,
    PivotState,
)
from .telemetry import (
    JsonlTelemetryRecorder,
    MemoryTelemetryRecorder,
    TelemetryConfig,
    TelemetryRecorder,
)
from .tunable import JsonTunableSource, TunableConfig

logger = logging.getLogger(__name__)


@dataclass
class LoopConfig:
    """Main control loop configuration."""
    # Hardware
    simulation: bool = False
    pivot_port: str = "/dev/ttyACM0"
    intake_port: str = "/dev/ttyACM1"

    # Timing
    rate_hz: float = 50.0

    # Tunables
    tunables_path: str = "tunables.json"
    tuning_mode: bool = False

    # Logging
    log_dir: Optional[str] = None     # None keeps telemetry in memory
    notify_json_path: Optional[str] = None  # "-" for stdout


class ControlLoop:
    """
    Fixed-rate scheduler for the controllers.

    Every tick steps each controller once and then closes the telemetry
    cycle. All controller calls happen on the thread running run().
    """

    def __init__(self, config: Optional[LoopConfig] = None):
        self.config = config or LoopConfig()

        self.robot_state = RobotState()
        self.alerts = AlertGroup()
        self._notify_stream: Optional[TextIO] = None
        self.notifications: NotificationSink
        if self.config.notify_json_path == "-":
            self.notifications = JsonNotificationSink(sys.stdout)
        elif self.config.notify_json_path:
            self._notify_stream = open(self.config.notify_json_path, "a")
            self.notifications = JsonNotificationSink(self._notify_stream)
        else:
            self.notifications = LoggingNotificationSink()
        self.errors = LoggingErrorReporter()
        self.tunables = JsonTunableSource(TunableConfig(
            path=self.config.tunables_path,
            tuning_mode=self.config.tuning_mode,
        ))

        self.telemetry: TelemetryRecorder
        if self.config.log_dir:
            self.telemetry = JsonlTelemetryRecorder(TelemetryConfig(log_dir=self.config.log_dir))
        else:
            self.telemetry = MemoryTelemetryRecorder()

        # Initialized in start()
        self.pivot: Optional[ValidatingActuatorController] = None
        self.intake: Optional[GoalActuatorController] = None
        self._pivot_sim: Optional[SimulatedActuatorPort] = None
        self._serial_ports = []

        self._running = False
        self._tick_count = 0
        self._overruns = 0
        self._tick_errors = 0

    def start(self) -> bool:
        """Open ports and build controllers."""
        logger.info("Starting control loop...")

        if self.config.simulation:
            logger.info("Running in SIMULATION mode")
            dt = 1.0 / self.config.rate_hz
            pivot_port = SimulatedActuatorPort(SimulatedPortConfig(dt=dt))
            self._pivot_sim = pivot_port
            self._sync_pivot_limits()
            intake_port = SimulatedActuatorPort(SimulatedPortConfig(dt=dt))
        else:
            pivot_port = SerialActuatorPort(ActuatorPortConfig(port=self.config.pivot_port))
            intake_port = SerialActuatorPort(ActuatorPortConfig(port=self.config.intake_port))
            for port in (pivot_port, intake_port):
                if not port.start():
                    logger.error(f"Actuator port {port.config.port} failed to start")
                    self._stop_ports()
                    return False
                self._serial_ports.append(port)

        common = dict(
            tunables=self.tunables,
            telemetry=self.telemetry,
            notifications=self.notifications,
            alert_group=self.alerts,
        )
        self.pivot = ValidatingActuatorController(
            PIVOT_NAME, pivot_port, PIVOT_INITIAL_GOAL,
            status_slot=self.robot_state.slot(PIVOT_NAME),
            error_reporter=self.errors,
            **common,
        )
        self.intake = GoalActuatorController(
            INTAKE_NAME, intake_port, IntakeRollerState.IDLE, **common
        )

        self._running = True
        logger.info("Control loop started")
        return True

    def stop(self):
        """Stop the loop and release hardware."""
        logger.info("Stopping control loop...")
        self._running = False
        self._stop_ports()
        if isinstance(self.telemetry, JsonlTelemetryRecorder):
            self.telemetry.close()
        if self._notify_stream is not None:
            self._notify_stream.close()
            self._notify_stream = None
        logger.info("Control loop stopped")

    def _stop_ports(self):
        for port in self._serial_ports:
            port.stop()
        self._serial_ports = []

    def _sync_pivot_limits(self):
        """Keep the simulated hard stops at the tuned STOW and UP positions."""
        stow, up = PivotState.STOW, PivotState.UP
        changed = [
            self.tunables.has_changed(g.setpoint_key, g.default_setpoint, consumer="sim-limits")
            for g in (stow, up)
        ]
        if any(changed):
            positions = (stow.setpoint(self.tunables), up.setpoint(self.tunables))
            limits = (min(positions), max(positions))
            self._pivot_sim.config.position_limits = limits
            logger.info(f"Simulated pivot limits: {limits[0]:.3f} to {limits[1]:.3f}")

    def tick(self):
        """Step every controller once and close the telemetry cycle."""
        if self._pivot_sim is not None:
            self._sync_pivot_limits()

        for controller in (self.pivot, self.intake):
            try:
                controller.step()
            except Exception as e:
                self._tick_errors += 1
                logger.error(f"{controller.name} step failed: {e}")

        self.telemetry.end_cycle()
        self._tick_count += 1

    def run(self, duration_s: Optional[float] = None):
        """
        Main loop.

        Args:
            duration_s: Stop after this many seconds, or run until stop()
        """
        interval = 1.0 / self.config.rate_hz
        started = time.monotonic()
        next_tick = started

        logger.info(f"Running at {self.config.rate_hz}Hz")

        while self._running:
            now = time.monotonic()
            if duration_s is not None and now - started >= duration_s:
                break

            if now >= next_tick:
                try:
                    self.tick()
                except Exception as e:
                    self._tick_errors += 1
                    logger.error(f"Control loop error: {e}")

                next_tick += interval
                if now - next_tick > interval:
                    # Fell more than a tick behind, resynchronize
                    self._overruns += 1
                    next_tick = now + interval

            time.sleep(min(0.001, max(0.0, next_tick - time.monotonic())))

    @property
    def status(self) -> dict:
        """Get current loop status."""
        return {
            "running": self._running,
            "tick_count": self._tick_count,
            "overruns": self._overruns,
            "tick_errors": self._tick_errors,
            "pivot_goal": self.pivot.goal_state.name if self.pivot else "UNKNOWN",
            "intake_goal": self.intake.goal_state.name if self.intake else "UNKNOWN",
            "robot_state": self.robot_state.snapshot(),
            "alerts": self.alerts.summary(),
        }


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Actuator goal-state control loop")
    parser.add_argument("--simulation", "-s", action="store_true",
                        help="Use simulated motors")
    parser.add_argument("--pivot-port", default="/dev/ttyACM0",
                        help="Pivot motor controller serial port")
    parser.add_argument("--intake-port", default="/dev/ttyACM1",
                        help="Intake motor controller serial port")
    parser.add_argument("--rate", type=float, default=50.0,
                        help="Tick rate (Hz)")
    parser.add_argument("--tunables", default="tunables.json",
                        help="Path to tunables JSON file")
    parser.add_argument("--tuning", action="store_true",
                        help="Enable tuning mode (hot-reload tunables file)")
    parser.add_argument("--log-dir", default=None,
                        help="Write telemetry JSONL files to this directory")
    parser.add_argument("--notify-json", default=None, metavar="PATH",
                        help="Append operator notifications as JSON lines (- for stdout)")
    parser.add_argument("--pivot-goal", choices=[s.name for s in PivotState], default=None,
                        help="Pivot goal to request after start")
    parser.add_argument("--intake-goal", choices=[s.name for s in IntakeRollerState], default=None,
                        help="Intake goal to request after start")
    parser.add_argument("--duration", type=float, default=None,
                        help="Run for this many seconds then exit")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Verbose logging")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    config = LoopConfig(
        simulation=args.simulation,
        pivot_port=args.pivot_port,
        intake_port=args.intake_port,
        rate_hz=args.rate,
        tunables_path=args.tunables,
        tuning_mode=args.tuning,
        log_dir=args.log_dir,
        notify_json_path=args.notify_json,
    )

    loop = ControlLoop(config)

    def signal_handler(sig, frame):
        logger.info("Shutdown signal received")
        loop.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    if not loop.start():
        logger.error("Failed to start control loop")
        sys.exit(1)

    if args.pivot_goal:
        loop.pivot.set_goal_state(PivotState[args.pivot_goal])
    if args.intake_goal:
        loop.intake.set_goal_state(IntakeRollerState[args.intake_goal])

    logger.info("Control loop running. Press Ctrl+C to stop.")
    loop.run(duration_s=args.duration)
    loop.stop()
    logger.info(f"Final status: {loop.status}")


if __name__ == "__main__":
    main()
