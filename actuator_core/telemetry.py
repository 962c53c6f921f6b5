"""
Telemetry Recording
===================

Per-cycle key/value telemetry from the controllers.

Controllers call record_value() once per field per tick. The owner of the
tick loop calls end_cycle() after every controller has stepped, which is
when a recorder may publish or persist the cycle.

Recorders:
    - MemoryTelemetryRecorder: keeps latest values and recent cycles
    - JsonlTelemetryRecorder: one JSON line per cycle, gzip compressed,
      rotated by file size or age
"""

import gzip
import json
import logging
import math
import os
import time
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Deque, Dict, IO, Mapping, Optional

logger = logging.getLogger(__name__)


def _plain(value: Any) -> Any:
    """Convert a telemetry value to something JSON can hold."""
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, (bool, int, float, str)) or value is None:
        return value
    return str(value)


def _json_value(value: Any) -> Any:
    """Like _plain(), with NaN and infinities stored as null."""
    plain = _plain(value)
    if isinstance(plain, float) and not math.isfinite(plain):
        return None
    return plain


class TelemetryRecorder(ABC):
    """Sink for per-cycle telemetry values."""

    @abstractmethod
    def record_value(self, key: str, value: Any):
        """Record one field for the current cycle."""

    def record_inputs(self, prefix: str, inputs: Mapping[str, Any]):
        """Record every entry of inputs under prefix/Inputs/."""
        for field_name, value in inputs.items():
            self.record_value(f"{prefix}/Inputs/{field_name}", value)

    def end_cycle(self, timestamp: Optional[float] = None):
        """Mark the end of a tick. All fields for it have been recorded."""


class MemoryTelemetryRecorder(TelemetryRecorder):
    """Keeps telemetry in memory; useful for dashboards and tests."""

    def __init__(self, history: int = 100):
        self.values: Dict[str, Any] = {}
        self._current: Dict[str, Any] = {}
        self.cycles: Deque[Dict[str, Any]] = deque(maxlen=history)
        self.record_count = 0

    def record_value(self, key: str, value: Any):
        plain = _plain(value)
        self.values[key] = plain
        self._current[key] = plain
        self.record_count += 1

    def end_cycle(self, timestamp: Optional[float] = None):
        frame = dict(self._current)
        frame["timestamp"] = timestamp if timestamp is not None else time.time()
        self.cycles.append(frame)
        self._current = {}

    @property
    def pending(self) -> Dict[str, Any]:
        """Values recorded since the last end_cycle()."""
        return dict(self._current)


@dataclass
class TelemetryConfig:
    """Configuration for file telemetry."""
    log_dir: str = "logs/telemetry"
    max_file_size_mb: float = 64.0
    max_file_age_minutes: float = 30.0
    compression: bool = True


class JsonlTelemetryRecorder(TelemetryRecorder):
    """
    Writes each cycle as a JSON line.

    Fields recorded during a cycle are buffered and written together by
    end_cycle(), so a line always holds a complete tick.
    """

    def __init__(self, config: Optional[TelemetryConfig] = None):
        self.config = config or TelemetryConfig()
        self._pending: Dict[str, Any] = {}

        # Log file state
        self._current_file: Optional[IO[bytes]] = None
        self._current_path: Optional[Path] = None
        self._file_start_time: float = 0.0
        self._cycle_count: int = 0

        # Statistics
        self._total_cycles: int = 0
        self._files_written: int = 0
        self._write_errors: int = 0

        Path(self.config.log_dir).mkdir(parents=True, exist_ok=True)

    def record_value(self, key: str, value: Any):
        self._pending[key] = _json_value(value)

    def end_cycle(self, timestamp: Optional[float] = None):
        record = {"timestamp": timestamp if timestamp is not None else time.time()}
        record.update(self._pending)
        self._pending = {}
        self._write_record(record)

    def close(self):
        """Close the current log file."""
        self._close_current_file()

    def _write_record(self, record: Dict[str, Any]):
        if self._should_rotate():
            self._rotate_file()

        if self._current_file is None:
            self._open_new_file()
            if self._current_file is None:
                return

        try:
            line = json.dumps(record, allow_nan=False) + "\n"
            self._current_file.write(line.encode('utf-8'))
            self._cycle_count += 1
            self._total_cycles += 1
        except (OSError, ValueError) as e:
            self._write_errors += 1
            logger.error(f"Failed to write telemetry: {e}")

    def _should_rotate(self) -> bool:
        if self._current_file is None or self._current_path is None:
            return False

        file_age_min = (time.time() - self._file_start_time) / 60
        if file_age_min >= self.config.max_file_age_minutes:
            return True

        try:
            file_size_mb = os.path.getsize(self._current_path) / (1024 * 1024)
            if file_size_mb >= self.config.max_file_size_mb:
                return True
        except OSError:
            pass

        return False

    def _open_new_file(self):
        timestamp_str = datetime.now().strftime("%Y%m%d_%H%M%S")
        # Suffix keeps names unique when rotating twice within a second
        suffix = f"_{self._files_written}" if self._files_written else ""

        extension = ".jsonl.gz" if self.config.compression else ".jsonl"
        filename = f"telemetry_{timestamp_str}{suffix}{extension}"
        path = Path(self.config.log_dir) / filename

        try:
            if self.config.compression:
                self._current_file = gzip.open(path, 'wb')
            else:
                self._current_file = open(path, 'wb')
        except OSError as e:
            self._write_errors += 1
            logger.error(f"Failed to open telemetry file {path}: {e}")
            return

        self._current_path = path

        self._file_start_time = time.time()
        self._cycle_count = 0
        self._files_written += 1

        logger.info(f"Opened telemetry file: {filename}")

    def _close_current_file(self):
        if self._current_file is not None:
            try:
                self._current_file.close()
                logger.info(
                    f"Closed telemetry file: {self._current_path.name}, "
                    f"cycles: {self._cycle_count}"
                )
            except OSError as e:
                logger.error(f"Error closing telemetry file: {e}")
            finally:
                self._current_file = None
                self._current_path = None

    def _rotate_file(self):
        self._close_current_file()
        self._open_new_file()

    @property
    def current_path(self) -> Optional[Path]:
        return self._current_path

    @property
    def stats(self) -> Dict[str, Any]:
        """Get recorder statistics."""
        return {
            "total_cycles": self._total_cycles,
            "files_written": self._files_written,
            "write_errors": self._write_errors,
            "current_file": str(self._current_path) if self._current_path else None,
        }
