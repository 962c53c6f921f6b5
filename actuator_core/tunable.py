"""
Tunable Parameters
==================

Numeric setpoints that can be changed while the controllers are running.

Controllers never cache a setpoint; they call ``source.get(key, default)``
every tick, so a reloaded value takes effect on the next cycle.

Sources:
    - StaticTunableSource: in-memory values, changed with set()
    - JsonTunableSource: JSON file reloaded when its modification time
      changes. Outside tuning mode the file is ignored and defaults are
      returned, so a competition build cannot be detuned by accident.
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Hashable, Optional, Tuple

logger = logging.getLogger(__name__)


class TunableParameterSource(ABC):
    """Supplies the numeric setpoint bound to a key."""

    def __init__(self):
        # (key, consumer) -> last value seen by that consumer
        self._seen: Dict[Tuple[str, Hashable], float] = {}

    @abstractmethod
    def get(self, key: str, default: float) -> float:
        """Return the current value for key, or default if it has none."""

    def has_changed(self, key: str, default: float, consumer: Hashable) -> bool:
        """
        Check whether key changed since consumer last asked.

        The first call for a consumer always reports a change.
        """
        value = self.get(key, default)
        previous = self._seen.get((key, consumer))
        self._seen[(key, consumer)] = value
        return previous is None or previous != value


class StaticTunableSource(TunableParameterSource):
    """In-memory tunable values."""

    def __init__(self, values: Optional[Dict[str, float]] = None):
        super().__init__()
        self._values: Dict[str, float] = dict(values or {})

    def get(self, key: str, default: float) -> float:
        return float(self._values.get(key, default))

    def set(self, key: str, value: float):
        """Change a value at runtime."""
        self._values[key] = float(value)
        logger.debug(f"Tunable {key} = {value}")


@dataclass
class TunableConfig:
    """Configuration for file-backed tunables."""
    path: str = "tunables.json"
    tuning_mode: bool = False


class JsonTunableSource(TunableParameterSource):
    """
    Tunable values read from a flat JSON object, e.g.::

        {"Pivot/Stow": 0.0, "Pivot/Up": 1.5708, "Intake/Intake": 10.0}

    The file is re-read whenever its modification time changes. A file that
    fails to parse is logged and the last good values are kept.
    """

    def __init__(self, config: Optional[TunableConfig] = None):
        super().__init__()
        self.config = config or TunableConfig()
        self._values: Dict[str, float] = {}
        self._mtime: Optional[float] = None
        self._reload_count = 0

    def get(self, key: str, default: float) -> float:
        if not self.config.tuning_mode:
            return float(default)
        self._reload_if_changed()
        return float(self._values.get(key, default))

    def _reload_if_changed(self):
        """Reload the file if it was modified since the last read."""
        path = Path(self.config.path)
        try:
            mtime = os.path.getmtime(path)
        except OSError:
            if self._mtime is not None:
                logger.warning(f"Tunables file {path} disappeared, keeping last values")
                self._mtime = None
            return

        if mtime == self._mtime:
            return
        self._mtime = mtime

        try:
            with open(path, "r") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read tunables from {path}: {e}")
            return

        if not isinstance(data, dict):
            logger.error(f"Tunables file {path} must contain a JSON object")
            return

        values = {}
        for key, value in data.items():
            try:
                values[str(key)] = float(value)
            except (TypeError, ValueError):
                logger.warning(f"Ignoring non-numeric tunable {key}={value!r}")

        self._values = values
        self._reload_count += 1
        logger.info(f"Loaded {len(values)} tunables from {path}")

    @property
    def stats(self) -> dict:
        """Get reload statistics."""
        return {
            "tuning_mode": self.config.tuning_mode,
            "reload_count": self._reload_count,
            "keys": len(self._values),
        }
