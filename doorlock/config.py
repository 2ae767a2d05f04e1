"""Global configuration values for DoorLock."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping


def _default_data_dir() -> Path:
    home = os.environ.get("DOORLOCK_HOME")
    base = Path(home) if home else Path.home() / ".doorlock"
    return base.expanduser()


@dataclass(frozen=True, slots=True)
class StorageKeys:
    unlock_state: str = "doorLock_unlockState"
    lockout_until: str = "doorLock_lockoutUntil"
    attempt_count: str = "doorLock_attemptCount"


@dataclass(slots=True)
class DoorLockConfig:
    """Runtime configuration for the door lock controller and its surfaces."""

    correct_password: str = "8765"
    pin_length: int = 4
    max_attempts: int = 5
    lockout_duration_seconds: int = 30
    error_display_ms: int = 600
    auto_submit_delay_ms: int = 100
    countdown_interval_ms: int = 1000
    storage_keys: StorageKeys = field(default_factory=StorageKeys)
    data_path: Path = field(default_factory=_default_data_dir)
    state_file: str = "door_state.json"
    log_file: str = "doorlock.log"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "DoorLockConfig":
        """Build a config, applying ``DOORLOCK_*`` overrides from the environment."""
        env = os.environ if environ is None else environ
        config = cls()
        password = env.get("DOORLOCK_PASSWORD")
        if password:
            config.correct_password = password
        for name, var in (
            ("max_attempts", "DOORLOCK_MAX_ATTEMPTS"),
            ("lockout_duration_seconds", "DOORLOCK_LOCKOUT_SECONDS"),
        ):
            raw = env.get(var)
            if raw:
                try:
                    value = int(raw)
                except ValueError as exc:
                    raise ValueError(f"{var} must be an integer, got {raw!r}") from exc
                if value < 1:
                    raise ValueError(f"{var} must be positive, got {value}")
                setattr(config, name, value)
        home = env.get("DOORLOCK_HOME")
        if home:
            config.data_path = Path(home).expanduser()
        return config

    def ensure_directories(self) -> None:
        """Create the data directory if it does not exist."""
        self.data_path.mkdir(parents=True, exist_ok=True)

    @property
    def state_location(self) -> Path:
        return self.data_path / self.state_file

    @property
    def log_location(self) -> Path:
        return self.data_path / self.log_file


DEFAULT_CONFIG = DoorLockConfig.from_env()
