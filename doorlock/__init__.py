"""DoorLock package initialization."""

__all__ = [
    "clock",
    "config",
    "controller",
    "keypad_window",
    "logging_setup",
    "store",
]
