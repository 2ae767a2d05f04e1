"""Command-line helper for the DoorLock demo."""
from __future__ import annotations

import argparse
from datetime import datetime
from typing import Callable, Sequence

from doorlock.clock import SystemClock
from doorlock.config import DoorLockConfig
from doorlock.controller import LockController
from doorlock.logging_setup import configure_logging
from doorlock.store import JsonFileStore, StoreError


def _build_controller(store: JsonFileStore) -> LockController:
    return LockController(store, SystemClock(), store.config)


def cmd_status(_: argparse.Namespace, store: JsonFileStore) -> int:
    state = _build_controller(store).state
    print("Door:", "unlocked" if state.is_unlocked else "locked")
    print("Failed attempts:", state.attempt_count)
    print("Remaining attempts:", state.remaining_attempts)
    if state.is_locked_out and state.lockout_until is not None:
        stamp = datetime.fromtimestamp(state.lockout_until / 1000).isoformat(timespec="seconds")
        print(f"Locked out until: {stamp} ({state.lockout_time_remaining}s)")
    else:
        print("Lockout: inactive")
    return 0


def cmd_reset_lockout(_: argparse.Namespace, store: JsonFileStore) -> int:
    _build_controller(store).reset_lockout()
    print("Lockout counters cleared")
    return 0


def cmd_lock(_: argparse.Namespace, store: JsonFileStore) -> int:
    _build_controller(store).lock()
    print("Door locked")
    return 0


def cmd_keypad(_: argparse.Namespace, store: JsonFileStore) -> int:
    from doorlock.keypad_window import launch_keypad_window

    launch_keypad_window(store, store.config)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="DoorLock demo CLI")
    parser.add_argument(
        "--console-log",
        action="store_true",
        help="Mirror log output to stdout",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("status", help="Show lock, attempt and lockout status")
    subparsers.add_parser("reset-lockout", help="End any lockout and clear failed attempts")
    subparsers.add_parser("lock", help="Lock the door")
    subparsers.add_parser("keypad", help="Open the keypad window")
    return parser


def main(argv: Sequence[str] | None = None, *, config: DoorLockConfig | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    config = config or DoorLockConfig.from_env()
    configure_logging(config, force_console=args.console_log or None)
    store = JsonFileStore(config)

    commands: dict[str, Callable[[argparse.Namespace, JsonFileStore], int]] = {
        "status": cmd_status,
        "reset-lockout": cmd_reset_lockout,
        "lock": cmd_lock,
        "keypad": cmd_keypad,
    }
    handler = commands[args.command]
    try:
        return handler(args, store)
    except StoreError as exc:
        print(f"Failed to update door state: {exc}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
