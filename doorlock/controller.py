"""Lock, attempt and lockout state machine for the door lock demo."""
from __future__ import annotations

import logging
import math
import re
import secrets
from dataclasses import dataclass

from .clock import Cancellable, Clock
from .config import DEFAULT_CONFIG, DoorLockConfig
from .store import PersistentStore

logger = logging.getLogger("doorlock.controller")

UNLOCKED_MARKER = "true"
CONTROL_KEYS = ("Enter", "Escape")

_DIGITS = re.compile(r"[0-9]*")


@dataclass(frozen=True, slots=True)
class LockState:
    """Read-only snapshot handed to the presentation layer."""

    is_unlocked: bool
    pending_input: str
    attempt_count: int
    is_locked_out: bool
    lockout_until: int | None
    lockout_time_remaining: int
    show_error: bool
    last_attempt_failed: bool
    remaining_attempts: int


class LockController:
    """Owns the door lock state and writes durable fields through to a store.

    All mutations go through the public operations below and run to completion
    on the caller's thread. Timing (the lockout countdown, the error flag reset
    and keypad auto-submit) is delegated to the injected clock.
    """

    def __init__(
        self,
        store: PersistentStore,
        clock: Clock,
        config: DoorLockConfig | None = None,
    ) -> None:
        self.config = config or DEFAULT_CONFIG
        self._store = store
        self._clock = clock
        self._keys = self.config.storage_keys

        self._is_unlocked = False
        self._pending_input = ""
        self._attempt_count = 0
        self._is_locked_out = False
        self._lockout_until: int | None = None
        self._lockout_time_remaining = 0
        self._last_attempt_failed = False

        self._countdown: Cancellable | None = None
        self._error_timer: Cancellable | None = None
        self._submit_timer: Cancellable | None = None

        self._restore()

    # --- read access ---------------------------------------------------------
    @property
    def is_unlocked(self) -> bool:
        return self._is_unlocked

    @property
    def pending_input(self) -> str:
        return self._pending_input

    @property
    def attempt_count(self) -> int:
        return self._attempt_count

    @property
    def is_locked_out(self) -> bool:
        return self._is_locked_out

    @property
    def lockout_until(self) -> int | None:
        return self._lockout_until

    @property
    def lockout_time_remaining(self) -> int:
        return self._lockout_time_remaining

    @property
    def show_error(self) -> bool:
        return self._last_attempt_failed

    @property
    def last_attempt_failed(self) -> bool:
        return self._last_attempt_failed

    @property
    def remaining_attempts(self) -> int:
        return max(0, self.config.max_attempts - self._attempt_count)

    @property
    def state(self) -> LockState:
        return LockState(
            is_unlocked=self._is_unlocked,
            pending_input=self._pending_input,
            attempt_count=self._attempt_count,
            is_locked_out=self._is_locked_out,
            lockout_until=self._lockout_until,
            lockout_time_remaining=self._lockout_time_remaining,
            show_error=self._last_attempt_failed,
            last_attempt_failed=self._last_attempt_failed,
            remaining_attempts=self.remaining_attempts,
        )

    # --- operations ----------------------------------------------------------
    def update_input(self, candidate: str) -> None:
        """Replace the pending PIN; non-digit or over-long values are ignored."""
        if self._is_locked_out:
            return
        if not isinstance(candidate, str):
            return
        if _DIGITS.fullmatch(candidate) is None or len(candidate) > self.config.pin_length:
            return
        self._pending_input = candidate

    def verify(self, candidate_override: str | None = None) -> None:
        """Check a PIN against the configured one and apply the outcome."""
        if self._is_locked_out:
            return
        if self._submit_timer is not None:
            self._submit_timer.cancel()
            self._submit_timer = None
        if self._is_unlocked:
            logger.debug("Verification ignored; door already unlocked")
            return
        candidate = self._pending_input if candidate_override is None else candidate_override
        if self._matches(candidate):
            self._grant_access()
        else:
            self._record_failure()

    def lock(self) -> None:
        self._is_unlocked = False
        self._pending_input = ""
        self._clear_error()
        self._store.remove(self._keys.unlock_state)
        logger.info("Door locked")

    def clear_input(self) -> None:
        if not self._is_locked_out:
            self._pending_input = ""

    def handle_control_key(self, key: str) -> None:
        if key == "Enter":
            if len(self._pending_input) == self.config.pin_length:
                self.verify()
        elif key == "Escape":
            self.clear_input()

    def press_digit(self, digit: str) -> None:
        """Append one keypad digit, auto-submitting once the PIN is complete.

        The verification is deferred through the clock so the full-length
        input is observable before the outcome replaces it.
        """
        if self._is_locked_out or self._is_unlocked:
            return
        if len(self._pending_input) >= self.config.pin_length:
            return
        candidate = self._pending_input + digit
        self.update_input(candidate)
        if self._pending_input != candidate:
            return
        if len(candidate) == self.config.pin_length:
            if self._submit_timer is not None:
                self._submit_timer.cancel()
            self._submit_timer = self._clock.after(
                self.config.auto_submit_delay_ms, lambda: self._auto_submit(candidate)
            )

    def backspace(self) -> None:
        if self._is_locked_out or not self._pending_input:
            return
        self.update_input(self._pending_input[:-1])

    def reset_lockout(self) -> None:
        """Administrative override: end any lockout and forget failed attempts."""
        if self._is_locked_out:
            self._end_lockout()
            return
        self._attempt_count = 0
        self._store.remove(self._keys.lockout_until)
        self._store.remove(self._keys.attempt_count)
        logger.info("Failed attempt counter reset")

    # --- internals -----------------------------------------------------------
    def _restore(self) -> None:
        keys = self._keys
        if self._store.get(keys.unlock_state) == UNLOCKED_MARKER:
            self._is_unlocked = True

        attempts = self._read_int(keys.attempt_count)
        if attempts is not None:
            self._attempt_count = attempts

        lockout_until = self._read_int(keys.lockout_until)
        if lockout_until is None:
            if self._attempt_count >= self.config.max_attempts:
                logger.warning(
                    "Persisted attempt count %s has no lockout; capping at %s",
                    self._attempt_count,
                    self.config.max_attempts - 1,
                )
                self._attempt_count = self.config.max_attempts - 1
            return

        now = self._clock.now()
        if lockout_until > now:
            if self._is_unlocked:
                logger.warning("Discarding persisted unlock flag during active lockout")
                self._is_unlocked = False
                self._store.remove(keys.unlock_state)
            self._is_locked_out = True
            self._lockout_until = lockout_until
            self._attempt_count = self.config.max_attempts
            remaining = math.ceil((lockout_until - now) / 1000)
            self._start_countdown(remaining)
            logger.info("Lockout still active; %ss remaining", remaining)
        else:
            self._store.remove(keys.lockout_until)
            self._store.remove(keys.attempt_count)
            self._attempt_count = 0
            logger.info("Lockout expired while offline; counters cleared")

    def _read_int(self, key: str) -> int | None:
        raw = self._store.get(key)
        if raw is None:
            return None
        try:
            value = int(raw)
        except ValueError:
            logger.warning("Ignoring corrupt persisted value for %s: %r", key, raw)
            return None
        if value < 0:
            logger.warning("Ignoring negative persisted value for %s: %r", key, raw)
            return None
        return value

    def _matches(self, candidate: str) -> bool:
        if not isinstance(candidate, str):
            return False
        return secrets.compare_digest(
            candidate.encode("utf-8"), self.config.correct_password.encode("utf-8")
        )

    def _grant_access(self) -> None:
        self._is_unlocked = True
        self._pending_input = ""
        self._clear_error()
        self._attempt_count = 0
        self._store.set(self._keys.unlock_state, UNLOCKED_MARKER)
        self._store.remove(self._keys.attempt_count)
        logger.info("Correct PIN entered; door unlocked")

    def _record_failure(self) -> None:
        self._attempt_count += 1
        self._pending_input = ""
        self._last_attempt_failed = True
        if self._error_timer is not None:
            self._error_timer.cancel()
        self._error_timer = self._clock.after(
            self.config.error_display_ms, self._clear_error
        )
        logger.info(
            "Incorrect PIN (attempt %s of %s)",
            self._attempt_count,
            self.config.max_attempts,
        )
        try:
            self._store.set(self._keys.attempt_count, str(self._attempt_count))
        finally:
            if self._attempt_count >= self.config.max_attempts:
                self._start_lockout()

    def _clear_error(self) -> None:
        if self._error_timer is not None:
            self._error_timer.cancel()
            self._error_timer = None
        self._last_attempt_failed = False

    def _auto_submit(self, candidate: str) -> None:
        self._submit_timer = None
        self.verify(candidate)

    def _start_lockout(self) -> None:
        duration = self.config.lockout_duration_seconds
        self._lockout_until = self._clock.now() + duration * 1000
        self._is_locked_out = True
        self._start_countdown(duration)
        logger.warning("Too many failed attempts; keypad locked for %ss", duration)
        self._store.set(self._keys.lockout_until, str(self._lockout_until))

    def _start_countdown(self, seconds: int) -> None:
        if self._countdown is not None:
            self._countdown.cancel()
        self._lockout_time_remaining = seconds
        self._countdown = self._clock.every(self.config.countdown_interval_ms, self._tick)

    def _tick(self) -> None:
        if not self._is_locked_out:
            self._stop_countdown()
            return
        if self._lockout_time_remaining <= 1:
            self._end_lockout()
        else:
            self._lockout_time_remaining -= 1

    def _stop_countdown(self) -> None:
        if self._countdown is not None:
            self._countdown.cancel()
            self._countdown = None

    def _end_lockout(self) -> None:
        self._stop_countdown()
        self._is_locked_out = False
        self._lockout_until = None
        self._attempt_count = 0
        self._lockout_time_remaining = 0
        self._store.remove(self._keys.lockout_until)
        self._store.remove(self._keys.attempt_count)
        logger.info("Lockout ended; keypad enabled")
