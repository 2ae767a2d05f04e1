"""Tkinter keypad window for driving the lock controller by hand."""
from __future__ import annotations

import logging
import time
import tkinter as tk
from typing import Callable, Dict, List

from PIL import Image, ImageDraw, ImageTk

from .config import DEFAULT_CONFIG, DoorLockConfig
from .controller import LockController, LockState
from .store import PersistentStore

LOGGER = logging.getLogger("doorlock.keypad_window")

REFRESH_MS = 100
DOOR_SIZE = (180, 260)

BACKGROUND = "#0f172a"
PANEL = "#1e293b"
DOOR_FILL = "#8b5a2b"
DOOR_FRAME = "#4a2f16"
LOCKED_COLOR = "#c62828"
UNLOCKED_COLOR = "#2e7d32"
KEY_HOLE = "#07122a"
TEXT_COLOR = "#e2e8f0"
MUTED_TEXT = "#94a3b8"


class _TkTimer:
    def __init__(self, widget: tk.Misc) -> None:
        self._widget = widget
        self.job: str | None = None
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True
        if self.job is None:
            return
        try:
            self._widget.after_cancel(self.job)
        except tk.TclError:
            pass
        self.job = None


class TkClock:
    """Clock whose callbacks run on a Tk event loop."""

    def __init__(self, widget: tk.Misc) -> None:
        self._widget = widget

    def now(self) -> int:
        return int(time.time() * 1000)

    def after(self, delay_ms: int, callback: Callable[[], None]) -> _TkTimer:
        timer = _TkTimer(self._widget)

        def fire() -> None:
            timer.job = None
            if not timer.cancelled:
                callback()

        timer.job = self._widget.after(max(0, int(delay_ms)), fire)
        return timer

    def every(self, interval_ms: int, callback: Callable[[], None]) -> _TkTimer:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        timer = _TkTimer(self._widget)

        def fire() -> None:
            if timer.cancelled:
                return
            callback()
            if not timer.cancelled:
                timer.job = self._widget.after(interval_ms, fire)

        timer.job = self._widget.after(interval_ms, fire)
        return timer


def format_countdown(seconds: int) -> str:
    seconds = max(0, seconds)
    return f"{seconds // 60}:{seconds % 60:02d}"


def describe_state(state: LockState, config: DoorLockConfig) -> str:
    """Status line shown under the PIN display."""
    if state.is_unlocked:
        return "Access granted! The door is open."
    if state.is_locked_out:
        return f"Too many failed attempts. Try again in {format_countdown(state.lockout_time_remaining)}"
    noun = "attempt" if state.remaining_attempts == 1 else "attempts"
    if state.show_error:
        return f"Incorrect PIN. {state.remaining_attempts} {noun} left"
    if state.attempt_count:
        return f"Enter {config.pin_length}-digit PIN ({state.remaining_attempts} {noun} left)"
    return f"Enter {config.pin_length}-digit PIN"


def draw_padlock(
    draw: ImageDraw.ImageDraw, center: tuple[int, int], radius: float, *, fill: str, opened: bool
) -> None:
    lock_width = radius * 0.9
    lock_height = radius * 0.75
    body_left = center[0] - lock_width / 2
    body_top = center[1] - lock_height / 2
    draw.rounded_rectangle(
        [(body_left, body_top), (body_left + lock_width, body_top + lock_height)],
        radius=radius * 0.12,
        fill=fill,
    )

    shackle_width = lock_width * 0.65
    shackle_height = lock_height * 0.9
    shackle_left = center[0] - shackle_width / 2
    # an open shackle is drawn lifted out of the body
    lift = lock_height * 0.35 if opened else 0
    shackle_bottom = body_top + radius * 0.25 - lift
    draw.arc(
        [
            (shackle_left, shackle_bottom - shackle_height),
            (shackle_left + shackle_width, shackle_bottom),
        ],
        start=180,
        end=0,
        width=max(2, int(radius * 0.12)),
        fill=fill,
    )

    hole_radius = radius * 0.1
    hole_center = (center[0], center[1] + radius * 0.02)
    draw.ellipse(
        [
            (hole_center[0] - hole_radius, hole_center[1] - hole_radius),
            (hole_center[0] + hole_radius, hole_center[1] + hole_radius),
        ],
        fill=KEY_HOLE,
    )


def render_door_image(unlocked: bool, size: tuple[int, int] = DOOR_SIZE) -> Image.Image:
    """Draw the door panel with a padlock reflecting the lock state."""
    width, height = size
    img = Image.new("RGBA", size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)
    inset = max(4, width // 20)
    draw.rectangle([(0, 0), (width - 1, height - 1)], fill=DOOR_FRAME)
    draw.rectangle(
        [(inset, inset), (width - inset - 1, height - 1)],
        fill=BACKGROUND if unlocked else DOOR_FILL,
    )
    if not unlocked:
        for top in (0.12, 0.55):
            draw.rectangle(
                [
                    (inset * 3, height * top),
                    (width - inset * 3, height * (top + 0.33)),
                ],
                outline=DOOR_FRAME,
                width=2,
            )
    accent = UNLOCKED_COLOR if unlocked else LOCKED_COLOR
    draw_padlock(
        draw,
        (width // 2, int(height * 0.5)),
        min(width, height) * 0.3,
        fill=accent,
        opened=unlocked,
    )
    return img


def launch_keypad_window(
    store: PersistentStore, config: DoorLockConfig | None = None
) -> None:
    """Open the keypad window and block until it is closed."""
    config = config or DEFAULT_CONFIG

    root = tk.Tk()
    root.title("DoorLock - Smart Door")
    root.configure(bg=BACKGROUND)
    root.resizable(False, False)

    clock = TkClock(root)
    controller = LockController(store, clock, config)
    refresh_job: str | None = None

    door_images = {
        unlocked: ImageTk.PhotoImage(render_door_image(unlocked), master=root)
        for unlocked in (False, True)
    }

    door_label = tk.Label(root, image=door_images[False], bg=BACKGROUND)
    door_label.pack(padx=16, pady=(16, 4))
    badge_var = tk.StringVar(value="LOCKED")
    badge = tk.Label(root, textvariable=badge_var, font=("Helvetica", 14, "bold"), bg=BACKGROUND)
    badge.pack()

    panel = tk.Frame(root, bg=PANEL, padx=16, pady=12)
    panel.pack(fill=tk.BOTH, padx=16, pady=12)

    digits_row = tk.Frame(panel, bg=PANEL)
    digits_row.pack(pady=(0, 8))
    digit_cells: List[tk.Label] = []
    for _ in range(config.pin_length):
        cell = tk.Label(
            digits_row,
            width=3,
            font=("Helvetica", 18, "bold"),
            relief="ridge",
            bg=BACKGROUND,
            fg=TEXT_COLOR,
        )
        cell.pack(side=tk.LEFT, padx=4)
        digit_cells.append(cell)

    message_var = tk.StringVar()
    tk.Label(panel, textvariable=message_var, bg=PANEL, fg=MUTED_TEXT, wraplength=240).pack(pady=(0, 8))

    keypad = tk.Frame(panel, bg=PANEL)
    keypad.pack()
    buttons: Dict[str, tk.Button] = {}
    layout = (("1", "2", "3"), ("4", "5", "6"), ("7", "8", "9"), ("C", "0", "<"))

    def on_button(label: str) -> None:
        if label == "C":
            controller.clear_input()
        elif label == "<":
            controller.backspace()
        else:
            controller.press_digit(label)
        refresh_now()

    for row_idx, row in enumerate(layout):
        for col_idx, label in enumerate(row):
            button = tk.Button(
                keypad,
                text=label,
                width=4,
                font=("Helvetica", 14),
                command=lambda value=label: on_button(value),
            )
            button.grid(row=row_idx, column=col_idx, padx=3, pady=3)
            buttons[label] = button

    def on_lock() -> None:
        controller.lock()
        refresh_now()

    lock_btn = tk.Button(panel, text="Lock again", width=14, command=on_lock)

    def on_key(event: tk.Event) -> None:
        key = event.keysym
        if len(event.char) == 1 and event.char.isdigit():
            controller.press_digit(event.char)
        elif key in {"BackSpace", "Delete"}:
            controller.backspace()
        elif key == "Return":
            controller.handle_control_key("Enter")
        elif key == "Escape":
            controller.handle_control_key("Escape")
        else:
            return
        refresh_now()

    root.bind("<Key>", on_key)

    def render() -> None:
        state = controller.state
        door_label.configure(image=door_images[state.is_unlocked])
        badge_var.set("UNLOCKED" if state.is_unlocked else "LOCKED")
        badge.configure(fg=UNLOCKED_COLOR if state.is_unlocked else LOCKED_COLOR)
        border = LOCKED_COLOR if state.show_error else BACKGROUND
        for idx, cell in enumerate(digit_cells):
            cell.configure(
                text="●" if idx < len(state.pending_input) else "",
                highlightbackground=border,
                highlightthickness=2,
            )
        message_var.set(describe_state(state, config))
        keypad_state = tk.DISABLED if state.is_locked_out or state.is_unlocked else tk.NORMAL
        for button in buttons.values():
            button.configure(state=keypad_state)
        if state.is_unlocked:
            lock_btn.pack(pady=(8, 0))
        else:
            lock_btn.pack_forget()

    def refresh() -> None:
        nonlocal refresh_job
        render()
        refresh_job = root.after(REFRESH_MS, refresh)

    def refresh_now() -> None:
        nonlocal refresh_job
        if refresh_job is not None:
            try:
                root.after_cancel(refresh_job)
            except tk.TclError:
                pass
            refresh_job = None
        refresh()

    def on_close() -> None:
        if refresh_job is not None:
            try:
                root.after_cancel(refresh_job)
            except tk.TclError:
                pass
        LOGGER.info("Keypad window closed")
        root.destroy()

    root.protocol("WM_DELETE_WINDOW", on_close)
    LOGGER.info("Keypad window opened")
    refresh_now()
    root.mainloop()
