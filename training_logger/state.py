"""In-memory application state shared by the request handlers.

One ``AppState`` is built at startup and handed to every flow that needs it.
Everything here is reset when the process restarts; durable data lives in the
local store and on GitHub.
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Any

from training_logger.config import RemoteConfig, default_remote_config


@dataclass
class TimerState:
    elapsed_seconds: int = 0
    running: bool = False
    # monotonic timestamp of the current run, None while stopped
    handle: float | None = None

    def _now(self) -> float:
        return time.monotonic()

    def current_seconds(self) -> int:
        if self.running and self.handle is not None:
            return self.elapsed_seconds + int(self._now() - self.handle)
        return self.elapsed_seconds

    def start(self) -> None:
        if self.running:
            return
        self.handle = self._now()
        self.running = True

    def pause(self) -> None:
        self.elapsed_seconds = self.current_seconds()
        self.handle = None
        self.running = False

    def reset(self) -> None:
        self.pause()
        self.elapsed_seconds = 0

    def tick(self) -> None:
        # a running timer already counts wall time
        if self.running:
            return
        self.elapsed_seconds += 1

    def display(self) -> str:
        return format_duration(self.current_seconds())

    def to_dict(self) -> dict[str, Any]:
        return {
            "elapsed_seconds": self.current_seconds(),
            "running": self.running,
            "display": self.display(),
        }


def format_duration(seconds: int) -> str:
    seconds = max(0, int(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


@dataclass
class EditingTargets:
    workout: str | None = None
    measurement: str | None = None
    progress_picture: str | None = None

    def clear(self) -> None:
        self.workout = None
        self.measurement = None
        self.progress_picture = None


@dataclass
class AppState:
    remote_config: RemoteConfig = field(default_factory=default_remote_config)
    active_program_id: str | None = None
    current_program_index: int = -1
    timer: TimerState = field(default_factory=TimerState)
    current_workout: dict[str, Any] | None = None
    editing: EditingTargets = field(default_factory=EditingTargets)
    programs: list[dict[str, Any]] = field(default_factory=list)
    workout_history: list[dict[str, Any]] = field(default_factory=list)
    measurements: list[dict[str, Any]] = field(default_factory=list)
    progress_pictures: list[dict[str, Any]] = field(default_factory=list)
    analytics: dict[str, Any] = field(default_factory=dict)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    def set_active_program(self, program_id: str | None) -> None:
        self.active_program_id = program_id
        self.current_program_index = next(
            (i for i, p in enumerate(self.programs) if program_id is not None and p.get("id") == program_id),
            -1,
        )

    def end_workout(self) -> None:
        self.current_workout = None
        self.active_program_id = None
        self.current_program_index = -1
        self.timer.reset()

    def clear_data(self) -> None:
        """Drop every collection and the session. The GitHub config survives."""
        self.programs = []
        self.workout_history = []
        self.measurements = []
        self.progress_pictures = []
        self.end_workout()
        self.editing.clear()

    def snapshot(self) -> dict[str, Any]:
        return {
            "config": self.remote_config.masked(),
            "active_program_id": self.active_program_id,
            "current_program_index": self.current_program_index,
            "timer": self.timer.to_dict(),
            "current_workout": self.current_workout,
            "editing": {
                "workout": self.editing.workout,
                "measurement": self.editing.measurement,
                "progress_picture": self.editing.progress_picture,
            },
            "counts": {
                "programs": len(self.programs),
                "workouts": len(self.workout_history),
                "measurements": len(self.measurements),
                "progress_pictures": len(self.progress_pictures),
            },
        }
