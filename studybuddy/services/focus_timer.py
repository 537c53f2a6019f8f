from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from studybuddy.domain.enums import TimerMode, TimerState

logger = logging.getLogger(__name__)

TickCallback = Callable[[], object]


class TickSource(Protocol):
    """A periodic one-second trigger. ``stop`` must cancel any pending tick."""

    def start(self, callback: TickCallback) -> None: ...

    def stop(self) -> None: ...


@dataclass(frozen=True)
class TimerSettings:
    focus_minutes: int = 25
    short_break_minutes: int = 5
    long_break_minutes: int = 15
    long_break_interval: int = 4

    def __post_init__(self) -> None:
        for name in ("focus_minutes", "short_break_minutes", "long_break_minutes", "long_break_interval"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")

    def seconds_for(self, mode: TimerMode) -> int:
        minutes = {
            TimerMode.FOCUS: self.focus_minutes,
            TimerMode.SHORT_BREAK: self.short_break_minutes,
            TimerMode.LONG_BREAK: self.long_break_minutes,
        }[mode]
        return minutes * 60


@dataclass(frozen=True)
class FocusSession:
    mode: TimerMode
    state: TimerState
    time_left_seconds: int
    sessions_completed_in_cycle: int
    total_pomodoros_completed: int
    settings: TimerSettings
    task_id: Optional[str]


@dataclass(frozen=True)
class PhaseCompletion:
    completed_mode: TimerMode
    next_mode: TimerMode
    minutes: int
    sessions_completed_in_cycle: int
    total_pomodoros_completed: int
    task_id: Optional[str]


class FocusTimer:
    """Pomodoro countdown cycling focus, short break and long break phases.

    The countdown only moves through :meth:`tick`, so any scheduler can
    drive it: a Qt timer, an asyncio loop or a test calling ``tick`` in a
    loop. While the timer is running it holds its tick source; every path
    out of ``running`` (pause, stop, phase completion, reset, close)
    releases it. Phases never start on their own after a completion.
    """

    def __init__(
        self,
        settings: TimerSettings | None = None,
        tick_source: TickSource | None = None,
        *,
        on_phase_complete: Callable[[PhaseCompletion], object] | None = None,
        on_task_completion_candidate: Callable[[str], object] | None = None,
    ) -> None:
        self._settings = settings or TimerSettings()
        self._tick_source = tick_source
        self.on_phase_complete = on_phase_complete
        self.on_task_completion_candidate = on_task_completion_candidate

        self._mode = TimerMode.FOCUS
        self._state = TimerState.IDLE
        self._time_left = self._settings.seconds_for(self._mode)
        self._sessions_in_cycle = 0
        self._total_pomodoros = 0
        self._task_id: str | None = None
        self._ticking = False
        self._closed = False
        self._lock = threading.RLock()

    def __enter__(self) -> FocusTimer:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ---- read side ----

    @property
    def mode(self) -> TimerMode:
        return self._mode

    @property
    def state(self) -> TimerState:
        return self._state

    @property
    def time_left_seconds(self) -> int:
        return self._time_left

    @property
    def sessions_completed_in_cycle(self) -> int:
        return self._sessions_in_cycle

    @property
    def total_pomodoros_completed(self) -> int:
        return self._total_pomodoros

    @property
    def settings(self) -> TimerSettings:
        return self._settings

    @property
    def task_id(self) -> str | None:
        return self._task_id

    @property
    def configured_seconds(self) -> int:
        return self._settings.seconds_for(self._mode)

    def session(self) -> FocusSession:
        with self._lock:
            return FocusSession(
                mode=self._mode,
                state=self._state,
                time_left_seconds=self._time_left,
                sessions_completed_in_cycle=self._sessions_in_cycle,
                total_pomodoros_completed=self._total_pomodoros,
                settings=self._settings,
                task_id=self._task_id,
            )

    def progress(self) -> float:
        """Elapsed share of the current phase, in [0, 1]."""
        configured = self.configured_seconds
        return min(1.0, max(0.0, (configured - self._time_left) / configured))

    def remaining_label(self) -> str:
        minutes, seconds = divmod(self._time_left, 60)
        return f"{minutes:02d}:{seconds:02d}"

    # ---- transitions ----

    def start(self) -> None:
        with self._lock:
            if self._closed:
                raise RuntimeError("FocusTimer is closed")
            if self._state == TimerState.RUNNING:
                return
            self._state = TimerState.RUNNING
            self._acquire_ticks()
        logger.debug("Timer started mode=%s left=%s", self._mode.value, self._time_left)

    def pause(self) -> None:
        with self._lock:
            if self._state != TimerState.RUNNING:
                return
            self._release_ticks()
            self._state = TimerState.PAUSED

    def stop(self) -> None:
        with self._lock:
            self._release_ticks()
            self._state = TimerState.IDLE
            self._time_left = self.configured_seconds

    def reset_cycle(self) -> None:
        """Back to an idle focus phase with a fresh cycle; lifetime totals are kept."""
        with self._lock:
            self._release_ticks()
            self._state = TimerState.IDLE
            self._mode = TimerMode.FOCUS
            self._sessions_in_cycle = 0
            self._time_left = self.configured_seconds

    def set_mode(self, mode: TimerMode | str) -> None:
        with self._lock:
            self._release_ticks()
            self._mode = TimerMode(mode)
            self._state = TimerState.IDLE
            self._time_left = self.configured_seconds

    def update_settings(self, settings: TimerSettings) -> None:
        with self._lock:
            self._settings = settings
            self._time_left = self.configured_seconds

    def bind_task(self, task_id: str | None) -> None:
        with self._lock:
            self._task_id = task_id

    def unbind_task(self) -> None:
        self.bind_task(None)

    def tick(self) -> bool:
        """Advance the countdown by one second. Returns False when not running."""
        with self._lock:
            if self._closed or self._state != TimerState.RUNNING:
                return False
            self._time_left = max(self._time_left - 1, 0)
            if self._time_left > 0:
                return True
            completion = self._complete_phase()
        self._emit(completion)
        return True

    def close(self) -> None:
        with self._lock:
            self._release_ticks()
            if self._state == TimerState.RUNNING:
                self._state = TimerState.PAUSED
            self._closed = True

    # ---- internals ----

    def _complete_phase(self) -> PhaseCompletion:
        self._release_ticks()
        self._state = TimerState.COMPLETED
        finished = self._mode
        if finished == TimerMode.FOCUS:
            self._sessions_in_cycle += 1
            self._total_pomodoros += 1
            if self._sessions_in_cycle % self._settings.long_break_interval == 0:
                next_mode = TimerMode.LONG_BREAK
            else:
                next_mode = TimerMode.SHORT_BREAK
        else:
            next_mode = TimerMode.FOCUS
        self._mode = next_mode
        self._time_left = self.configured_seconds
        logger.info(
            "Phase %s completed; next %s (cycle=%s total=%s)",
            finished.value,
            next_mode.value,
            self._sessions_in_cycle,
            self._total_pomodoros,
        )
        return PhaseCompletion(
            completed_mode=finished,
            next_mode=next_mode,
            minutes=self._settings.seconds_for(finished) // 60,
            sessions_completed_in_cycle=self._sessions_in_cycle,
            total_pomodoros_completed=self._total_pomodoros,
            task_id=self._task_id,
        )

    def _emit(self, completion: PhaseCompletion) -> None:
        if self.on_phase_complete is not None:
            self.on_phase_complete(completion)
        if (
            completion.completed_mode == TimerMode.FOCUS
            and completion.task_id is not None
            and self.on_task_completion_candidate is not None
        ):
            self.on_task_completion_candidate(completion.task_id)

    def _acquire_ticks(self) -> None:
        if self._tick_source is None or self._ticking:
            return
        self._tick_source.start(self.tick)
        self._ticking = True

    def _release_ticks(self) -> None:
        if self._tick_source is None or not self._ticking:
            return
        self._tick_source.stop()
        self._ticking = False
