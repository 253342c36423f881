#!/usr/bin/env python3
"""
Training Session - live cue dispatcher for one timed session

Wraps the pure session_clock transitions with:
- a background polling thread (the only timer a session owns)
- callback delivery for cues, ticks, completion and termination
- pause / resume / end controls that are safe to call from any thread
"""

import logging
import random
import threading
import time
from typing import Any, Callable, Dict, Iterable, List, Optional

from . import session_clock
from .ct_config import COMPLETION_GRACE_SECS, TICK_INTERVAL_SECS
from .ct_models import (
    CuePlayed, ScheduleEntry, SessionCompleted, SessionConfig, SessionPhase,
    SessionState, SessionTerminated, TickEvent, TrainableItem,
)
from .schedule_generator import generate_schedule

logger = logging.getLogger(__name__)


class TrainingSession:
    """
    Handle for a single training session.

    Callbacks (all optional):
    - on_cue_play(item): a cue is due; the caller plays item.audio_file and
      bumps the item's historical counter
    - on_tick(elapsed_seconds, phase): once per poll while running
    - on_completed(): duration reached
    - on_terminated(): session over, fired exactly once

    Callback errors are logged and never stop the clock.
    """

    def __init__(
        self,
        items: Iterable[TrainableItem],
        config: SessionConfig,
        on_cue_play: Optional[Callable[[TrainableItem], Any]] = None,
        on_tick: Optional[Callable[[int, SessionPhase], Any]] = None,
        on_completed: Optional[Callable[[], Any]] = None,
        on_terminated: Optional[Callable[[], Any]] = None,
        random_source: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
        tick_interval: float = TICK_INTERVAL_SECS,
        grace_seconds: float = COMPLETION_GRACE_SECS,
    ):
        self.items: Dict[str, TrainableItem] = {item.item_id: item for item in items}
        self.config = config
        self.on_cue_play = on_cue_play
        self.on_tick = on_tick
        self.on_completed = on_completed
        self.on_terminated = on_terminated
        self.random_source = random_source
        self.clock = clock
        self.tick_interval = tick_interval
        self.grace_seconds = grace_seconds

        self.schedule: List[ScheduleEntry] = []
        self.state = SessionState()

        # Re-entrant: callbacks may call pause()/end() from inside a tick
        self._lock = threading.RLock()
        self.timer_thread: Optional[threading.Thread] = None
        self.stop_timer_event = threading.Event()

    # ---------------------------- Lifecycle ----------------------------

    def start(self, run_timer: bool = True) -> "TrainingSession":
        """
        Generate the schedule and start the clock.

        With run_timer=False no thread is started and the owner drives the
        session by calling tick() (tests, external event loops).
        """
        with self._lock:
            if self.state.phase is not SessionPhase.IDLE:
                return self
            self.schedule = generate_schedule(self.items.values(), self.config, self.random_source)
            self.state = session_clock.start_state(self.clock())

        logger.info(
            f"Training session started: {len(self.schedule)} cues, "
            f"{self.config.duration_seconds}s, breaks {self.config.min_break_seconds}-{self.config.max_break_seconds}s"
        )

        if run_timer:
            self.stop_timer_event.clear()
            self.timer_thread = threading.Thread(target=self._timer_loop, name="training-session-timer", daemon=True)
            self.timer_thread.start()
        return self

    def _timer_loop(self):
        """Poll until the session terminates or the timer is cancelled."""
        while not self.stop_timer_event.wait(self.tick_interval):
            self.tick()
            if self.is_finished:
                break
        logger.debug("Training session timer stopped")

    def tick(self) -> None:
        with self._lock:
            self.state, events = session_clock.step(
                self.state, self.schedule, self.config, self.clock(), self.grace_seconds, drain=False
            )
            self._deliver(events)
            # One cue at a time: a callback that pauses or ends stops the rest
            while True:
                self.state, events = session_clock.dispatch_next(self.state, self.schedule)
                if not events:
                    break
                self._deliver(events)
        if self.is_finished:
            self._stop_timer()

    def pause(self) -> None:
        with self._lock:
            self.state, _ = session_clock.pause(self.state, self.clock())
            if self.state.phase is SessionPhase.PAUSED:
                logger.info(f"Training session paused at {self.state.elapsed_seconds}s")

    def resume(self) -> None:
        with self._lock:
            was_paused = self.state.phase is SessionPhase.PAUSED
            self.state, _ = session_clock.resume(self.state, self.clock())
            if was_paused:
                logger.info(f"Training session resumed (paused {self.state.paused_accumulated_seconds:.1f}s in total)")

    def end(self) -> None:
        """Terminate now. Safe to call repeatedly; only the first call has an effect."""
        with self._lock:
            self.state, events = session_clock.terminate(self.state, self.clock())
            self._deliver(events)
        self._stop_timer()

    def _stop_timer(self):
        self.stop_timer_event.set()
        thread = self.timer_thread
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=2.0)

    # ---------------------------- Events ----------------------------

    def _deliver(self, events: List[object]) -> None:
        for event in events:
            if isinstance(event, CuePlayed):
                item = self.items.get(event.item_id)
                logger.debug(f"Cue due at {event.offset_seconds:.1f}s: {item.name if item else event.item_id}")
                self._notify(self.on_cue_play, item)
            elif isinstance(event, TickEvent):
                self._notify(self.on_tick, event.elapsed_seconds, event.phase)
            elif isinstance(event, SessionCompleted):
                logger.info(f"Training session completed after {event.elapsed_seconds}s")
                self._notify(self.on_completed)
            elif isinstance(event, SessionTerminated):
                logger.info(f"Training session terminated ({event.reason})")
                self.stop_timer_event.set()
                self._notify(self.on_terminated)

    def _notify(self, callback, *args) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            logger.error(f"Training session callback {getattr(callback, '__name__', callback)} failed: {e}")

    # ---------------------------- State ----------------------------

    @property
    def phase(self) -> SessionPhase:
        return self.state.phase

    @property
    def elapsed_seconds(self) -> int:
        return self.state.elapsed_seconds

    @property
    def completion_tally(self) -> Dict[str, int]:
        return dict(self.state.completion_tally)

    @property
    def is_finished(self) -> bool:
        return self.state.phase is SessionPhase.TERMINATED

    def next_cue_in(self) -> Optional[float]:
        return session_clock.seconds_until_next_cue(self.state, self.schedule)

    def snapshot(self) -> Dict[str, Any]:
        """JSON-friendly view of the session for status endpoints."""
        with self._lock:
            state = self.state
            duration = self.config.duration_seconds
            return {
                'phase': state.phase.value,
                'elapsed_seconds': state.elapsed_seconds,
                'duration_seconds': duration,
                'progress_percent': round(min(100.0, state.elapsed_seconds / duration * 100), 1),
                'cursor': state.cursor,
                'scheduled_cues': len(self.schedule),
                'next_cue_in': self.next_cue_in(),
                'completion_tally': dict(state.completion_tally),
            }


def start_session(
    items: Iterable[TrainableItem],
    config: SessionConfig,
    random_source: Optional[random.Random] = None,
    run_timer: bool = True,
    **kwargs
) -> TrainingSession:
    """Create a TrainingSession and start it."""
    session = TrainingSession(items, config, random_source=random_source, **kwargs)
    return session.start(run_timer=run_timer)
