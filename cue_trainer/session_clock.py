"""
Session clock: the training session state machine as pure functions.

Every transition takes the current SessionState plus the caller's notion of
"now" (seconds from any monotonic clock) and returns (new_state, events).
Nothing here sleeps, reads the clock, or plays audio; TrainingSession drives
these functions from a timer and delivers the events.

    IDLE -> RUNNING <-> PAUSED
    RUNNING -> COMPLETED -> TERMINATED (after the grace delay)
    RUNNING | PAUSED | COMPLETED -> TERMINATED (explicit end)
"""

import math
from dataclasses import replace
from typing import List, Optional, Sequence, Tuple

from .ct_config import COMPLETION_GRACE_SECS
from .ct_models import (
    CuePlayed, ScheduleEntry, SessionCompleted, SessionConfig, SessionPhase,
    SessionState, SessionTerminated, TickEvent,
)

Transition = Tuple[SessionState, List[object]]

ENDABLE_PHASES = (SessionPhase.RUNNING, SessionPhase.PAUSED, SessionPhase.COMPLETED)


def start_state(now: float) -> SessionState:
    """Fresh RUNNING state anchored at now."""
    return SessionState(phase=SessionPhase.RUNNING, start_time=now)


def compute_elapsed(state: SessionState, now: float) -> int:
    """
    Whole seconds of running time, excluding paused intervals.

    Clamped so it never goes below the last observed value; a clock that
    jumps backwards must not re-arm cues that already fired.
    """
    raw = now - state.start_time - state.paused_accumulated_seconds
    return max(state.elapsed_seconds, int(math.floor(raw)), 0)


def step(
    state: SessionState,
    schedule: Sequence[ScheduleEntry],
    config: SessionConfig,
    now: float,
    grace_seconds: float = COMPLETION_GRACE_SECS,
    drain: bool = True,
) -> Transition:
    """
    One poll of the session clock.

    With drain=False only the tick is produced; the caller then pulls due cues
    one at a time with dispatch_next() so a callback can pause or end between them.
    """
    if state.phase is SessionPhase.COMPLETED:
        if state.completed_at is not None and now - state.completed_at >= grace_seconds:
            return replace(state, phase=SessionPhase.TERMINATED), [SessionTerminated(reason="completed")]
        return state, []

    if state.phase is not SessionPhase.RUNNING:
        return state, []

    elapsed = compute_elapsed(state, now)

    # Completion wins over anything due at the same instant
    if elapsed >= config.duration_seconds:
        elapsed = config.duration_seconds
        completed = replace(
            state,
            phase=SessionPhase.COMPLETED,
            elapsed_seconds=elapsed,
            completed_at=now,
        )
        return completed, [TickEvent(elapsed, SessionPhase.COMPLETED), SessionCompleted(elapsed)]

    state = replace(state, elapsed_seconds=elapsed)
    events: List[object] = [TickEvent(elapsed, SessionPhase.RUNNING)]

    # Drain everything due; near-zero breaks can stack several cues in one tick
    while drain:
        state, cue = dispatch_next(state, schedule)
        if not cue:
            break
        events.extend(cue)

    return state, events


def dispatch_next(state: SessionState, schedule: Sequence[ScheduleEntry]) -> Transition:
    """Fire the entry at the cursor if it is due; nothing unless RUNNING."""
    if state.phase is not SessionPhase.RUNNING or state.cursor >= len(schedule):
        return state, []
    entry = schedule[state.cursor]
    if entry.offset_seconds > state.elapsed_seconds:
        return state, []

    tally = dict(state.completion_tally)
    tally[entry.item_id] = tally.get(entry.item_id, 0) + 1
    fired = replace(state, cursor=state.cursor + 1, completion_tally=tally)
    return fired, [CuePlayed(entry.item_id, entry.offset_seconds, state.elapsed_seconds)]


def pause(state: SessionState, now: float) -> Transition:
    if state.phase is not SessionPhase.RUNNING:
        return state, []
    return replace(state, phase=SessionPhase.PAUSED, pause_started_at=now), []


def resume(state: SessionState, now: float) -> Transition:
    if state.phase is not SessionPhase.PAUSED:
        return state, []
    paused_for = max(0.0, now - state.pause_started_at)
    resumed = replace(
        state,
        phase=SessionPhase.RUNNING,
        paused_accumulated_seconds=state.paused_accumulated_seconds + paused_for,
        pause_started_at=None,
    )
    return resumed, []


def terminate(state: SessionState, now: float, reason: str = "ended") -> Transition:
    """Explicit end. A no-op (no event) from IDLE or once already TERMINATED."""
    if state.phase not in ENDABLE_PHASES:
        return state, []
    return replace(state, phase=SessionPhase.TERMINATED, pause_started_at=None), [SessionTerminated(reason=reason)]


def seconds_until_next_cue(state: SessionState, schedule: Sequence[ScheduleEntry]) -> Optional[float]:
    if state.cursor >= len(schedule):
        return None
    return max(0.0, schedule[state.cursor].offset_seconds - state.elapsed_seconds)
