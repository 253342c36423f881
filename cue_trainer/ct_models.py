"""
Dataclasses and small model helpers used throughout the system.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


def utcnow_iso() -> str:
    """UTC timestamp in ISO 8601 format (seconds precision)."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class SessionPhase(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class TrainableItem:
    """
    A selected command as seen by the scheduler.

    audio_file is an opaque handle passed back to the playback collaborator.
    """
    item_id: str
    name: str = ""
    session_repeat_count: int = 1
    audio_file: Optional[str] = None

    @property
    def has_audio(self) -> bool:
        return bool(self.audio_file)


@dataclass(frozen=True)
class ScheduleEntry:
    item_id: str
    offset_seconds: float


@dataclass(frozen=True)
class SessionConfig:
    duration_seconds: int
    min_break_seconds: float
    max_break_seconds: float

    def break_window(self):
        """(low, width) of the break draw; an inverted window collapses to zero width."""
        low = max(0.0, self.min_break_seconds)
        width = self.max_break_seconds - low
        if not width > 0:
            width = 0.0
        return low, width

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionConfig":
        """
        Build a config from settings/API payloads.

        Accepts either snake_case keys or the stored settings names
        (duration, min_break_time, max_break_time).
        Raises ValueError for a non-positive duration or negative breaks.
        """
        duration = int(data.get("duration_seconds", data.get("duration", 0)))
        min_break = float(data.get("min_break_seconds", data.get("min_break_time", 0)))
        max_break = float(data.get("max_break_seconds", data.get("max_break_time", min_break)))

        if duration <= 0:
            raise ValueError(f"duration must be positive, got {duration}")
        if min_break < 0 or max_break < 0:
            raise ValueError("break times must not be negative")

        return cls(duration_seconds=duration, min_break_seconds=min_break, max_break_seconds=max_break)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "duration_seconds": self.duration_seconds,
            "min_break_seconds": self.min_break_seconds,
            "max_break_seconds": self.max_break_seconds,
        }


@dataclass(frozen=True)
class SessionState:
    """
    Live session state. Treated as a value: transitions in session_clock
    return a new instance instead of mutating this one.
    """
    phase: SessionPhase = SessionPhase.IDLE
    start_time: Optional[float] = None
    elapsed_seconds: int = 0
    cursor: int = 0
    paused_accumulated_seconds: float = 0.0
    pause_started_at: Optional[float] = None
    completed_at: Optional[float] = None
    completion_tally: Dict[str, int] = field(default_factory=dict)


# ---------------------------- Events ----------------------------

@dataclass(frozen=True)
class TickEvent:
    elapsed_seconds: int
    phase: SessionPhase


@dataclass(frozen=True)
class CuePlayed:
    item_id: str
    offset_seconds: float
    elapsed_seconds: int


@dataclass(frozen=True)
class SessionCompleted:
    elapsed_seconds: int


@dataclass(frozen=True)
class SessionTerminated:
    reason: str = "ended"
