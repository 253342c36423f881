"""
Central configuration and tunables.

If you need to change ports, timings, or file paths, do it here.
Prefer environment overrides where sensible.
"""

import os

# Network
HOST: str = os.getenv("CUE_TRAINER_HOST", "0.0.0.0")
PORT: int = int(os.getenv("CUE_TRAINER_PORT", "5001"))

# Storage
DB_PATH: str = os.getenv("CUE_TRAINER_DB_PATH", "/opt/data/cue_trainer.db")

# Audio
AUDIO_DIR: str = os.getenv("CUE_TRAINER_AUDIO_DIR", "/opt/cue_trainer/audio")
AUDIO_PLAYER: str = os.getenv("CUE_TRAINER_AUDIO_PLAYER", "mpg123")
AUDIO_VOLUME_PERCENT: int = int(os.getenv("CUE_TRAINER_AUDIO_VOLUME", "80"))

# Session timing
TICK_INTERVAL_SECS: float = float(os.getenv("CUE_TRAINER_TICK_INTERVAL", "0.1"))
COMPLETION_GRACE_SECS: float = float(os.getenv("CUE_TRAINER_COMPLETION_GRACE", "3.0"))
CUE_DISPLAY_SECS: float = float(os.getenv("CUE_TRAINER_CUE_DISPLAY", "3.0"))

# Training settings defaults (seconds)
DEFAULT_DURATION_SECS: int = int(os.getenv("CUE_TRAINER_DEFAULT_DURATION", "300"))
DEFAULT_MIN_BREAK_SECS: float = float(os.getenv("CUE_TRAINER_DEFAULT_MIN_BREAK", "5"))
DEFAULT_MAX_BREAK_SECS: float = float(os.getenv("CUE_TRAINER_DEFAULT_MAX_BREAK", "30"))
MIN_DURATION_SECS: int = 60
MAX_DURATION_SECS: int = 1800

# Logs
LOG_MAX: int = int(os.getenv("CUE_TRAINER_LOG_MAX", "500"))
