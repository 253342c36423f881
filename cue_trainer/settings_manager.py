#!/usr/bin/env python3
"""
Settings Manager for Cue Trainer
Handles training settings (duration and break window) and the audio library
"""

import logging
import os
from datetime import datetime
from typing import Dict, List, Optional

from .ct_config import (
    AUDIO_DIR, DEFAULT_DURATION_SECS, DEFAULT_MAX_BREAK_SECS, DEFAULT_MIN_BREAK_SECS,
    MAX_DURATION_SECS, MIN_DURATION_SECS,
)
from .ct_models import SessionConfig

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = {
    'duration': str(DEFAULT_DURATION_SECS),
    'min_break_time': str(DEFAULT_MIN_BREAK_SECS),
    'max_break_time': str(DEFAULT_MAX_BREAK_SECS),
}


class SettingsManager:
    """Manages training settings stored in the settings table"""

    def __init__(self, db_manager, audio_dir: str = AUDIO_DIR):
        self.db = db_manager
        self.audio_dir = audio_dir

    def load_settings(self) -> Dict[str, str]:
        """Load all settings as dictionary, defaults filled in"""
        with self.db.get_connection() as conn:
            cursor = conn.execute('SELECT setting_key, setting_value FROM settings')
            stored = {row[0]: row[1] for row in cursor.fetchall()}
        return {**DEFAULT_SETTINGS, **stored}

    def get_setting(self, key: str) -> Optional[str]:
        """Get single setting value"""
        with self.db.get_connection() as conn:
            cursor = conn.execute(
                'SELECT setting_value FROM settings WHERE setting_key = ?',
                (key,)
            )
            row = cursor.fetchone()
            return row[0] if row else DEFAULT_SETTINGS.get(key)

    def save_setting(self, key: str, value: str) -> None:
        """Save single setting, update timestamp"""
        with self.db.get_connection() as conn:
            conn.execute('''
                INSERT INTO settings (setting_key, setting_value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(setting_key) DO UPDATE SET
                    setting_value = excluded.setting_value,
                    updated_at = excluded.updated_at
            ''', (key, value, datetime.utcnow().isoformat()))

    def get_training_config(self) -> SessionConfig:
        return SessionConfig.from_dict(self.load_settings())

    def save_training_settings(self, duration=None, min_break_time=None, max_break_time=None) -> SessionConfig:
        """
        Validate and persist training settings, return the resulting config.

        Duration is clamped to the supported range; an inverted break window
        is stored as given (the scheduler collapses it to min_break_time).
        Raises ValueError on unparseable or negative values.
        """
        current = self.load_settings()
        if duration is not None:
            current['duration'] = str(max(MIN_DURATION_SECS, min(MAX_DURATION_SECS, int(duration))))
        if min_break_time is not None:
            current['min_break_time'] = str(float(min_break_time))
        if max_break_time is not None:
            current['max_break_time'] = str(float(max_break_time))

        config = SessionConfig.from_dict(current)
        for key in DEFAULT_SETTINGS:
            self.save_setting(key, current[key])

        if config.max_break_seconds < config.min_break_seconds:
            logger.warning(
                f"Max break {config.max_break_seconds}s below min break {config.min_break_seconds}s; "
                f"sessions will use a fixed {config.min_break_seconds}s break"
            )
        return config

    def reset_to_defaults(self) -> SessionConfig:
        """Reset training settings to defaults"""
        with self.db.get_connection() as conn:
            conn.execute('DELETE FROM settings')
        return self.get_training_config()

    def get_audio_files(self) -> List[str]:
        """Recorded clips in the audio directory (non-empty files only)"""
        if not os.path.exists(self.audio_dir):
            return []

        files = []
        for filename in os.listdir(self.audio_dir):
            filepath = os.path.join(self.audio_dir, filename)
            if os.path.isfile(filepath) and os.path.getsize(filepath) > 0:
                files.append(filename)
        return sorted(files)
