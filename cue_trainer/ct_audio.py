"""
Server-side AudioManager:
- Plays recorded command clips using `mpg123` (or CUE_TRAINER_AUDIO_PLAYER)
- Stores uploaded recordings under AUDIO_DIR
- No dependencies beyond a system player binary (sudo apt-get install mpg123)

Playback is fire-and-forget: a missing clip or a player that fails to start
is reported as False, never raised, so a session keeps its clock.
"""

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from typing import Optional

from werkzeug.utils import secure_filename

from .ct_config import AUDIO_DIR, AUDIO_PLAYER, AUDIO_VOLUME_PERCENT

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = ('.mp3', '.wav', '.webm', '.ogg', '.m4a')


@dataclass
class AudioSettings:
    audio_dir: str = AUDIO_DIR
    player: str = AUDIO_PLAYER
    volume_percent: int = AUDIO_VOLUME_PERCENT    # 0-100


class AudioManager:
    def __init__(self, settings: Optional[AudioSettings] = None):
        self.settings = settings or AudioSettings()
        os.makedirs(self.settings.audio_dir, exist_ok=True)

    def clip_path(self, audio_file: str) -> Optional[str]:
        """<audio_dir>/<audio_file>, or None when the clip is not on disk."""
        if not audio_file:
            return None
        p = os.path.join(self.settings.audio_dir, os.path.basename(audio_file))
        if os.path.isfile(p):
            return p
        return None

    def _volume_to_mpg123_scale(self, percent: int) -> int:
        """Convert 0-100% to mpg123 -f scale (roughly 0-32768)."""
        percent = max(0, min(100, percent))
        return int(32768 * (percent / 100.0))

    def build_command(self, path: str) -> str:
        if os.path.basename(self.settings.player) == "mpg123":
            vol = self._volume_to_mpg123_scale(self.settings.volume_percent)
            return f"{self.settings.player} -q -f {vol} {shlex.quote(path)}"
        return f"{self.settings.player} {shlex.quote(path)}"

    def play(self, audio_file: str) -> bool:
        """
        Play a stored clip. Returns True if playback started.
        """
        path = self.clip_path(audio_file)
        if not path:
            logger.error(f"Audio file not found: {audio_file}")
            return False

        cmd = self.build_command(path)
        try:
            # Fire-and-forget so we don't block the session timer
            subprocess.Popen(cmd, shell=True, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
            return True
        except Exception as e:
            logger.error(f"Error playing audio {audio_file}: {e}")
            return False

    def save_recording(self, command_id: str, file_storage) -> str:
        """
        Store an uploaded recording (werkzeug FileStorage) for a command.

        Returns the stored file name, which becomes the command's audio handle.
        Raises ValueError for unsupported file types.
        """
        original = secure_filename(file_storage.filename or "")
        ext = os.path.splitext(original)[1].lower() or '.webm'
        if ext not in ALLOWED_EXTENSIONS:
            raise ValueError(f"Unsupported audio type: {ext}")

        filename = secure_filename(f"command_{command_id}{ext}")
        file_storage.save(os.path.join(self.settings.audio_dir, filename))
        logger.info(f"Saved recording for command {command_id}: {filename}")
        return filename

    def delete_recording(self, audio_file: str) -> None:
        path = self.clip_path(audio_file)
        if path:
            os.remove(path)
