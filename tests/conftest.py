import random

import pytest

from cue_trainer.ct_audio import AudioManager, AudioSettings
from cue_trainer.db_manager import DatabaseManager


class ManualClock:
    """Monotonic clock the test moves by hand."""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds
        return self.now


class RecordingAudio(AudioManager):
    """AudioManager that records play() calls instead of spawning a player."""

    def __init__(self, audio_dir, fail=False):
        super().__init__(AudioSettings(audio_dir=str(audio_dir)))
        self.played = []
        self.fail = fail

    def play(self, audio_file):
        self.played.append(audio_file)
        return not self.fail


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def db(tmp_path):
    return DatabaseManager(str(tmp_path / "cue_trainer.db"))


@pytest.fixture
def audio(tmp_path):
    return RecordingAudio(tmp_path / "audio")
