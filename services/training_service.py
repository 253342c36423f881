#!/usr/bin/env python3
"""
Training Service - runs voice-command training sessions
Bridges the TrainingSession dispatcher to the command store, audio playback
and Socket.IO clients
"""

import logging
import threading
import time
from collections import deque
from typing import Any, Callable, Dict, List, Optional

from cue_trainer.ct_config import CUE_DISPLAY_SECS, LOG_MAX
from cue_trainer.ct_models import SessionPhase, TrainableItem, utcnow_iso
from cue_trainer.schedule_generator import schedule_generator
from cue_trainer.settings_manager import SettingsManager
from cue_trainer.training_session import TrainingSession

logger = logging.getLogger(__name__)


class TrainingService:
    """
    Manages the (single) active training session.

    Features:
    - Loads selected commands and training settings from the database
    - Plays each due cue through the AudioManager
    - Increments each command's historical training_count on every cue
    - Pushes cue/tick/completed/terminated events over Socket.IO
    - Keeps the "now playing" cue visible for CUE_DISPLAY_SECS
    """

    def __init__(self, db, audio, settings: Optional[SettingsManager] = None, socketio=None,
                 clock: Callable[[], float] = time.monotonic, run_timer: bool = True,
                 random_source=None):
        self.db = db
        self.audio = audio
        self.settings = settings or SettingsManager(db)
        self.socketio = socketio
        self.clock = clock
        self.run_timer = run_timer
        self.random_source = random_source

        self.active_session: Optional[TrainingSession] = None
        self.session_items: List[TrainableItem] = []
        self.started_at: Optional[str] = None

        # "Now playing" display, cleared after CUE_DISPLAY_SECS
        self.current_cue: Optional[Dict[str, Any]] = None
        self.current_cue_until: float = 0.0

        self.logs: deque = deque(maxlen=LOG_MAX)
        self._lock = threading.Lock()

    def log(self, msg: str, level: str = "info") -> None:
        """Append to the in-memory session log and the module logger"""
        self.logs.append({'ts': utcnow_iso(), 'level': level, 'msg': msg})
        getattr(logger, level, logger.info)(msg)

    # ==================== CONTROL ====================

    def start_training(self) -> Dict[str, Any]:
        """
        Start a session from the currently selected commands

        Returns:
            {'success': bool, 'message': str, 'scheduled_cues': int} or
            {'success': False, 'error': str, 'code': int}
        """
        with self._lock:
            if self.is_active:
                return {'success': False, 'error': 'A training session is already running', 'code': 409}

            try:
                config = self.settings.get_training_config()
            except ValueError as e:
                return {'success': False, 'error': f'Invalid training settings: {e}', 'code': 400}

            missing = self.db.missing_audio_commands()
            if missing:
                names = ", ".join(c['name'] for c in missing)
                return {'success': False, 'error': f'Record audio before training: {names}', 'code': 400}

            items = self.db.get_trainable_items()
            if not items:
                return {'success': False, 'error': 'Select at least one command with a session count above zero', 'code': 400}

            self.session_items = items
            self.current_cue = None
            self.started_at = utcnow_iso()
            self.active_session = TrainingSession(
                items,
                config,
                on_cue_play=self._on_cue_play,
                on_tick=self._on_tick,
                on_completed=self._on_completed,
                on_terminated=self._on_terminated,
                random_source=self.random_source,
                clock=self.clock,
            )
            self.active_session.start(run_timer=self.run_timer)

        total = sum(item.session_repeat_count for item in items)
        scheduled = len(self.active_session.schedule)
        self.log(f"Training started: {len(items)} commands, {scheduled}/{total} cues in {config.duration_seconds}s")
        if scheduled < total:
            self.log(f"{total - scheduled} cues did not fit in the session duration", level="warning")
        logger.debug(schedule_generator.describe_schedule(
            self.active_session.schedule, {item.item_id: item.name for item in items}
        ))

        return {
            'success': True,
            'message': f'Training started with {scheduled} cues',
            'scheduled_cues': scheduled,
            'duration_seconds': config.duration_seconds,
        }

    def pause_training(self) -> Dict[str, Any]:
        session = self.active_session
        if not session or session.phase is not SessionPhase.RUNNING:
            return {'success': False, 'error': 'No running training session', 'code': 409}
        session.pause()
        self.log(f"Training paused at {session.elapsed_seconds}s")
        return {'success': True, 'phase': session.phase.value}

    def resume_training(self) -> Dict[str, Any]:
        session = self.active_session
        if not session or session.phase is not SessionPhase.PAUSED:
            return {'success': False, 'error': 'Training session is not paused', 'code': 409}
        session.resume()
        self.log(f"Training resumed at {session.elapsed_seconds}s")
        return {'success': True, 'phase': session.phase.value}

    def end_training(self) -> Dict[str, Any]:
        """End the session now; ending twice is harmless"""
        session = self.active_session
        if session:
            session.end()
        return {'success': True, 'phase': session.phase.value if session else SessionPhase.IDLE.value}

    @property
    def is_active(self) -> bool:
        return self.active_session is not None and not self.active_session.is_finished

    # ==================== SESSION CALLBACKS ====================

    def _on_cue_play(self, item: TrainableItem) -> None:
        self.current_cue = {'command_id': item.item_id, 'name': item.name}
        self.current_cue_until = self.clock() + CUE_DISPLAY_SECS

        if not self.audio.play(item.audio_file):
            self.log(f"Playback failed for '{item.name}' ({item.audio_file})", level="warning")

        training_count = self.db.increment_training_count(item.item_id)
        self.log(f"🔊 Cue: {item.name} (total plays {training_count})")
        self._emit('cue_play', {
            'command_id': item.item_id,
            'name': item.name,
            'training_count': training_count,
            'elapsed_seconds': self.active_session.elapsed_seconds if self.active_session else 0,
        })

    def _on_tick(self, elapsed_seconds: int, phase: SessionPhase) -> None:
        self._emit('training_tick', {'elapsed_seconds': elapsed_seconds, 'phase': phase.value})

    def _on_completed(self) -> None:
        self.current_cue = None
        self.log("🎉 Training complete")
        self._emit('training_completed', self.get_current_state())

    def _on_terminated(self) -> None:
        self.current_cue = None
        self.log("Training session ended")
        self._emit('training_terminated', {'tally': self.active_session.completion_tally if self.active_session else {}})

    def _emit(self, event: str, payload: Dict[str, Any]) -> None:
        if self.socketio is None:
            return
        try:
            self.socketio.emit(event, payload, namespace='/training')
        except Exception as e:
            logger.error(f"Socket.IO emit {event} failed: {e}")

    # ==================== STATE ====================

    def get_current_state(self) -> Dict[str, Any]:
        """
        Current session state for UI updates.

        Returns:
            {'is_active': False} when no session has been started, otherwise
            the session snapshot plus:
            {
                'is_active': bool,
                'started_at': str,
                'current_cue': {'command_id', 'name'} or None,
                'commands': [{'command_id', 'name', 'planned', 'completed'}]
            }
        """
        session = self.active_session
        if session is None:
            return {'is_active': False}

        state = session.snapshot()
        cue = self.current_cue if self.clock() < self.current_cue_until else None
        if state['phase'] not in (SessionPhase.RUNNING.value, SessionPhase.PAUSED.value):
            cue = None

        tally = state['completion_tally']
        state.update({
            'is_active': self.is_active,
            'started_at': self.started_at,
            'current_cue': cue,
            'commands': [
                {
                    'command_id': item.item_id,
                    'name': item.name,
                    'planned': item.session_repeat_count,
                    'completed': tally.get(item.item_id, 0),
                }
                for item in self.session_items
            ],
        })
        return state

    def get_logs(self, limit: int = 100) -> List[Dict[str, Any]]:
        return list(self.logs)[-limit:]
