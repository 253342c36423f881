#!/usr/bin/env python3
"""
Cue Trainer – Flask Web Interface
---------------------------------
Responsibilities:
- Builds the Flask app, registers the command and training blueprints
- Wires DatabaseManager, AudioManager, SettingsManager and TrainingService
- Pushes live training events over Flask-SocketIO (namespace /training)

CLI:
  python cue_trainer_web.py --host 0.0.0.0 --port 5001 --debug 0
ENV:
  CUE_TRAINER_HOST, CUE_TRAINER_PORT, CUE_TRAINER_DEBUG, CUE_TRAINER_DB_PATH, CUE_TRAINER_AUDIO_DIR
"""

import argparse
import logging
import os
import time
from datetime import datetime
from typing import Callable, Optional

from flask import Flask, jsonify
from flask_socketio import SocketIO

from cue_trainer.ct_audio import AudioManager, AudioSettings
from cue_trainer.ct_config import AUDIO_DIR, DB_PATH, HOST, PORT
from cue_trainer.ct_version import VERSION
from cue_trainer.db_manager import DatabaseManager
from cue_trainer.settings_manager import SettingsManager
from routes import commands_bp as commands_routes
from routes import training_bp as training_routes
from services.training_service import TrainingService

logger = logging.getLogger(__name__)

# Track when this process started
START_TIME = datetime.utcnow().isoformat()


def create_app(db_path: Optional[str] = None, audio_dir: Optional[str] = None,
               run_timer: bool = True, audio: Optional[AudioManager] = None,
               clock: Callable[[], float] = time.monotonic, random_source=None):
    """
    Build the app and its services.

    Returns (app, socketio). Tests pass run_timer=False and drive the active
    session's tick() themselves.
    """
    app = Flask(__name__)
    app.config['SECRET_KEY'] = os.getenv('CUE_TRAINER_SECRET_KEY', 'cue-trainer-2025')

    socketio = SocketIO(app, async_mode='threading', cors_allowed_origins='*')

    db = DatabaseManager(db_path or DB_PATH)
    audio = audio or AudioManager(AudioSettings(audio_dir=audio_dir or AUDIO_DIR))
    settings_mgr = SettingsManager(db, audio_dir=audio.settings.audio_dir)
    training_service = TrainingService(db, audio, settings=settings_mgr, socketio=socketio, clock=clock,
                                       run_timer=run_timer, random_source=random_source)

    commands_routes.set_services(db, audio, settings_mgr)
    training_routes.set_training_service(training_service)
    app.register_blueprint(commands_routes.commands_bp)
    app.register_blueprint(training_routes.training_bp)
    socketio.on_namespace(training_routes.training_namespace)

    app.extensions['training_service'] = training_service
    app.extensions['cue_db'] = db

    @app.get("/health")
    def health():
        """Health check endpoint - shows version and service status"""
        return jsonify({
            'service': 'cue-trainer',
            'version': VERSION,
            'pid': os.getpid(),
            'started_at': START_TIME,
            'commands_loaded': len(db.get_all_commands()),
            'training_active': training_service.is_active,
            'status': 'healthy'
        })

    return app, socketio


def _parse_args() -> argparse.Namespace:
    """Parse CLI args with environment-based defaults."""
    parser = argparse.ArgumentParser(description="Cue Trainer - Web Interface")
    default_debug = bool(int(os.getenv("CUE_TRAINER_DEBUG", "0")))
    parser.add_argument("--host", default=HOST, help="Web host (default env CUE_TRAINER_HOST)")
    parser.add_argument("--port", type=int, default=PORT, help="Web port (default env CUE_TRAINER_PORT)")
    parser.add_argument("--debug", type=lambda v: bool(int(v)), default=default_debug, help="Flask debug (0/1)")
    return parser.parse_args()


def main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    app, socketio = create_app()
    logger.info(f"=== Cue Trainer {VERSION} ===")
    logger.info(f"Web: http://{args.host}:{args.port}  (debug={int(args.debug)})")

    try:
        # Important: use_reloader=False keeps a single session timer per process
        socketio.run(app, host=args.host, port=args.port, debug=args.debug,
                     use_reloader=False, allow_unsafe_werkzeug=True)
    except KeyboardInterrupt:
        pass
    finally:
        app.extensions['training_service'].end_training()
        logger.info("Cue Trainer shutdown complete.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
