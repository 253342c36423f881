#!/usr/bin/env python3
"""
Training Blueprint - Flask routes and Socket.IO namespace for live sessions
"""

import logging

from flask import Blueprint, jsonify, request
from flask_socketio import Namespace, emit

logger = logging.getLogger(__name__)

training_bp = Blueprint('training', __name__, url_prefix='/api/training')

# TrainingService instance is set by cue_trainer_web.create_app()
training_service = None


def set_training_service(service):
    """Set the TrainingService used by the routes and namespace"""
    global training_service
    training_service = service


def _respond(result):
    if result.get('success'):
        return jsonify(result)
    code = result.pop('code', 400)
    return jsonify(result), code


# ==================== API ROUTES ====================

@training_bp.route('/start', methods=['POST'])
def api_start():
    """Start a training session from the selected commands"""
    try:
        return _respond(training_service.start_training())
    except Exception as e:
        logger.error(f"Error starting training: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@training_bp.route('/pause', methods=['POST'])
def api_pause():
    return _respond(training_service.pause_training())


@training_bp.route('/resume', methods=['POST'])
def api_resume():
    return _respond(training_service.resume_training())


@training_bp.route('/toggle-pause', methods=['POST'])
def api_toggle_pause():
    """Pause if running, resume if paused (single button in the UI)"""
    state = training_service.get_current_state()
    if state.get('phase') == 'paused':
        return _respond(training_service.resume_training())
    return _respond(training_service.pause_training())


@training_bp.route('/end', methods=['POST'])
def api_end():
    return _respond(training_service.end_training())


@training_bp.route('/status')
def api_status():
    """Current training state"""
    return jsonify(training_service.get_current_state())


@training_bp.route('/logs')
def api_logs():
    limit = request.args.get('limit', 100, type=int)
    return jsonify({'success': True, 'logs': training_service.get_logs(limit)})


# ==================== SOCKET.IO ====================

class TrainingNamespace(Namespace):
    """
    WebSocket namespace for live training updates.

    Server events: cue_play, training_tick, training_completed, training_terminated
    Client events: pause, resume, end
    """

    def on_connect(self):
        logger.info(f"Client connected to training namespace: {request.sid}")
        emit('training_state', training_service.get_current_state())

    def on_disconnect(self):
        logger.info(f"Client disconnected from training namespace: {request.sid}")

    def on_pause(self, data=None):
        emit('training_state', {**training_service.pause_training(), **training_service.get_current_state()})

    def on_resume(self, data=None):
        emit('training_state', {**training_service.resume_training(), **training_service.get_current_state()})

    def on_end(self, data=None):
        training_service.end_training()
        emit('training_state', training_service.get_current_state())


training_namespace = TrainingNamespace('/training')
