"""
Flask routes for command management
Commands, groups, presets, recordings and training settings
"""

import logging
import sqlite3

from flask import Blueprint, jsonify, request, send_from_directory

commands_bp = Blueprint('commands', __name__)
logger = logging.getLogger(__name__)

# Set by cue_trainer_web.create_app()
db = None
audio = None
settings_mgr = None


def set_services(db_manager, audio_manager, settings_manager):
    global db, audio, settings_mgr
    db = db_manager
    audio = audio_manager
    settings_mgr = settings_manager


def _not_found(what):
    return jsonify({'success': False, 'error': f'{what} not found'}), 404


# ==================== COMMANDS ====================

@commands_bp.route('/api/commands')
def list_commands():
    group_id = request.args.get('group_id')
    return jsonify({'success': True, 'commands': db.get_all_commands(group_id=group_id)})


@commands_bp.route('/api/commands', methods=['POST'])
def create_command():
    data = request.get_json() or {}
    try:
        command_id = db.create_command(
            name=data.get('name', ''),
            group_id=data.get('group_id') if data.get('group_id') not in ('', 'none') else None,
            session_count=data.get('session_count', 1)
        )
        return jsonify({'success': True, 'command': db.get_command(command_id)}), 201
    except (TypeError, ValueError, sqlite3.IntegrityError) as e:
        return jsonify({'success': False, 'error': str(e)}), 400


@commands_bp.route('/api/commands/<command_id>')
def get_command(command_id):
    command = db.get_command(command_id)
    if not command:
        return _not_found('Command')
    return jsonify({'success': True, 'command': command})


@commands_bp.route('/api/commands/<command_id>', methods=['PUT'])
def update_command(command_id):
    data = request.get_json() or {}
    try:
        if not db.update_command(command_id, name=data.get('name'), group_id=data.get('group_id')):
            if not db.get_command(command_id):
                return _not_found('Command')
        if 'session_count' in data:
            db.set_session_count(command_id, int(data['session_count']))
        return jsonify({'success': True, 'command': db.get_command(command_id)})
    except (TypeError, ValueError, sqlite3.IntegrityError) as e:
        return jsonify({'success': False, 'error': str(e)}), 400


@commands_bp.route('/api/commands/<command_id>', methods=['DELETE'])
def delete_command(command_id):
    command = db.delete_command(command_id)
    if not command:
        return _not_found('Command')
    if command.get('audio_file'):
        try:
            audio.delete_recording(command['audio_file'])
        except OSError as e:
            logger.error(f"Error deleting recording for {command_id}: {e}")
    return jsonify({'success': True})


@commands_bp.route('/api/commands/<command_id>/select', methods=['POST'])
def toggle_select(command_id):
    selected = db.toggle_selected(command_id)
    if selected is None:
        return _not_found('Command')
    return jsonify({'success': True, 'selected': selected})


@commands_bp.route('/api/commands/select-all', methods=['POST'])
def toggle_select_all():
    data = request.get_json(silent=True) or {}
    selected = db.toggle_select_all(group_id=data.get('group_id'))
    return jsonify({'success': True, 'selected': selected})


@commands_bp.route('/api/commands/batch-count', methods=['POST'])
def batch_session_count():
    data = request.get_json() or {}
    try:
        count = int(data.get('session_count', 1))
    except (TypeError, ValueError):
        return jsonify({'success': False, 'error': 'session_count must be an integer'}), 400
    updated = db.batch_set_session_count(count, group_id=data.get('group_id'))
    return jsonify({'success': True, 'updated': updated})


@commands_bp.route('/api/commands/reorder', methods=['POST'])
def reorder_commands():
    data = request.get_json() or {}
    db.reorder_commands(data.get('command_ids', []))
    return jsonify({'success': True})


# ==================== RECORDINGS ====================

@commands_bp.route('/api/commands/<command_id>/audio', methods=['POST'])
def upload_audio(command_id):
    command = db.get_command(command_id)
    if not command:
        return _not_found('Command')
    if 'audio' not in request.files:
        return jsonify({'success': False, 'error': 'No audio file provided'}), 400

    try:
        filename = audio.save_recording(command_id, request.files['audio'])
    except ValueError as e:
        return jsonify({'success': False, 'error': str(e)}), 400

    if command.get('audio_file') and command['audio_file'] != filename:
        try:
            audio.delete_recording(command['audio_file'])
        except OSError as e:
            logger.error(f"Error deleting old recording for {command_id}: {e}")
    db.set_command_audio(command_id, filename)
    return jsonify({'success': True, 'audio_file': filename})


@commands_bp.route('/api/commands/<command_id>/audio')
def get_audio(command_id):
    """Stream the recording back to the browser for preview"""
    command = db.get_command(command_id)
    if not command or not audio.clip_path(command.get('audio_file')):
        return _not_found('Recording')
    return send_from_directory(audio.settings.audio_dir, command['audio_file'])


@commands_bp.route('/api/commands/<command_id>/play', methods=['POST'])
def play_audio(command_id):
    """Preview the recording on the server speaker"""
    command = db.get_command(command_id)
    if not command:
        return _not_found('Command')
    return jsonify({'success': audio.play(command.get('audio_file'))})


# ==================== GROUPS ====================

@commands_bp.route('/api/groups')
def list_groups():
    return jsonify({'success': True, 'groups': db.get_all_groups()})


@commands_bp.route('/api/groups', methods=['POST'])
def create_group():
    data = request.get_json() or {}
    try:
        group_id = db.create_group(data.get('name', ''), data.get('color', 'blue'))
        return jsonify({'success': True, 'group_id': group_id}), 201
    except ValueError as e:
        return jsonify({'success': False, 'error': str(e)}), 400


@commands_bp.route('/api/groups/<group_id>', methods=['PUT'])
def rename_group(group_id):
    data = request.get_json() or {}
    try:
        if not db.rename_group(group_id, data.get('name', '')):
            return _not_found('Group')
        return jsonify({'success': True})
    except ValueError as e:
        return jsonify({'success': False, 'error': str(e)}), 400


@commands_bp.route('/api/groups/<group_id>', methods=['DELETE'])
def delete_group(group_id):
    if not db.delete_group(group_id):
        return _not_found('Group')
    return jsonify({'success': True})


@commands_bp.route('/api/groups/reorder', methods=['POST'])
def reorder_groups():
    data = request.get_json() or {}
    db.reorder_groups(data.get('group_ids', []))
    return jsonify({'success': True})


# ==================== PRESETS ====================

@commands_bp.route('/api/presets')
def list_presets():
    return jsonify({'success': True, 'presets': db.get_all_presets()})


@commands_bp.route('/api/presets', methods=['POST'])
def save_preset():
    data = request.get_json() or {}
    try:
        preset_id = db.save_preset(data.get('name', ''), data.get('description', ''))
        return jsonify({'success': True, 'preset': db.get_preset(preset_id)}), 201
    except ValueError as e:
        return jsonify({'success': False, 'error': str(e)}), 400


@commands_bp.route('/api/presets/<preset_id>/apply', methods=['POST'])
def apply_preset(preset_id):
    if not db.apply_preset(preset_id):
        return _not_found('Preset')
    return jsonify({'success': True, 'commands': db.get_all_commands()})


@commands_bp.route('/api/presets/<preset_id>', methods=['DELETE'])
def delete_preset(preset_id):
    if not db.delete_preset(preset_id):
        return _not_found('Preset')
    return jsonify({'success': True})


# ==================== SETTINGS ====================

@commands_bp.route('/api/settings/training')
def get_training_settings():
    config = settings_mgr.get_training_config()
    return jsonify({'success': True, 'settings': config.to_dict()})


@commands_bp.route('/api/settings/training', methods=['POST'])
def save_training_settings():
    data = request.get_json() or {}
    try:
        config = settings_mgr.save_training_settings(
            duration=data.get('duration'),
            min_break_time=data.get('min_break_time'),
            max_break_time=data.get('max_break_time')
        )
        return jsonify({'success': True, 'settings': config.to_dict()})
    except (TypeError, ValueError) as e:
        return jsonify({'success': False, 'error': str(e)}), 400


@commands_bp.route('/api/settings/training/reset', methods=['POST'])
def reset_training_settings():
    config = settings_mgr.reset_to_defaults()
    return jsonify({'success': True, 'settings': config.to_dict()})


@commands_bp.route('/api/audio-files')
def list_audio_files():
    return jsonify({'success': True, 'files': settings_mgr.get_audio_files()})
