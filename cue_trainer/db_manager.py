#!/usr/bin/env python3
"""
Database Manager for Cue Trainer
Handles all CRUD operations for commands, groups, presets and settings
"""

import json
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional

from .ct_config import DB_PATH
from .ct_models import TrainableItem

GROUP_COLORS = ('blue', 'green', 'red', 'yellow', 'purple', 'orange', 'pink', 'gray')


class DatabaseManager:
    """Thread-safe database manager for Cue Trainer"""

    def __init__(self, db_path: str = DB_PATH):
        self.db_path = db_path
        self._init_database()

    @contextmanager
    def get_connection(self):
        """Context manager for database connections"""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row  # Enable dict-like access
        conn.execute('PRAGMA foreign_keys = ON')
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_database(self):
        """Create all tables if they don't exist"""
        with self.get_connection() as conn:
            cursor = conn.cursor()

            # Groups table
            cursor.execute('''
                CREATE TABLE IF NOT EXISTS command_groups (
                    group_id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    color TEXT DEFAULT 'blue',
                    sort_order INTEGER DEFAULT 0,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            ''')

            # Commands table
            cursor.execute('''
                CREATE TABLE IF NOT EXISTS commands (
                    command_id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    audio_file TEXT,
                    training_count INTEGER DEFAULT 0,
                    session_count INTEGER DEFAULT 1,
                    sort_order INTEGER DEFAULT 0,
                    group_id TEXT,
                    selected BOOLEAN DEFAULT 0,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY (group_id) REFERENCES command_groups(group_id) ON DELETE SET NULL
                )
            ''')
            cursor.execute('CREATE INDEX IF NOT EXISTS idx_commands_group ON commands(group_id)')

            # Presets table
            cursor.execute('''
                CREATE TABLE IF NOT EXISTS presets (
                    preset_id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    description TEXT,
                    session_counts TEXT NOT NULL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            ''')

            # Settings table
            cursor.execute('''
                CREATE TABLE IF NOT EXISTS settings (
                    setting_key TEXT PRIMARY KEY,
                    setting_value TEXT,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            ''')

    # ==================== COMMANDS ====================

    @staticmethod
    def _command_dict(row) -> Dict[str, Any]:
        command = dict(row)
        command['selected'] = bool(command['selected'])
        command['has_audio'] = bool(command['audio_file'])
        return command

    def create_command(self, name: str, group_id: Optional[str] = None,
                       session_count: int = 1) -> str:
        """Create command at the end of the list, return command_id"""
        name = (name or '').strip()
        if not name:
            raise ValueError("Command name is required")

        command_id = str(uuid.uuid4())
        with self.get_connection() as conn:
            row = conn.execute('SELECT COALESCE(MAX(sort_order) + 1, 0) FROM commands').fetchone()
            conn.execute('''
                INSERT INTO commands (command_id, name, session_count, sort_order, group_id)
                VALUES (?, ?, ?, ?, ?)
            ''', (command_id, name, max(0, int(session_count)), row[0], group_id or None))
        return command_id

    def get_command(self, command_id: str) -> Optional[Dict]:
        with self.get_connection() as conn:
            row = conn.execute('SELECT * FROM commands WHERE command_id = ?', (command_id,)).fetchone()
            return self._command_dict(row) if row else None

    def get_all_commands(self, group_id: Optional[str] = None) -> List[Dict]:
        """All commands ordered for display; optionally restricted to one group"""
        with self.get_connection() as conn:
            if group_id:
                rows = conn.execute(
                    'SELECT * FROM commands WHERE group_id = ? ORDER BY sort_order, created_at', (group_id,)
                ).fetchall()
            else:
                rows = conn.execute('SELECT * FROM commands ORDER BY sort_order, created_at').fetchall()
            return [self._command_dict(row) for row in rows]

    def update_command(self, command_id: str, name: Optional[str] = None,
                       group_id: Optional[str] = None) -> bool:
        """Rename and/or regroup. group_id '' or 'none' means ungrouped."""
        updates, params = [], []
        if name is not None:
            if not name.strip():
                raise ValueError("Command name is required")
            updates.append('name = ?')
            params.append(name.strip())
        if group_id is not None:
            updates.append('group_id = ?')
            params.append(None if group_id in ('', 'none') else group_id)
        if not updates:
            return False

        updates.append('updated_at = ?')
        params.extend([datetime.utcnow().isoformat(), command_id])
        with self.get_connection() as conn:
            cursor = conn.execute(f'UPDATE commands SET {", ".join(updates)} WHERE command_id = ?', params)
            return cursor.rowcount > 0

    def delete_command(self, command_id: str) -> Optional[Dict]:
        """Delete command, returning the deleted row (so callers can remove its audio)"""
        command = self.get_command(command_id)
        if command:
            with self.get_connection() as conn:
                conn.execute('DELETE FROM commands WHERE command_id = ?', (command_id,))
        return command

    def set_command_audio(self, command_id: str, audio_file: Optional[str]) -> bool:
        with self.get_connection() as conn:
            cursor = conn.execute(
                'UPDATE commands SET audio_file = ?, updated_at = ? WHERE command_id = ?',
                (audio_file, datetime.utcnow().isoformat(), command_id)
            )
            return cursor.rowcount > 0

    def set_session_count(self, command_id: str, count: int) -> bool:
        with self.get_connection() as conn:
            cursor = conn.execute(
                'UPDATE commands SET session_count = ? WHERE command_id = ?',
                (max(0, int(count)), command_id)
            )
            return cursor.rowcount > 0

    def batch_set_session_count(self, count: int, group_id: Optional[str] = None) -> int:
        """
        Set session_count on every selected command, or on every command of a
        group when group_id is given ('none' = ungrouped). Returns rows changed.
        """
        count = max(0, int(count))
        with self.get_connection() as conn:
            if group_id is None:
                cursor = conn.execute('UPDATE commands SET session_count = ? WHERE selected = 1', (count,))
            elif group_id in ('', 'none'):
                cursor = conn.execute('UPDATE commands SET session_count = ? WHERE group_id IS NULL', (count,))
            else:
                cursor = conn.execute('UPDATE commands SET session_count = ? WHERE group_id = ?', (count, group_id))
            return cursor.rowcount

    def toggle_selected(self, command_id: str) -> Optional[bool]:
        """Flip selection, return the new value (None if command missing)"""
        with self.get_connection() as conn:
            conn.execute('UPDATE commands SET selected = NOT selected WHERE command_id = ?', (command_id,))
            row = conn.execute('SELECT selected FROM commands WHERE command_id = ?', (command_id,)).fetchone()
            return bool(row[0]) if row else None

    def toggle_select_all(self, group_id: Optional[str] = None) -> bool:
        """
        If every command in scope is selected, deselect them all; otherwise
        select them all. Scope is all commands, or one group ('none' = ungrouped).
        Returns the new selection value.
        """
        if group_id is None:
            where, params = '', ()
        elif group_id in ('', 'none'):
            where, params = ' WHERE group_id IS NULL', ()
        else:
            where, params = ' WHERE group_id = ?', (group_id,)

        with self.get_connection() as conn:
            rows = conn.execute(f'SELECT selected FROM commands{where}', params).fetchall()
            new_value = not all(row[0] for row in rows)
            conn.execute(f'UPDATE commands SET selected = ?{where}', (int(new_value),) + params)
            return new_value

    def reorder_commands(self, command_ids: List[str]) -> None:
        """Persist a new display order (list of command_ids, first = top)"""
        with self.get_connection() as conn:
            for position, command_id in enumerate(command_ids):
                conn.execute('UPDATE commands SET sort_order = ? WHERE command_id = ?', (position, command_id))

    def increment_training_count(self, command_id: str, amount: int = 1) -> int:
        """Bump the historical play counter, return the new value (0 if missing)"""
        with self.get_connection() as conn:
            conn.execute(
                'UPDATE commands SET training_count = training_count + ? WHERE command_id = ?',
                (amount, command_id)
            )
            row = conn.execute('SELECT training_count FROM commands WHERE command_id = ?', (command_id,)).fetchone()
            return row[0] if row else 0

    def get_trainable_items(self) -> List[TrainableItem]:
        """Selected commands with a positive session_count and recorded audio"""
        with self.get_connection() as conn:
            rows = conn.execute('''
                SELECT command_id, name, session_count, audio_file FROM commands
                WHERE selected = 1 AND session_count > 0
                  AND audio_file IS NOT NULL AND audio_file != ''
                ORDER BY sort_order
            ''').fetchall()
        return [
            TrainableItem(
                item_id=row['command_id'],
                name=row['name'],
                session_repeat_count=row['session_count'],
                audio_file=row['audio_file'],
            )
            for row in rows
        ]

    def missing_audio_commands(self) -> List[Dict]:
        """Selected commands that would play but have no recording yet"""
        with self.get_connection() as conn:
            rows = conn.execute('''
                SELECT * FROM commands
                WHERE selected = 1 AND session_count > 0
                  AND (audio_file IS NULL OR audio_file = '')
                ORDER BY sort_order
            ''').fetchall()
            return [self._command_dict(row) for row in rows]

    # ==================== GROUPS ====================

    def create_group(self, name: str, color: str = 'blue') -> str:
        name = (name or '').strip()
        if not name:
            raise ValueError("Group name is required")
        if color not in GROUP_COLORS:
            color = 'blue'

        group_id = str(uuid.uuid4())
        with self.get_connection() as conn:
            row = conn.execute('SELECT COALESCE(MAX(sort_order) + 1, 0) FROM command_groups').fetchone()
            conn.execute(
                'INSERT INTO command_groups (group_id, name, color, sort_order) VALUES (?, ?, ?, ?)',
                (group_id, name, color, row[0])
            )
        return group_id

    def get_all_groups(self) -> List[Dict]:
        with self.get_connection() as conn:
            rows = conn.execute('SELECT * FROM command_groups ORDER BY sort_order, created_at').fetchall()
            return [dict(row) for row in rows]

    def rename_group(self, group_id: str, name: str) -> bool:
        if not (name or '').strip():
            raise ValueError("Group name is required")
        with self.get_connection() as conn:
            cursor = conn.execute('UPDATE command_groups SET name = ? WHERE group_id = ?', (name.strip(), group_id))
            return cursor.rowcount > 0

    def delete_group(self, group_id: str) -> bool:
        """Delete group; its commands become ungrouped"""
        with self.get_connection() as conn:
            conn.execute('UPDATE commands SET group_id = NULL WHERE group_id = ?', (group_id,))
            cursor = conn.execute('DELETE FROM command_groups WHERE group_id = ?', (group_id,))
            return cursor.rowcount > 0

    def reorder_groups(self, group_ids: List[str]) -> None:
        with self.get_connection() as conn:
            for position, group_id in enumerate(group_ids):
                conn.execute('UPDATE command_groups SET sort_order = ? WHERE group_id = ?', (position, group_id))

    # ==================== PRESETS ====================

    def save_preset(self, name: str, description: str = '') -> str:
        """Snapshot every command's current session_count under a name"""
        name = (name or '').strip()
        if not name:
            raise ValueError("Preset name is required")

        counts = {c['command_id']: c['session_count'] for c in self.get_all_commands()}
        preset_id = str(uuid.uuid4())
        with self.get_connection() as conn:
            conn.execute('''
                INSERT INTO presets (preset_id, name, description, session_counts, created_at)
                VALUES (?, ?, ?, ?, ?)
            ''', (preset_id, name, (description or '').strip(), json.dumps(counts), datetime.utcnow().isoformat()))
        return preset_id

    def get_preset(self, preset_id: str) -> Optional[Dict]:
        with self.get_connection() as conn:
            row = conn.execute('SELECT * FROM presets WHERE preset_id = ?', (preset_id,)).fetchone()
        if not row:
            return None
        preset = dict(row)
        preset['session_counts'] = json.loads(preset['session_counts'])
        return preset

    def get_all_presets(self) -> List[Dict]:
        with self.get_connection() as conn:
            rows = conn.execute('SELECT * FROM presets ORDER BY created_at').fetchall()
        presets = []
        for row in rows:
            preset = dict(row)
            preset['session_counts'] = json.loads(preset['session_counts'])
            presets.append(preset)
        return presets

    def apply_preset(self, preset_id: str) -> bool:
        """Copy the preset's counts onto commands; commands it doesn't know keep theirs"""
        preset = self.get_preset(preset_id)
        if not preset:
            return False
        with self.get_connection() as conn:
            for command_id, count in preset['session_counts'].items():
                conn.execute(
                    'UPDATE commands SET session_count = ? WHERE command_id = ?',
                    (max(0, int(count)), command_id)
                )
        return True

    def delete_preset(self, preset_id: str) -> bool:
        with self.get_connection() as conn:
            cursor = conn.execute('DELETE FROM presets WHERE preset_id = ?', (preset_id,))
            return cursor.rowcount > 0
