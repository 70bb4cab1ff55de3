# db.py
"""
Persistence adapter. Every save is a full replace of the user's rows
(delete all, then insert) inside one transaction.
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime

from data_models import CourseTile, PlacedTile, SavedSchedule

logger = logging.getLogger(__name__)

SCHEMA = '''
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        email TEXT UNIQUE NOT NULL,
        password_hash TEXT NOT NULL
    );
    CREATE TABLE IF NOT EXISTS user_tiles (
        user_id INTEGER NOT NULL,
        position INTEGER NOT NULL,
        tile_id TEXT NOT NULL,
        course_name TEXT NOT NULL,
        section TEXT,
        teacher TEXT,
        start_time TEXT,
        end_time TEXT,
        duration INTEGER NOT NULL,
        color TEXT,
        split_from_id TEXT,
        original_duration INTEGER,
        subject_type TEXT,
        lab_type TEXT,
        is_asynchronous INTEGER DEFAULT 0,
        FOREIGN KEY (user_id) REFERENCES users(id)
    );
    CREATE TABLE IF NOT EXISTS placed_tiles (
        user_id INTEGER NOT NULL,
        position INTEGER NOT NULL,
        tile_id TEXT NOT NULL,
        course_name TEXT NOT NULL,
        section TEXT,
        teacher TEXT,
        start_time TEXT,
        end_time TEXT,
        duration INTEGER NOT NULL,
        color TEXT,
        split_from_id TEXT,
        original_duration INTEGER,
        subject_type TEXT,
        lab_type TEXT,
        is_asynchronous INTEGER DEFAULT 0,
        day TEXT NOT NULL,
        room TEXT NOT NULL,
        slot_index INTEGER NOT NULL,
        FOREIGN KEY (user_id) REFERENCES users(id)
    );
    CREATE TABLE IF NOT EXISTS user_rooms (
        user_id INTEGER PRIMARY KEY,
        rooms TEXT NOT NULL,
        FOREIGN KEY (user_id) REFERENCES users(id)
    );
    CREATE TABLE IF NOT EXISTS saved_schedules (
        user_id INTEGER NOT NULL,
        schedule_id TEXT NOT NULL,
        name TEXT NOT NULL,
        type TEXT NOT NULL,
        tiles TEXT NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY (user_id) REFERENCES users(id)
    );
'''

TILE_COLUMNS = ('tile_id', 'course_name', 'section', 'teacher', 'start_time', 'end_time',
                'duration', 'color', 'split_from_id', 'original_duration', 'subject_type',
                'lab_type', 'is_asynchronous')
PLACED_COLUMNS = TILE_COLUMNS + ('day', 'room', 'slot_index')


def connect(path):
    db = sqlite3.connect(path)
    db.row_factory = sqlite3.Row
    return db


def init_db(db):
    db.executescript(SCHEMA)
    db.commit()


def _tile_row(user_id, position, tile, columns):
    data = tile.to_dict()
    data['tile_id'] = data.pop('id')
    data['subject_type'] = tile.subject_type.value
    data['lab_type'] = tile.lab_type.value
    data['is_asynchronous'] = int(tile.is_asynchronous)
    return (user_id, position) + tuple(data[c] for c in columns)


def _row_tile(row, cls):
    data = dict(row)
    data['id'] = data.pop('tile_id')
    return cls.from_dict(data)


@contextmanager
def transaction(db, what, user_id):
    """Commit everything written inside the block, or roll all of it back."""
    try:
        yield db
        db.commit()
    except sqlite3.Error:
        db.rollback()
        logger.exception('Failed to save %s for user %s', what, user_id)
        raise


def _replace_rows(db, table, columns, user_id, rows):
    placeholders = ', '.join('?' * (len(columns) + 2))
    db.execute(f'DELETE FROM {table} WHERE user_id = ?', (user_id,))
    if rows:
        db.executemany(
            f'INSERT INTO {table} (user_id, position, {", ".join(columns)}) VALUES ({placeholders})',
            rows)


def _write_tiles(db, user_id, tiles):
    rows = [_tile_row(user_id, i, t, TILE_COLUMNS) for i, t in enumerate(tiles)]
    _replace_rows(db, 'user_tiles', TILE_COLUMNS, user_id, rows)


def _write_placed_tiles(db, user_id, tiles):
    rows = [_tile_row(user_id, i, t, PLACED_COLUMNS) for i, t in enumerate(tiles)]
    _replace_rows(db, 'placed_tiles', PLACED_COLUMNS, user_id, rows)


def _write_rooms(db, user_id, rooms):
    db.execute('INSERT OR REPLACE INTO user_rooms (user_id, rooms) VALUES (?, ?)',
               (user_id, json.dumps(list(rooms))))


# --- SIDEBAR TILES ---
def load_tiles(db, user_id):
    rows = db.execute('SELECT * FROM user_tiles WHERE user_id = ? ORDER BY position', (user_id,)).fetchall()
    return [_row_tile(r, CourseTile) for r in rows]


def save_tiles(db, user_id, tiles):
    with transaction(db, 'tiles', user_id):
        _write_tiles(db, user_id, tiles)


# --- PLACED TILES ---
def load_placed_tiles(db, user_id):
    rows = db.execute('SELECT * FROM placed_tiles WHERE user_id = ? ORDER BY position', (user_id,)).fetchall()
    return [_row_tile(r, PlacedTile) for r in rows]


def save_placed_tiles(db, user_id, tiles):
    with transaction(db, 'placed tiles', user_id):
        _write_placed_tiles(db, user_id, tiles)


# --- ROOMS ---
def load_rooms(db, user_id):
    row = db.execute('SELECT rooms FROM user_rooms WHERE user_id = ?', (user_id,)).fetchone()
    return json.loads(row['rooms']) if row else []


def save_rooms(db, user_id, rooms):
    with transaction(db, 'rooms', user_id):
        _write_rooms(db, user_id, rooms)


# --- WORKSPACE ---
def save_workspace(db, user_id, tiles, placed_tiles, rooms):
    """Sidebar, placements and rooms in one transaction."""
    with transaction(db, 'timetable', user_id):
        _write_tiles(db, user_id, tiles)
        _write_placed_tiles(db, user_id, placed_tiles)
        _write_rooms(db, user_id, rooms)


# --- SAVED SCHEDULES ---
def load_saved_schedules(db, user_id):
    rows = db.execute('SELECT * FROM saved_schedules WHERE user_id = ? ORDER BY created_at DESC',
                      (user_id,)).fetchall()
    return [SavedSchedule.from_dict({
        'id': r['schedule_id'],
        'name': r['name'],
        'type': r['type'],
        'tiles': json.loads(r['tiles']),
        'created_at': r['created_at'],
    }) for r in rows]


def save_saved_schedules(db, user_id, schedules):
    with transaction(db, 'schedules', user_id):
        db.execute('DELETE FROM saved_schedules WHERE user_id = ?', (user_id,))
        db.executemany(
            'INSERT INTO saved_schedules (user_id, schedule_id, name, type, tiles, created_at) VALUES (?, ?, ?, ?, ?, ?)',
            [(user_id, s.id, s.name, s.type.value, json.dumps([t.to_dict() for t in s.tiles]),
              (s.created_at or datetime.now()).isoformat()) for s in schedules])


def delete_saved_schedule(db, user_id, schedule_id):
    cur = db.execute('DELETE FROM saved_schedules WHERE user_id = ? AND schedule_id = ?', (user_id, schedule_id))
    db.commit()
    return cur.rowcount > 0
