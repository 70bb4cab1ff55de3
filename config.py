"""
Configuration for the timetable builder.
Constants live here; an optional config.json can override a few of them.
"""

import json
import os
from datetime import timedelta

CONFIG_FILE = os.environ.get('TIMETABLE_CONFIG', 'config.json')


def load_config(path=CONFIG_FILE):
    try:
        with open(path, 'r') as f:
            return json.load(f)
    except FileNotFoundError:
        return {}


_overrides = load_config()

# --- STORAGE / SESSION ---
DB_PATH = _overrides.get('db_path', 'timetable.db')
SECRET_KEY = _overrides.get('secret_key', 'change-me-timetable-secret')
SESSION_LIFETIME = timedelta(days=30)

# --- TIME GRID ---
DAYS = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday']
BASE_TIME = '08:00'
SLOT_MINUTES = 30
# Occupancy bound: 8:00 AM to 10:00 PM
MAX_SLOTS = _overrides.get('max_slots', 28)
# Grid header labels: 8:00 AM to 8:00 PM
TIME_LABELS = _overrides.get('time_labels', [
    "8:00 AM", "8:30 AM", "9:00 AM", "9:30 AM", "10:00 AM", "10:30 AM",
    "11:00 AM", "11:30 AM", "12:00 PM", "12:30 PM", "1:00 PM", "1:30 PM",
    "2:00 PM", "2:30 PM", "3:00 PM", "3:30 PM", "4:00 PM", "4:30 PM",
    "5:00 PM", "5:30 PM", "6:00 PM", "6:30 PM", "7:00 PM", "7:30 PM", "8:00 PM"
])

# --- ROOMS ---
DEFAULT_ROOMS = _overrides.get('default_rooms', [
    "101", "102", "103", "104", "105", "201", "CHEM", "PHYSICS", "KITCHEN", "CL1", "CL2"
])

# --- TILE COLORS ---
SYNC_COLOR = '#10b981'   # green
ASYNC_COLOR = '#f59e0b'  # orange
