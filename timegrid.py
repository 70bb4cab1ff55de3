# timegrid.py
"""
Slot arithmetic for the 30-minute grid.

Slot i covers [BASE_TIME + i*30min, BASE_TIME + (i+1)*30min). Two bounds are
kept apart: TIME_LABELS is the header window shown on the grid, MAX_SLOTS is
how far a placed tile may extend.
"""

import math

from config import BASE_TIME, SLOT_MINUTES, MAX_SLOTS, TIME_LABELS
from errors import ValidationError


def parse_clock(value):
    """'HH:MM' -> minutes after midnight."""
    try:
        hours, minutes = value.strip().split(':')
        hours, minutes = int(hours), int(minutes)
    except (AttributeError, ValueError):
        raise ValidationError(f'Invalid time "{value}", expected HH:MM')
    if not (0 <= minutes < 60 and (0 <= hours < 24 or (hours == 24 and minutes == 0))):
        raise ValidationError(f'Invalid time "{value}", expected HH:MM')
    return hours * 60 + minutes


def format_clock(total_minutes):
    return f'{total_minutes // 60:02d}:{total_minutes % 60:02d}'


BASE_MINUTES = parse_clock(BASE_TIME)


def slots_for_minutes(total_minutes):
    return math.ceil(total_minutes / SLOT_MINUTES)


def duration_from_range(start_time, end_time):
    # Callers reject results <= 0
    return slots_for_minutes(parse_clock(end_time) - parse_clock(start_time))


def slot_start_time(slot_index):
    return format_clock(BASE_MINUTES + slot_index * SLOT_MINUTES)


def slot_end_time(slot_index, duration):
    return format_clock(BASE_MINUTES + (slot_index + duration) * SLOT_MINUTES)


def slot_to_clock_time(slot_index):
    if not 0 <= slot_index < len(TIME_LABELS):
        raise ValidationError(f'Slot {slot_index} is outside the displayed time window')
    return TIME_LABELS[slot_index]


def slot_label(slot_index):
    """Header label for any slot, including the evening slots past the displayed window."""
    if 0 <= slot_index < len(TIME_LABELS):
        return TIME_LABELS[slot_index]
    hours, minutes = divmod(BASE_MINUTES + slot_index * SLOT_MINUTES, 60)
    suffix = 'AM' if hours % 24 < 12 else 'PM'
    return f'{(hours - 1) % 12 + 1}:{minutes:02d} {suffix}'


def format_duration(duration_slots):
    total_minutes = duration_slots * SLOT_MINUTES
    hours, minutes = divmod(total_minutes, 60)
    if hours == 0:
        return f'{minutes}mins'
    if minutes == 0:
        return '1hr' if hours == 1 else f'{hours}hrs'
    return f'{hours}hr and {minutes}mins'


def in_bounds(slot_index, duration, max_slots=MAX_SLOTS):
    return slot_index >= 0 and slot_index + duration <= max_slots


def overlaps(start_a, duration_a, start_b, duration_b):
    """Half-open interval overlap; ranges that only touch do not overlap."""
    return start_a < start_b + duration_b and start_b < start_a + duration_a
