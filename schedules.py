# schedules.py
import copy
from datetime import datetime

from data_models import SavedSchedule, ScheduleType, new_id, section_tokens

SECTION_SEPARATORS = r'[/,]+'


def _snapshot(name, schedule_type, tiles, created_at):
    return SavedSchedule(
        id=new_id(schedule_type.value),
        name=name,
        type=schedule_type,
        tiles=copy.deepcopy(tiles),
        created_at=created_at,
    )


def _unique(values):
    seen = []
    for value in values:
        if value and value.strip() and value not in seen:
            seen.append(value)
    return seen


def by_room(placed_tiles, rooms=None, created_at=None):
    """One schedule per registered room (empty ones included), then any unregistered room in use."""
    created_at = created_at or datetime.now()
    names = list(rooms or [])
    names += [r for r in _unique(t.room for t in placed_tiles) if r not in names]
    return [_snapshot(room, ScheduleType.ROOM, [t for t in placed_tiles if t.room == room], created_at)
            for room in names]


def by_teacher(placed_tiles, created_at=None):
    created_at = created_at or datetime.now()
    return [_snapshot(teacher, ScheduleType.TEACHER,
                      [t for t in placed_tiles if t.teacher == teacher], created_at)
            for teacher in _unique(t.teacher for t in placed_tiles)]


def by_section(placed_tiles, created_at=None):
    created_at = created_at or datetime.now()
    memberships = [(t, section_tokens(t.section, SECTION_SEPARATORS)) for t in placed_tiles]
    sections = _unique(s for _, tokens in memberships for s in tokens)
    return [_snapshot(section, ScheduleType.SECTION,
                      [t for t, tokens in memberships if section in tokens], created_at)
            for section in sections]


def schedule_grid(schedule, days, max_slots):
    """(day, slot) -> tiles covering that slot, for rendering a saved schedule."""
    grid = {(day, slot): [] for day in days for slot in range(max_slots)}
    for tile in schedule.tiles:
        for slot in range(tile.slot_index, min(tile.slot_index + tile.duration, max_slots)):
            if (tile.day, slot) in grid:
                grid[(tile.day, slot)].append(tile)
    return grid


def derive_all(placed_tiles, rooms=None):
    created_at = datetime.now()
    return (by_room(placed_tiles, rooms, created_at)
            + by_teacher(placed_tiles, created_at)
            + by_section(placed_tiles, created_at))
