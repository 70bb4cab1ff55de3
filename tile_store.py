# tile_store.py
import logging

from config import ASYNC_COLOR, SYNC_COLOR, BASE_TIME, SLOT_MINUTES
from data_models import CourseTile, LabType, SubjectType, new_id, section_tokens
from errors import ConsistencyError, ValidationError
from timegrid import duration_from_range, format_clock, parse_clock, slots_for_minutes

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ('course_name', 'section', 'teacher', 'start_time', 'end_time',
                   'subject_type', 'lab_type', 'is_asynchronous')


def tile_color(is_asynchronous):
    return ASYNC_COLOR if is_asynchronous else SYNC_COLOR


def _clean(value):
    return (value or '').strip()


def _choice(enum_cls, value):
    try:
        return enum_cls(value)
    except ValueError:
        choices = ', '.join(e.value for e in enum_cls)
        raise ValidationError(f'"{value}" is not one of: {choices}')


def build_tile(course_name, section='', teacher='', duration_hours=0, duration_minutes=0,
               subject_type=SubjectType.LECTURE, lab_type=LabType.COMPUTER,
               is_asynchronous=False, color=None, start_time=None, tile_id=None):
    """Validate input and return a new sidebar tile. Nothing is stored."""
    course_name = _clean(course_name)
    if not course_name:
        raise ValidationError('Course name is required')
    try:
        total_minutes = int(duration_hours or 0) * 60 + int(duration_minutes or 0)
    except (TypeError, ValueError):
        raise ValidationError('Duration must be a whole number of hours and minutes')
    duration = slots_for_minutes(total_minutes)
    if duration <= 0:
        raise ValidationError('Duration must be greater than 0')

    start_time = start_time or BASE_TIME
    start_minutes = parse_clock(start_time)
    return CourseTile(
        id=tile_id or new_id(),
        course_name=course_name,
        section=_clean(section),
        teacher=_clean(teacher),
        duration=duration,
        start_time=format_clock(start_minutes),
        end_time=format_clock(start_minutes + duration * SLOT_MINUTES),
        color=color or tile_color(is_asynchronous),
        subject_type=_choice(SubjectType, subject_type),
        lab_type=_choice(LabType, lab_type),
        is_asynchronous=bool(is_asynchronous),
    )


class TileStore:
    """Owns the sidebar tiles and the placed tiles of one timetable."""

    def __init__(self, available=None, placed=None):
        self.available = list(available or [])
        self.placed = list(placed or [])

    # --- LOOKUPS ---
    def get_available(self, tile_id):
        return next((t for t in self.available if t.id == tile_id), None)

    def get_placed(self, tile_id):
        return next((t for t in self.placed if t.id == tile_id), None)

    def find(self, tile_id):
        return self.get_placed(tile_id) or self.get_available(tile_id)

    def require(self, tile_id):
        tile = self.find(tile_id)
        if tile is None:
            raise ConsistencyError(f'Tile "{tile_id}" not found')
        return tile

    # --- SIDEBAR COMMANDS ---
    def create_tile(self, **tile_input):
        tile = build_tile(**tile_input)
        self.available.append(tile)
        logger.info('Created tile %s (%s)', tile.id, tile.course_name)
        return tile

    def add_tiles(self, tiles, replace=False):
        if replace:
            self.available = []
        self.available.extend(tiles)

    def edit_tile(self, tile_id, patch):
        """Edit a sidebar tile. Placed tiles go through the placement engine's resize flow."""
        tile = self.get_available(tile_id)
        if tile is None:
            if self.get_placed(tile_id) is not None:
                raise ConsistencyError('Placed tiles are edited through the resize flow')
            raise ConsistencyError(f'Tile "{tile_id}" not found')

        values = {k: patch[k] for k in EDITABLE_FIELDS if k in patch}
        if 'course_name' in values and not _clean(values['course_name']):
            raise ValidationError('Course name is required')

        start_time = values.get('start_time', tile.start_time)
        end_time = values.get('end_time', tile.end_time)
        duration = tile.duration
        if 'start_time' in values or 'end_time' in values:
            duration = duration_from_range(start_time, end_time)
            if duration <= 0:
                raise ValidationError('End time must be after start time')

        for key in ('course_name', 'section', 'teacher'):
            if key in values:
                setattr(tile, key, _clean(values[key]))
        if 'subject_type' in values:
            tile.subject_type = _choice(SubjectType, values['subject_type'])
        if 'lab_type' in values:
            tile.lab_type = _choice(LabType, values['lab_type'])
        if 'is_asynchronous' in values:
            tile.is_asynchronous = bool(values['is_asynchronous'])
        tile.start_time, tile.end_time = start_time, end_time
        tile.duration = duration
        tile.color = tile_color(tile.is_asynchronous)
        return tile

    def delete_tile(self, tile_id):
        tile = self.get_available(tile_id)
        if tile is None:
            raise ConsistencyError(f'Tile "{tile_id}" not found')
        self.available.remove(tile)
        return tile

    def delete_all_tiles(self):
        self.available = []

    # --- PLACED TILES ---
    def take_available(self, tile_id):
        tile = self.get_available(tile_id)
        if tile is not None:
            self.available.remove(tile)
        return tile

    def add_placed(self, placed_tile):
        self.placed.append(placed_tile)

    def remove_placed(self, tile_id):
        tile = self.get_placed(tile_id)
        if tile is None:
            raise ConsistencyError(f'Placed tile "{tile_id}" not found')
        self.placed.remove(tile)
        return tile

    def reinstate(self, placed_tile):
        """Return a removed placement to the sidebar, one tile per merged section."""
        tile = placed_tile.to_course_tile()
        sections = section_tokens(tile.section)
        if len(sections) <= 1:
            self.available.append(tile)
            return [tile]

        split_tiles = []
        for section in sections:
            data = tile.to_dict()
            data.update(id=new_id(tile.id + '-split'), section=section)
            split_tiles.append(CourseTile(**data))
        self.available.extend(split_tiles)
        logger.info('Split merged tile %s into %d sidebar tiles', tile.id, len(split_tiles))
        return split_tiles

    def split_remainders(self, tile_id):
        return [t for t in self.available if t.split_from_id == tile_id]

    def discard_split_remainders(self, tile_id):
        removed = self.split_remainders(tile_id)
        self.available = [t for t in self.available if t.split_from_id != tile_id]
        return removed

    # --- QUERIES ---
    def teachers(self):
        return sorted({t.teacher for t in self.available if t.teacher})

    def sections(self):
        return sorted({t.section for t in self.available if t.section})

    def filter_tiles(self, teacher=None, section=None):
        return [t for t in self.available
                if (not teacher or teacher == 'all' or t.teacher == teacher)
                and (not section or section == 'all' or t.section == section)]

    def tile_at(self, room, day, slot_index):
        return next((t for t in self.placed
                     if t.room == room and t.day == day
                     and t.slot_index <= slot_index < t.end_slot), None)
