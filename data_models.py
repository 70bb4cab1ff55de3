# data_models.py
import re
import uuid
from dataclasses import dataclass, field, asdict, fields
from datetime import datetime
from enum import Enum
from typing import List, Optional


class SubjectType(str, Enum):
    LECTURE = 'Lec'
    LABORATORY = 'Lab'


class LabType(str, Enum):
    KITCHEN = 'Kitchen Laboratory'
    COMPUTER = 'Computer Laboratory'


class ScheduleType(str, Enum):
    ROOM = 'room'
    TEACHER = 'teacher'
    SECTION = 'section'


class ConflictReason(str, Enum):
    OUT_OF_BOUNDS = 'out_of_bounds'
    SLOT_OCCUPIED = 'slot_occupied'
    TEACHER_CONFLICT = 'teacher_conflict'
    SECTION_CONFLICT = 'section_conflict'
    ROOM_TYPE_MISMATCH = 'room_type_mismatch'
    UNKNOWN_ROOM = 'unknown_room'
    UNKNOWN_DAY = 'unknown_day'

    @property
    def message(self):
        return REASON_MESSAGES[self]


REASON_MESSAGES = {
    ConflictReason.OUT_OF_BOUNDS: 'Not enough time slots for this course duration',
    ConflictReason.SLOT_OCCUPIED: 'This time slot is already occupied',
    ConflictReason.TEACHER_CONFLICT: 'Teacher already has a class at this time',
    ConflictReason.SECTION_CONFLICT: 'Section already has a class at this time',
    ConflictReason.ROOM_TYPE_MISMATCH: 'Room type does not match the course type',
    ConflictReason.UNKNOWN_ROOM: 'Room does not exist',
    ConflictReason.UNKNOWN_DAY: 'Day is not part of the week grid',
}


def new_id(prefix='tile'):
    return f'{prefix}-{uuid.uuid4().hex[:12]}'


def section_tokens(section, pattern=r'/'):
    """Split a composite section ('CS 101/ACT 101') into trimmed, non-empty tokens."""
    if not section:
        return []
    return [s.strip() for s in re.split(pattern, section) if s.strip()]


@dataclass
class CourseTile:
    id: str
    course_name: str
    section: str = ''
    teacher: str = ''
    duration: int = 1  # 30-minute slots
    start_time: str = ''
    end_time: str = ''
    color: str = ''
    subject_type: SubjectType = SubjectType.LECTURE
    lab_type: LabType = LabType.COMPUTER
    is_asynchronous: bool = False
    split_from_id: Optional[str] = None  # tile this remainder was split from
    original_duration: Optional[int] = None  # duration before the first resize

    def to_dict(self):
        return asdict(self)

    @classmethod
    def from_dict(cls, data):
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        if values.get('subject_type'):
            values['subject_type'] = SubjectType(values['subject_type'])
        else:
            values.pop('subject_type', None)
        if values.get('lab_type'):
            values['lab_type'] = LabType(values['lab_type'])
        else:
            values.pop('lab_type', None)
        values['is_asynchronous'] = bool(values.get('is_asynchronous') or False)
        return cls(**values)


@dataclass
class PlacedTile(CourseTile):
    day: str = ''
    room: str = ''
    slot_index: int = 0

    @property
    def end_slot(self):
        return self.slot_index + self.duration

    @classmethod
    def from_course_tile(cls, tile, day, room, slot_index):
        data = asdict(tile)
        data.update(day=day, room=room, slot_index=slot_index)
        return cls(**data)

    def to_course_tile(self):
        data = asdict(self)
        for key in ('day', 'room', 'slot_index'):
            data.pop(key)
        return CourseTile(**data)


@dataclass
class SavedSchedule:
    id: str
    name: str
    type: ScheduleType
    tiles: List[PlacedTile] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'type': self.type.value,
            'tiles': [t.to_dict() for t in self.tiles],
            'created_at': self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data):
        created_at = data.get('created_at')
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        return cls(
            id=data['id'],
            name=data['name'],
            type=ScheduleType(data['type']),
            tiles=[PlacedTile.from_dict(t) for t in data.get('tiles', [])],
            created_at=created_at or datetime.now(),
        )
