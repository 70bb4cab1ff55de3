# placement.py
"""
Placement engine: decides whether a tile may occupy (room, day, slot range)
and carries out placements, merges, resizes and removals on a TileStore.

can_place and the propose_* functions never mutate anything. place,
confirm_merge, apply_resize and remove_tile are the commands.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import List, Optional

from config import DAYS, MAX_SLOTS, SLOT_MINUTES
from data_models import (ConflictReason, CourseTile, PlacedTile, SubjectType, LabType,
                         new_id, section_tokens)
from errors import ConflictError, ConsistencyError, ValidationError
from rooms import is_computer_lab_room, is_kitchen_lab_room
from tile_store import tile_color
from timegrid import (duration_from_range, format_clock, in_bounds, overlaps, parse_clock,
                      slot_end_time, slot_start_time)

logger = logging.getLogger(__name__)

LAB_MARKER = '(lab)'
RESIZE_FIELDS = ('course_name', 'section', 'teacher', 'subject_type', 'lab_type', 'is_asynchronous')


@dataclass
class MergeProposal:
    new_tile_id: str
    existing_tile_id: str
    room: str
    day: str
    slot_index: int
    merged_section: str
    from_grid: bool = False  # new tile was already placed (a move) when proposed

    def to_dict(self):
        return dict(self.__dict__)

    @classmethod
    def from_dict(cls, data):
        return cls(**data)


@dataclass
class PlacementResult:
    ok: bool
    reason: Optional[ConflictReason] = None
    merge_with: Optional[str] = None  # id of a same course/teacher tile in the way
    proposal: Optional[MergeProposal] = None
    tile: Optional[PlacedTile] = None

    @property
    def message(self):
        return self.reason.message if self.reason else ''

    @property
    def merge_required(self):
        return self.proposal is not None


@dataclass
class ResizeProposal:
    tile_id: str
    branch: str  # 'shrink', 'restore' or 'grow'
    current_duration: int
    new_duration: int
    original_duration: int
    changes: dict = field(default_factory=dict)
    remainder: Optional[CourseTile] = None
    discard_ids: List[str] = field(default_factory=list)

    def to_dict(self):
        data = dict(self.__dict__)
        data['remainder'] = self.remainder.to_dict() if self.remainder else None
        return data

    @classmethod
    def from_dict(cls, data):
        data = dict(data)
        if data.get('remainder'):
            data['remainder'] = CourseTile.from_dict(data['remainder'])
        return cls(**data)


def is_lab_tile(tile):
    return tile.subject_type == SubjectType.LABORATORY or LAB_MARKER in tile.course_name.lower()


def room_accepts(room, tile):
    computer_room = is_computer_lab_room(room)
    kitchen_room = is_kitchen_lab_room(room)
    if not is_lab_tile(tile):
        return not (computer_room or kitchen_room)
    if tile.lab_type == LabType.COMPUTER:
        return computer_room
    if tile.lab_type == LabType.KITCHEN:
        return kitchen_room
    return True


def merge_sections(*sections):
    """Order-preserving, de-duplicated '/'-join of every section token."""
    merged = []
    for section in sections:
        for token in section_tokens(section):
            if token not in merged:
                merged.append(token)
    return '/'.join(merged)


class PlacementEngine:

    def __init__(self, store, rooms, days=None, max_slots=MAX_SLOTS):
        self.store = store
        self.rooms = rooms
        self.days = list(days or DAYS)
        self.max_slots = max_slots

    # --- DECISIONS ---
    def _double_booked(self, room, day, slot_index, tile, attr):
        value = getattr(tile, attr)
        if not value or not value.strip():
            return False
        for t in self.store.placed:
            if t.id == tile.id or t.day != day or t.room == room:
                continue
            other = getattr(t, attr)
            if not other or not other.strip() or other != value:
                continue
            if overlaps(slot_index, tile.duration, t.slot_index, t.duration):
                return True
        return False

    def can_place(self, room, day, slot_index, tile):
        if day not in self.days:
            return PlacementResult(False, ConflictReason.UNKNOWN_DAY)
        if room not in self.rooms:
            return PlacementResult(False, ConflictReason.UNKNOWN_ROOM)
        if not in_bounds(slot_index, tile.duration, self.max_slots):
            return PlacementResult(False, ConflictReason.OUT_OF_BOUNDS)

        in_the_way = [t for t in self.store.placed
                      if t.id != tile.id and t.room == room and t.day == day
                      and overlaps(slot_index, tile.duration, t.slot_index, t.duration)]
        merge_with = None
        for t in in_the_way:
            if (t.course_name, t.teacher) != (tile.course_name, tile.teacher):
                return PlacementResult(False, ConflictReason.SLOT_OCCUPIED)
            merge_with = merge_with or t.id

        if self._double_booked(room, day, slot_index, tile, 'teacher'):
            return PlacementResult(False, ConflictReason.TEACHER_CONFLICT)
        if self._double_booked(room, day, slot_index, tile, 'section'):
            return PlacementResult(False, ConflictReason.SECTION_CONFLICT)
        if not room_accepts(room, tile):
            return PlacementResult(False, ConflictReason.ROOM_TYPE_MISMATCH)
        return PlacementResult(True, merge_with=merge_with)

    # --- PLACEMENT ---
    def place(self, room, day, slot_index, tile_id):
        tile = self.store.require(tile_id)
        result = self.can_place(room, day, slot_index, tile)
        if not result.ok:
            logger.debug('Rejected %s at %s/%s/%s: %s', tile_id, room, day, slot_index, result.reason.value)
            return result

        if result.merge_with:
            existing = self.store.get_placed(result.merge_with)
            proposal = self.propose_merge(tile, existing, room, day, slot_index)
            return replace(result, proposal=proposal)

        placed = self.store.get_placed(tile.id)
        if placed is not None:
            placed.room, placed.day, placed.slot_index = room, day, slot_index
            logger.info('Moved %s to %s %s slot %d', tile.id, room, day, slot_index)
        else:
            self.store.take_available(tile.id)
            placed = PlacedTile.from_course_tile(tile, day, room, slot_index)
            self.store.add_placed(placed)
            logger.info('Placed %s in %s %s slot %d', tile.id, room, day, slot_index)
        placed.start_time = slot_start_time(slot_index)
        placed.end_time = slot_end_time(slot_index, placed.duration)
        return replace(result, tile=placed)

    # --- MERGE FLOW ---
    def propose_merge(self, new_tile, existing_tile, room=None, day=None, slot_index=None):
        return MergeProposal(
            new_tile_id=new_tile.id,
            existing_tile_id=existing_tile.id,
            room=room if room is not None else existing_tile.room,
            day=day if day is not None else existing_tile.day,
            slot_index=slot_index if slot_index is not None else existing_tile.slot_index,
            merged_section=merge_sections(existing_tile.section, new_tile.section),
            from_grid=self.store.get_placed(new_tile.id) is not None,
        )

    def confirm_merge(self, proposal):
        existing = self.store.get_placed(proposal.existing_tile_id)
        new_tile = self.store.find(proposal.new_tile_id)
        if existing is None or new_tile is None:
            raise ConsistencyError('Merge is no longer possible, the tiles have changed')
        if (self.store.get_placed(new_tile.id) is not None) != proposal.from_grid:
            raise ConsistencyError('Merge is no longer possible, the tile was moved')
        result = self.can_place(proposal.room, proposal.day, proposal.slot_index, new_tile)
        if not result.ok or result.merge_with != existing.id:
            raise ConsistencyError('Merge is no longer possible, the grid has changed')

        existing.section = proposal.merged_section
        if self.store.take_available(new_tile.id) is None:
            # Dragged from the grid: the moved placement is absorbed
            self.store.remove_placed(new_tile.id)
        logger.info('Merged %s into %s (%s)', proposal.new_tile_id, existing.id, existing.section)
        return existing

    def cancel_merge(self, proposal):
        return PlacementResult(False, ConflictReason.SLOT_OCCUPIED)

    # --- RESIZE FLOW ---
    def propose_resize(self, tile_id, patch):
        tile = self.store.get_placed(tile_id)
        if tile is None:
            raise ConsistencyError(f'Placed tile "{tile_id}" not found')

        changes = {}
        for key in RESIZE_FIELDS:
            if key in patch:
                changes[key] = patch[key]
        for key in ('course_name', 'section', 'teacher'):
            if key in changes:
                changes[key] = (changes[key] or '').strip()
        if 'course_name' in changes and not changes['course_name']:
            raise ValidationError('Course name is required')
        try:
            if 'subject_type' in changes:
                changes['subject_type'] = SubjectType(changes['subject_type']).value
            if 'lab_type' in changes:
                changes['lab_type'] = LabType(changes['lab_type']).value
        except ValueError as e:
            raise ValidationError(str(e))
        if 'is_asynchronous' in changes:
            changes['is_asynchronous'] = bool(changes['is_asynchronous'])

        start_time = patch.get('start_time') or slot_start_time(tile.slot_index)
        end_time = patch.get('end_time') or slot_end_time(tile.slot_index, tile.duration)
        new_duration = duration_from_range(start_time, end_time)
        if new_duration <= 0:
            raise ValidationError('End time must be after start time')

        current = tile.duration
        original = tile.original_duration or current
        edited = self._edited(tile, changes, new_duration)
        self._require_fit(tile, edited)

        proposal = ResizeProposal(tile_id, 'grow', current, new_duration, original, changes)
        if new_duration < current:
            proposal.branch = 'shrink'
            remaining = current - new_duration
            remainder_start = parse_clock(end_time)
            proposal.remainder = replace(
                edited.to_course_tile(),
                id=new_id(),
                start_time=format_clock(remainder_start),
                end_time=format_clock(remainder_start + remaining * SLOT_MINUTES),
                duration=remaining,
                split_from_id=tile.id,
                original_duration=None,
            )
        elif new_duration >= original:
            proposal.branch = 'restore'
            proposal.discard_ids = [t.id for t in self.store.split_remainders(tile.id)]
        return proposal

    def _require_fit(self, tile, edited):
        result = self.can_place(tile.room, tile.day, tile.slot_index, edited)
        if not result.ok:
            raise ConflictError(result.reason)
        if result.merge_with:
            raise ConflictError(ConflictReason.SLOT_OCCUPIED)

    def _edited(self, tile, changes, duration):
        values = dict(changes)
        if 'subject_type' in values:
            values['subject_type'] = SubjectType(values['subject_type'])
        if 'lab_type' in values:
            values['lab_type'] = LabType(values['lab_type'])
        edited = replace(tile, duration=duration, **values)
        edited.color = tile_color(edited.is_asynchronous)
        return edited

    def apply_resize(self, proposal):
        tile = self.store.get_placed(proposal.tile_id)
        if tile is None or tile.duration != proposal.current_duration:
            raise ConsistencyError('Resize is no longer possible, the tile has changed')

        edited = self._edited(tile, proposal.changes, proposal.new_duration)
        # The grid may have changed since the proposal was made
        self._require_fit(tile, edited)
        if tile.original_duration is None:
            edited.original_duration = proposal.current_duration
        edited.start_time = slot_start_time(tile.slot_index)
        edited.end_time = slot_end_time(tile.slot_index, edited.duration)
        self.store.placed[self.store.placed.index(tile)] = edited

        if proposal.branch == 'shrink':
            self.store.available.append(proposal.remainder)
            logger.info('Shrunk %s to %d slots, %d slots sent to sidebar',
                        tile.id, edited.duration, proposal.remainder.duration)
        elif proposal.branch == 'restore':
            removed = self.store.discard_split_remainders(tile.id)
            logger.info('Restored %s to %d slots, discarded %d split tiles',
                        tile.id, edited.duration, len(removed))
        else:
            stale = self.store.split_remainders(tile.id)
            if stale:
                # Remainders still count the time now taken back by the grow
                logger.warning('Grew %s to %d slots (original %d); %d split tiles left untouched',
                               tile.id, edited.duration, edited.original_duration, len(stale))
        return edited

    def resize(self, tile_id, patch):
        return self.apply_resize(self.propose_resize(tile_id, patch))

    # --- REMOVAL ---
    def remove_tile(self, tile_id):
        placed = self.store.remove_placed(tile_id)
        reinstated = self.store.reinstate(placed)
        logger.info('Removed %s from %s %s', tile_id, placed.room, placed.day)
        return reinstated
