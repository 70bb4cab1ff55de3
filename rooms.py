# rooms.py
import logging
import re

from config import DEFAULT_ROOMS
from errors import ConsistencyError, ValidationError

logger = logging.getLogger(__name__)

COMPUTER_LAB_ROOM = re.compile(r'^CL\d+$|ComLab', re.IGNORECASE)
KITCHEN_LAB_ROOM = re.compile(r'^KL\d+$|Kitchen|KitchenLab', re.IGNORECASE)


def is_computer_lab_room(name):
    return bool(COMPUTER_LAB_ROOM.search(name))


def is_kitchen_lab_room(name):
    return bool(KITCHEN_LAB_ROOM.search(name))


class RoomRegistry:
    """Ordered, unique room names. Placed tiles refer to rooms by name."""

    def __init__(self, store, rooms=None):
        self.store = store
        self.rooms = list(rooms) if rooms else list(DEFAULT_ROOMS)

    def __contains__(self, name):
        return name in self.rooms

    def __iter__(self):
        return iter(self.rooms)

    def __len__(self):
        return len(self.rooms)

    def add_room(self, name):
        name = (name or '').strip()
        if not name:
            raise ValidationError('Room name is required')
        if name in self.rooms:
            raise ConsistencyError('Room already exists')
        self.rooms.append(name)
        logger.info('Added room %s', name)
        return name

    def rename_room(self, old, new):
        new = (new or '').strip()
        if old not in self.rooms:
            raise ConsistencyError(f'Room "{old}" not found')
        if not new:
            raise ValidationError('Room name is required')
        if old == new:
            return new
        if new in self.rooms:
            raise ConsistencyError('Room name already exists')

        self.rooms = [new if r == old else r for r in self.rooms]
        moved = 0
        for tile in self.store.placed:
            if tile.room == old:
                tile.room = new
                moved += 1
        logger.info('Renamed room %s to %s (%d placed tiles updated)', old, new, moved)
        return new

    def delete_room(self, name):
        if name not in self.rooms:
            raise ConsistencyError(f'Room "{name}" not found')
        if any(t.room == name for t in self.store.placed):
            raise ConsistencyError('Cannot delete room with scheduled courses')
        self.rooms.remove(name)
        logger.info('Deleted room %s', name)

    def reset(self):
        self.rooms = list(DEFAULT_ROOMS)
