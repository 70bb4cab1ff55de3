# timetable.py
import logging

import db as storage
import schedules
from config import DAYS, MAX_SLOTS, TIME_LABELS
from errors import ValidationError
from placement import PlacementEngine
from rooms import RoomRegistry
from tile_store import TileStore

logger = logging.getLogger(__name__)


class TimeTable:
    """One user's editable timetable: sidebar tiles, placements and rooms."""

    def __init__(self, available=None, placed=None, rooms=None, max_slots=MAX_SLOTS):
        self.store = TileStore(available, placed)
        self.rooms = RoomRegistry(self.store, rooms)
        self.engine = PlacementEngine(self.store, self.rooms, DAYS, max_slots)

    @classmethod
    def load(cls, db, user_id):
        return cls(
            available=storage.load_tiles(db, user_id),
            placed=storage.load_placed_tiles(db, user_id),
            rooms=storage.load_rooms(db, user_id),
        )

    def save(self, db, user_id):
        storage.save_workspace(db, user_id, self.store.available, self.store.placed, self.rooms.rooms)

    # --- COMMANDS ---
    def reset(self):
        """Send every placed tile back to the sidebar and restore the default rooms."""
        for tile in list(self.store.placed):
            self.engine.remove_tile(tile.id)
        self.rooms.reset()
        logger.info('Timetable reset')

    def derive_schedules(self):
        return schedules.derive_all(self.store.placed, self.rooms.rooms)

    def save_schedules(self, db, user_id):
        if not self.store.placed:
            raise ValidationError('Please add some courses to the timetable first')
        saved = self.derive_schedules()
        storage.save_saved_schedules(db, user_id, saved)
        return saved

    # --- VIEW ---
    def to_dict(self):
        return {
            'available': [t.to_dict() for t in self.store.available],
            'placed': [t.to_dict() for t in self.store.placed],
            'rooms': list(self.rooms.rooms),
            'days': DAYS,
            'time_labels': TIME_LABELS,
            'max_slots': self.engine.max_slots,
        }
