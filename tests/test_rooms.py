import pytest

from config import DEFAULT_ROOMS
from errors import ConsistencyError, ValidationError
from rooms import RoomRegistry, is_computer_lab_room, is_kitchen_lab_room
from tile_store import TileStore


@pytest.mark.parametrize("name, computer, kitchen", [
    ("CL1", True, False),
    ("cl12", True, False),
    ("ComLab 3", True, False),
    ("CL", False, False),
    ("CLASS1", False, False),
    ("KL2", False, True),
    ("KITCHEN", False, True),
    ("Main KitchenLab", False, True),
    ("101", False, False),
])
def test_room_kinds(name, computer, kitchen):
    assert is_computer_lab_room(name) is computer
    assert is_kitchen_lab_room(name) is kitchen


def test_empty_registry_falls_back_to_defaults():
    assert list(RoomRegistry(TileStore(), [])) == DEFAULT_ROOMS
    assert len(RoomRegistry(TileStore(), ["A"])) == 1


def test_add_room(timetable):
    timetable.rooms.add_room("  301 ")
    assert timetable.rooms.rooms[-1] == "301"
    with pytest.raises(ConsistencyError, match="Room already exists"):
        timetable.rooms.add_room("301")
    with pytest.raises(ValidationError):
        timetable.rooms.add_room("   ")


def test_rename_room_cascades_to_placed_tiles(timetable, new_tile):
    tile = new_tile()
    timetable.engine.place("101", "Monday", 0, tile.id)

    timetable.rooms.rename_room("101", "Room 101")
    assert timetable.rooms.rooms[0] == "Room 101"
    assert "101" not in timetable.rooms
    assert timetable.store.placed[0].room == "Room 101"


def test_rename_room_guards(timetable):
    assert timetable.rooms.rename_room("101", "101") == "101"
    with pytest.raises(ConsistencyError, match="Room name already exists"):
        timetable.rooms.rename_room("101", "102")
    with pytest.raises(ConsistencyError):
        timetable.rooms.rename_room("999", "998")
    with pytest.raises(ValidationError):
        timetable.rooms.rename_room("101", " ")


def test_delete_room_refused_while_in_use(timetable, new_tile):
    tile = new_tile()
    timetable.engine.place("102", "Monday", 0, tile.id)
    with pytest.raises(ConsistencyError, match="Cannot delete room with scheduled courses"):
        timetable.rooms.delete_room("102")
    assert "102" in timetable.rooms

    timetable.engine.remove_tile(tile.id)
    timetable.rooms.delete_room("102")
    assert "102" not in timetable.rooms
    with pytest.raises(ConsistencyError):
        timetable.rooms.delete_room("102")
