import pytest

from exceptions import ValidationError
from schemas.rooms import Room
from services.lifecycle import room_key
from services.merge import apply_patch


def test_update_merges_fields_and_bumps_last_update(coordinator):
    before = coordinator.get_room("r1")

    room = coordinator.update("r1", {"phase": "voting", "round": 2})

    assert room.phase == "voting"
    assert room.game["round"] == 2
    assert room.room_id == "r1"
    assert room.last_update > before.last_update
    stored = coordinator.get_room("r1").to_record()
    assert stored["phase"] == "voting"
    assert stored["round"] == 2


def test_room_id_in_patch_is_ignored(coordinator, storage):
    coordinator.get_room("r1")

    room = coordinator.update("r1", {"roomId": "hijacked", "round": 4})

    assert room.room_id == "r1"
    assert storage.get(room_key("hijacked")) is None
    assert storage.get(room_key("r1"))["roomId"] == "r1"


def test_bookkeeping_fields_are_not_taken_from_patch(coordinator):
    original = coordinator.get_room("r1")

    room = coordinator.update("r1", {"lastUpdate": 1, "createdAt": 2, "version": 99})

    assert room.created_at == original.created_at
    assert room.last_update > original.last_update
    assert room.version == original.version + 1


def test_nested_values_are_replaced_not_merged(coordinator):
    coordinator.update("r1", {"votingResults": {"p1": 2, "p2": 1}})
    room = coordinator.update("r1", {"votingResults": {"p3": 1}})
    assert room.game["votingResults"] == {"p3": 1}


def test_players_array_is_replaced_wholesale(coordinator):
    coordinator.join("r1", {"id": "p1", "name": "Ann"})
    coordinator.join("r1", {"id": "p2", "name": "Bob"})
    coordinator.join("r1", {"id": "p3", "name": "Cid"})

    room = coordinator.update("r1", {"players": [
        {"id": "p3", "name": "Cid", "eliminated": False},
        {"id": "p2", "name": "Bob", "eliminated": True},
    ]})

    assert [p.id for p in room.players] == ["p3", "p2"]
    # host p1 is gone, earliest remaining seat takes over
    assert room.host_id == "p3"
    assert room.to_record()["players"][1]["eliminated"] is True


def test_update_always_bumps_last_update(coordinator):
    first = coordinator.update("r1", {"round": 2})
    second = coordinator.update("r1", {"round": 2})
    assert second.last_update > first.last_update


def test_patch_with_duplicate_players_is_rejected(coordinator, storage):
    coordinator.join("r1", {"id": "p1", "name": "Ann"})
    before = storage.get(room_key("r1"))

    with pytest.raises(ValidationError):
        coordinator.update("r1", {"players": [
            {"id": "p1", "name": "Ann"},
            {"id": "p2", "name": "Ann"},
        ]})
    with pytest.raises(ValidationError):
        coordinator.update("r1", {"players": [
            {"id": "p1", "name": "Ann"},
            {"id": "p1", "name": "Bob"},
        ]})

    assert storage.get(room_key("r1")) == before


def test_patch_with_bad_shape_is_rejected(coordinator):
    with pytest.raises(ValidationError):
        coordinator.update("r1", {"maxPlayers": 0})
    with pytest.raises(ValidationError):
        coordinator.update("r1", {"players": "everyone"})


def test_host_id_pointing_at_stranger_is_corrected():
    room = Room.from_record({
        "roomId": "r1",
        "players": [{"id": "p1", "name": "Ann"}, {"id": "p2", "name": "Bob"}],
        "hostId": "p1",
    })

    assert apply_patch(room, {"hostId": "p2"}).host_id == "p2"
    assert apply_patch(room, {"hostId": "nobody"}).host_id == "p1"
    assert apply_patch(room, {"players": []}).host_id is None


def test_apply_patch_does_not_touch_input():
    room = Room.from_record({"roomId": "r1", "round": 1})
    apply_patch(room, {"round": 5})
    assert room.game["round"] == 1


def test_numeric_ids_and_null_phase_are_accepted(coordinator):
    room = coordinator.update("r1", {
        "players": [{"id": 1, "name": "Ann"}, {"id": 2, "name": "Bob"}],
        "hostId": 2,
        "phase": None,
    })

    assert [p.id for p in room.players] == ["1", "2"]
    assert room.host_id == "2"
    assert room.phase is None
    # a null phase is not "waiting", so the room leaves the lobby listing
    assert list(coordinator.list_joinable()) == []
