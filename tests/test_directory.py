def test_lists_only_waiting_rooms(coordinator):
    coordinator.join("open", {"id": "p1", "name": "Ann"})
    coordinator.join("open", {"id": "p2", "name": "Bob"})
    coordinator.get_room("empty")
    coordinator.join("playing", {"id": "p3", "name": "Cid"})
    coordinator.update("playing", {"phase": "discussion"})

    summaries = {s.room_id: s for s in coordinator.list_joinable()}

    assert set(summaries) == {"open", "empty"}
    assert summaries["open"].player_count == 2
    assert summaries["open"].max_players == 8
    assert summaries["empty"].player_count == 0
    assert summaries["open"].created_at is not None


def test_listing_is_a_single_use_snapshot(coordinator):
    coordinator.get_room("r1")
    listing = coordinator.list_joinable()
    assert [s.room_id for s in listing] == ["r1"]
    assert list(listing) == []


def test_summary_uses_camel_case_on_the_wire(coordinator):
    coordinator.get_room("r1")
    summary = next(iter(coordinator.list_joinable()))
    assert set(summary.model_dump(by_alias=True)) == {"roomId", "playerCount", "maxPlayers", "createdAt"}


def test_rooms_deleted_mid_scan_are_skipped(coordinator, storage):
    coordinator.get_room("r1")
    coordinator.get_room("r2")

    listing = coordinator.list_joinable()
    first = next(listing)
    other = "r2" if first.room_id == "r1" else "r1"
    coordinator.delete_room(other)

    assert list(listing) == []


def test_empty_store_lists_nothing(coordinator):
    assert list(coordinator.list_joinable()) == []
