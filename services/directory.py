from typing import Iterator

from backend import StorageBackend
from constants import DEFAULT_MAX_PLAYERS, WAITING_PHASE
from logging_config import get_logger
from redis_keys import ROOM_PREFIX
from schemas.rooms import RoomSummary

logger = get_logger(__name__)


class RoomDirectory:
    """Lobby listing: rooms still in the waiting phase."""

    def __init__(self, storage: StorageBackend):
        self.storage = storage

    def list_joinable(self) -> Iterator[RoomSummary]:
        """
        Yield a summary per waiting room.

        A point-in-time scan, consumed once. Rooms deleted between listing
        and reading are skipped. Order follows the backend's enumeration.
        """
        for key in self.storage.list_keys(ROOM_PREFIX):
            record = self.storage.get(key)
            if record is None or record.get("phase") != WAITING_PHASE:
                continue
            yield RoomSummary(
                room_id=record.get("roomId") or key[len(ROOM_PREFIX):],
                player_count=len(record.get("players") or []),
                max_players=record.get("maxPlayers", DEFAULT_MAX_PLAYERS),
                created_at=record.get("createdAt"),
            )
