"""
Room Coordinator: the single entry point the request handlers call.

One method per logical operation. Each mutating call is one atomic
read-modify-write through the lifecycle manager. Business rejections and
failures surface as ShelterError subclasses for the caller to map.
"""
from typing import Any, Callable, Dict, Iterator, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from backend import StorageBackend
from exceptions import ValidationError
from logging_config import get_logger
from schemas.rooms import JoinOutcome, JoinResult, LeaveResult, Player, Room, RoomSummary
from services import membership, merge
from services.directory import RoomDirectory
from services.lifecycle import RoomLifecycleManager, now_ms

logger = get_logger(__name__)


def _require_room_id(room_id: Optional[str]) -> str:
    if not isinstance(room_id, str) or not room_id.strip():
        raise ValidationError("Room ID is required")
    return room_id


class RoomCoordinator:
    def __init__(self, storage: StorageBackend, clock: Callable[[], int] = now_ms, **lifecycle_options):
        self.storage = storage
        self.clock = clock
        self.lifecycle = RoomLifecycleManager(storage, clock=clock, **lifecycle_options)
        self.directory = RoomDirectory(storage)

    def get_room(self, room_id: str) -> Room:
        return self.lifecycle.get_or_create(_require_room_id(room_id))

    def create_room(self, room_id: str) -> Room:
        return self.lifecycle.create_room(_require_room_id(room_id))

    def delete_room(self, room_id: str) -> None:
        # Host-only authorization is the caller's job
        self.lifecycle.delete_room(_require_room_id(room_id))

    def list_joinable(self) -> Iterator[RoomSummary]:
        return self.directory.list_joinable()

    def expire(self, now: Optional[int] = None) -> int:
        return self.lifecycle.expire(now)

    def join(self, room_id: str, player: Union[Player, Dict[str, Any]]) -> JoinResult:
        room_id = _require_room_id(room_id)
        if not isinstance(player, Player):
            try:
                player = Player.model_validate(player)
            except PydanticValidationError as e:
                raise ValidationError(f"Player id and name are required to join room {room_id}") from e

        def apply_join(current: Optional[Room]) -> Tuple[Room, Tuple[Room, JoinOutcome]]:
            room = current if current is not None else self.lifecycle.default_room(room_id)
            room, outcome = membership.join(room, player, self.clock())
            return room, (room, outcome)

        room, outcome = self.lifecycle.mutate(room_id, apply_join)
        return JoinResult(room=room, outcome=outcome)

    def leave(self, room_id: str, player_id: str) -> LeaveResult:
        room_id = _require_room_id(room_id)
        if not isinstance(player_id, str) or not player_id:
            raise ValidationError(f"Player ID is required to leave room {room_id}")

        def apply_leave(current: Optional[Room]) -> Tuple[Optional[Room], Optional[Room]]:
            if current is None:
                # Nothing stored: report a fresh room without creating one
                return None, self.lifecycle.default_room(room_id)
            remaining = membership.leave(current, player_id)
            return remaining, remaining

        room = self.lifecycle.mutate(room_id, apply_leave)
        if room is None:
            logger.info(f"Room {room_id} deleted: last player {player_id} left")
            return LeaveResult(deleted=True)
        return LeaveResult(room=room)

    def update(self, room_id: str, patch: Dict[str, Any]) -> Room:
        room_id = _require_room_id(room_id)

        def apply_update(current: Optional[Room]) -> Tuple[Room, Room]:
            room = current if current is not None else self.lifecycle.default_room(room_id)
            merged = merge.apply_patch(room, patch)
            return merged, merged

        # Always written: an update refreshes lastUpdate and the TTL even when nothing changed
        return self.lifecycle.mutate(room_id, apply_update, always_write=True)
