"""
Room Lifecycle Manager

Owns every write to a room record:
1. get_or_create: lazy creation on first reference
2. create_room: explicit reset to a fresh default room
3. delete_room: idempotent removal
4. expire: sweep of stale rooms when the backend has no native TTL
5. mutate: the atomic read-modify-write every other component goes through
"""
import copy
import time
from typing import Any, Callable, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from backend import StorageBackend
from constants import (
    DEFAULT_GAME_STATE,
    DEFAULT_MAX_PLAYERS,
    MAX_MUTATION_ATTEMPTS,
    MEMORY_ROOM_MAX_AGE_SECONDS,
    ROOM_LOCK_TIMEOUT_SECONDS,
    ROOM_TTL_SECONDS,
)
from exceptions import ConflictError, ShelterError, StorageError
from locks import KeyedLock
from logging_config import get_logger
from redis_keys import ROOM_KEY, ROOM_PREFIX
from schemas.rooms import Room

logger = get_logger(__name__)

# Receives the stored room (None when absent) and returns (room to store, result).
# Returning None as the room means "no record": the stored one is deleted.
Mutation = Callable[[Optional[Room]], Tuple[Optional[Room], Any]]


def now_ms() -> int:
    return int(time.time() * 1000)


def room_key(room_id: str) -> str:
    return ROOM_KEY.format(room_id=room_id)


class RoomLifecycleManager:
    def __init__(
        self,
        storage: StorageBackend,
        clock: Callable[[], int] = now_ms,
        ttl_seconds: int = ROOM_TTL_SECONDS,
        max_age_seconds: int = MEMORY_ROOM_MAX_AGE_SECONDS,
        max_attempts: int = MAX_MUTATION_ATTEMPTS,
        lock_timeout: float = ROOM_LOCK_TIMEOUT_SECONDS,
        default_max_players: int = DEFAULT_MAX_PLAYERS,
    ):
        self.storage = storage
        self.clock = clock
        self.ttl_seconds = ttl_seconds
        self.max_age_seconds = max_age_seconds
        self.max_attempts = max_attempts
        self.default_max_players = default_max_players
        self.locks = KeyedLock(timeout=lock_timeout)

    def default_room(self, room_id: str) -> Room:
        now = self.clock()
        return Room(
            room_id=room_id,
            max_players=self.default_max_players,
            last_update=now,
            created_at=now,
            game=copy.deepcopy(DEFAULT_GAME_STATE),
        )

    def load(self, room_id: str) -> Optional[Room]:
        record = self.storage.get(room_key(room_id))
        if record is None:
            return None
        try:
            return Room.from_record(record)
        except PydanticValidationError as e:
            logger.error(f"Stored record for room {room_id} is corrupt: {e}")
            raise StorageError(f"Corrupt record for room {room_id}") from e

    def mutate(self, room_id: str, mutation: Mutation, always_write: bool = False) -> Any:
        """
        Run `mutation` as one atomic read-modify-write on the room.

        The per-room lock serializes writers in this process; the version
        compare-and-swap catches writers in other processes. A lost race
        re-reads and re-applies the mutation, up to `max_attempts` times,
        then raises ConflictError. Business errors raised by the mutation
        propagate immediately and nothing is written. An unchanged record is
        not rewritten unless `always_write` is set.
        """
        key = room_key(room_id)
        with self.locks.hold(room_id):
            for attempt in range(1, self.max_attempts + 1):
                current = self.load(room_id)
                before = current.to_record() if current is not None else None
                expected_version = current.version if current is not None else 0

                updated, result = mutation(current)

                after = updated.to_record() if updated is not None else None
                if after == before and not always_write:
                    return result

                if updated is None:
                    committed = self.storage.delete(key, expected_version=expected_version)
                else:
                    updated.version = expected_version + 1
                    previous_update = current.last_update if current is not None else 0
                    # lastUpdate strictly increases per write, even within one clock tick
                    updated.last_update = max(self.clock(), previous_update + 1)
                    committed = self.storage.put(
                        key,
                        updated.to_record(),
                        ttl_seconds=self.ttl_seconds,
                        expected_version=expected_version,
                    )

                if committed:
                    return result
                logger.warning(f"Concurrent write on room {room_id}, retrying (attempt {attempt}/{self.max_attempts})")

        raise ConflictError(room_id, self.max_attempts)

    def get_or_create(self, room_id: str) -> Room:
        room = self.load(room_id)
        if room is not None:
            return room

        def create_if_absent(current: Optional[Room]) -> Tuple[Room, Room]:
            # Another request may have created it between our read and the lock
            room = current if current is not None else self.default_room(room_id)
            return room, room

        room = self.mutate(room_id, create_if_absent)
        logger.info(f"Room {room_id} ready (version {room.version})")
        return room

    def create_room(self, room_id: str) -> Room:
        def reset(current: Optional[Room]) -> Tuple[Room, Room]:
            if current is not None:
                logger.info(f"Resetting existing room {room_id} ({len(current.players)} players dropped)")
            room = self.default_room(room_id)
            return room, room

        room = self.mutate(room_id, reset)
        logger.info(f"Created room {room_id}")
        return room

    def delete_room(self, room_id: str) -> None:
        self.mutate(room_id, lambda current: (None, None))
        logger.info(f"Deleted room {room_id}")

    def expire(self, now: Optional[int] = None) -> int:
        """
        Remove rooms whose lastUpdate is older than `max_age_seconds`.

        A no-op on backends with native expiry. Each candidate is re-checked
        inside its own atomic mutation so a room touched meanwhile survives.
        """
        if self.storage.supports_native_ttl:
            return 0

        now = self.clock() if now is None else now
        cutoff = now - self.max_age_seconds * 1000

        def drop_if_stale(current: Optional[Room]) -> Tuple[Optional[Room], bool]:
            if current is not None and current.last_update < cutoff:
                return None, True
            return current, False

        removed = 0
        for key in list(self.storage.list_keys(ROOM_PREFIX)):
            room_id = key[len(ROOM_PREFIX):]
            try:
                # Only stale rooms are locked; a busy room never holds up the sweep
                room = self.load(room_id)
                if room is None or room.last_update >= cutoff:
                    continue
                if self.mutate(room_id, drop_if_stale):
                    removed += 1
            except ShelterError as e:
                logger.warning(f"Expiry sweep skipped room {room_id}: {e}")

        if removed:
            logger.info(f"Expiry sweep removed {removed} stale rooms")
        return removed
