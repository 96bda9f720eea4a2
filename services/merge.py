"""
State merge: apply a client patch on top of the stored room.

Shallow, last-write-wins per top-level field. Arrays and nested objects are
replaced wholesale, so a patch carrying `players` must carry all of them.
"""
from typing import Any, Dict

from pydantic import ValidationError as PydanticValidationError

from exceptions import ValidationError
from logging_config import get_logger
from schemas.rooms import Room
from services.membership import check_unique, elect_host

logger = get_logger(__name__)

# Never taken from a patch: identity, creation time and the write bookkeeping
PINNED_FIELDS = ("roomId", "createdAt", "lastUpdate", "version")


def apply_patch(room: Room, patch: Dict[str, Any]) -> Room:
    if not isinstance(patch, dict):
        raise ValidationError(f"Game state for room {room.room_id} must be an object")

    current = room.to_record()
    merged = {**current, **patch}

    # Post-merge correction: coordinator-owned bookkeeping is restored from the stored record
    for field in PINNED_FIELDS:
        merged[field] = current[field]

    try:
        result = Room.from_record(merged)
    except PydanticValidationError as e:
        logger.warning(f"Rejected game state update for room {room.room_id}: {e}")
        raise ValidationError(f"Invalid game state for room {room.room_id}") from e

    check_unique(result.room_id, result.players)
    elect_host(result)

    ignored = [f for f in PINNED_FIELDS if f in patch]
    if ignored:
        logger.debug(f"Ignored pinned fields {ignored} in update for room {room.room_id}")
    logger.info(f"Merged fields {sorted(patch)} into room {room.room_id}")
    return result
