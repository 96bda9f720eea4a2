"""
Membership rules: join, reconnect, leave and host election.

These functions work on a Room in place and never touch storage; the
lifecycle manager runs them inside an atomic read-modify-write.
"""
from typing import Iterable, Optional, Tuple

from exceptions import NameTakenError, RoomFullError, ValidationError
from logging_config import get_logger
from schemas.rooms import JoinOutcome, Player, Room

logger = get_logger(__name__)


def join(room: Room, player: Player, now: int) -> Tuple[Room, JoinOutcome]:
    existing = room.find_player(player.id)

    if existing is not None:
        # Reconnect: only name and lastSeen change, in-game fields come from the stored seat
        if any(p.name == player.name and p.id != player.id for p in room.players):
            logger.warning(f"Reconnect of {player.id} to room {room.room_id} rejected: name '{player.name}' is taken")
            raise NameTakenError(room.room_id, player.name)
        existing.name = player.name
        existing.last_seen = now
        logger.info(f"Player {player.name} ({player.id}) reconnected to room {room.room_id}")
        return room, JoinOutcome.RECONNECTED

    if len(room.players) >= room.max_players:
        logger.warning(f"Join of {player.id} rejected: room {room.room_id} is full ({len(room.players)}/{room.max_players})")
        raise RoomFullError(room.room_id, room.max_players)

    if any(p.name == player.name for p in room.players):
        logger.warning(f"Join of {player.id} rejected: name '{player.name}' is taken in room {room.room_id}")
        raise NameTakenError(room.room_id, player.name)

    # New seats carry their room id alongside the client-supplied attributes
    seat = Player.model_validate({**player.model_dump(by_alias=True), "roomId": room.room_id, "lastSeen": now})
    room.players.append(seat)
    if len(room.players) == 1:
        room.host_id = player.id
        logger.info(f"Player {player.id} is host of room {room.room_id}")

    logger.info(f"New player {player.name} ({player.id}) joined room {room.room_id} ({len(room.players)}/{room.max_players})")
    return room, JoinOutcome.JOINED


def leave(room: Room, player_id: str) -> Optional[Room]:
    """
    Remove `player_id` from the room.

    Returns the room (unchanged when the player was not seated), or None when
    the last player left and the room should be deleted.
    """
    remaining = [p for p in room.players if p.id != player_id]
    if len(remaining) == len(room.players):
        logger.debug(f"Leave of {player_id} ignored: not in room {room.room_id}")
        return room

    room.players = remaining
    logger.info(f"Player {player_id} left room {room.room_id} ({len(remaining)} remaining)")

    if not remaining:
        return None

    if room.host_id == player_id:
        room.host_id = remaining[0].id
        logger.info(f"Host of room {room.room_id} passed from {player_id} to {room.host_id}")
    return room


def check_unique(room_id: str, players: Iterable[Player]) -> None:
    """Raise ValidationError if two seats share an id or a name."""
    ids = set()
    names = set()
    for player in players:
        if player.id in ids:
            raise ValidationError(f"Duplicate player id '{player.id}' in room {room_id}")
        if player.name in names:
            raise ValidationError(f"Duplicate player name '{player.name}' in room {room_id}")
        ids.add(player.id)
        names.add(player.name)


def elect_host(room: Room) -> None:
    """Point hostId at a seated player: keep it if valid, else the earliest joiner, else None."""
    if room.host_id is not None and room.find_player(room.host_id) is not None:
        return
    previous = room.host_id
    room.host_id = room.players[0].id if room.players else None
    if previous != room.host_id:
        logger.info(f"Host of room {room.room_id} re-elected: {previous} -> {room.host_id}")
