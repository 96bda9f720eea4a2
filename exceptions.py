"""
Errors raised by the room coordinator.

The coordinator never maps these to transport statuses itself; the router
decides how each one is reported to the client.
"""
from typing import Optional


class ShelterError(Exception):
    """Base class for every coordinator error"""
    pass


class ValidationError(ShelterError):
    """Request is malformed (missing room id, bad player, bad patch)"""
    pass


class RoomFullError(ShelterError):
    def __init__(self, room_id: str, max_players: int):
        self.room_id = room_id
        self.max_players = max_players
        super().__init__(f"Room {room_id} is full ({max_players} players)")


class NameTakenError(ShelterError):
    def __init__(self, room_id: str, name: str):
        self.room_id = room_id
        self.name = name
        super().__init__(f"Name '{name}' is already taken in room {room_id}")


class ConflictError(ShelterError):
    """Concurrent writers kept winning; the caller should retry the whole operation"""
    def __init__(self, room_id: str, attempts: int = 0, reason: Optional[str] = None):
        self.room_id = room_id
        self.attempts = attempts
        super().__init__(reason or f"Room {room_id} changed concurrently, gave up after {attempts} attempts")


class StorageError(ShelterError):
    """The storage backend failed (timeout, unavailable, corrupt record)"""
    pass
