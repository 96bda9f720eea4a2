from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from constants import DEFAULT_MAX_PLAYERS, WAITING_PHASE

# Fields the coordinator owns. Anything else in a record is opaque game state.
ROOM_FIELDS = ("roomId", "players", "hostId", "phase", "maxPlayers", "lastUpdate", "createdAt", "version")


class Player(BaseModel):
    # Extra per-player game attributes (role, revealed cards...) pass through untouched
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow", coerce_numbers_to_str=True)

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    last_seen: Optional[int] = None


class Room(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, coerce_numbers_to_str=True)

    room_id: str = Field(min_length=1)
    players: List[Player] = Field(default_factory=list)
    host_id: Optional[str] = None
    # Only "waiting" means anything here; null or any other value is an opaque game phase
    phase: Optional[str] = WAITING_PHASE
    max_players: int = Field(default=DEFAULT_MAX_PLAYERS, gt=0)
    last_update: int = 0
    created_at: int = 0
    version: int = 0
    game: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Room":
        """Build a Room from the flat wire/storage layout, splitting off opaque game fields."""
        owned = {k: v for k, v in record.items() if k in ROOM_FIELDS}
        game = {k: v for k, v in record.items() if k not in ROOM_FIELDS}
        return cls.model_validate({**owned, "game": game})

    def to_record(self) -> Dict[str, Any]:
        """Flatten back to the layout clients and storage expect (game fields at top level)."""
        record = dict(self.game)
        record.update(self.model_dump(by_alias=True, exclude={"game"}))
        return record

    def find_player(self, player_id: str) -> Optional[Player]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None


class RoomSummary(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    room_id: str
    player_count: int
    max_players: int
    created_at: Optional[int] = None


class JoinOutcome(str, Enum):
    JOINED = "joined"
    RECONNECTED = "reconnected"


class JoinResult(BaseModel):
    room: Room
    outcome: JoinOutcome


class LeaveResult(BaseModel):
    # room is None exactly when the last player left and the room was deleted
    room: Optional[Room] = None
    deleted: bool = False


class JoinRoomRequest(BaseModel):
    player: Player


class LeaveRoomRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, coerce_numbers_to_str=True)

    player_id: str = Field(min_length=1)


class UpdateRoomRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    game_state: Dict[str, Any]


class DeleteRoomResponse(BaseModel):
    deleted: bool = True
