from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException

from backend import get_storage_backend
from exceptions import ConflictError, NameTakenError, RoomFullError, ShelterError, StorageError, ValidationError
from logging_config import get_logger
from schemas.rooms import DeleteRoomResponse, JoinRoomRequest, LeaveRoomRequest, UpdateRoomRequest
from services.coordinator import RoomCoordinator

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


@lru_cache()
def get_coordinator() -> RoomCoordinator:
    return RoomCoordinator(get_storage_backend())


def get_swept_coordinator(coordinator: RoomCoordinator = Depends(get_coordinator)) -> RoomCoordinator:
    # Opportunistic expiry before serving; a no-op when the backend expires keys itself
    try:
        coordinator.expire()
    except ShelterError as e:
        logger.error(f"Expiry sweep failed, serving request anyway: {e}", exc_info=True)
    return coordinator


def to_http_exception(room_id: str, e: ShelterError) -> HTTPException:
    if isinstance(e, RoomFullError):
        return HTTPException(status_code=400, detail="Lobby is full!")
    if isinstance(e, NameTakenError):
        return HTTPException(status_code=400, detail="Name already taken!")
    if isinstance(e, ValidationError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, ConflictError):
        return HTTPException(status_code=409, detail="Room is busy, please retry")
    logger.error(f"Storage failure on room {room_id}: {e}", exc_info=True)
    return HTTPException(status_code=503, detail="Room storage unavailable")


@rooms_router.get("")
def list_rooms(coordinator: RoomCoordinator = Depends(get_swept_coordinator)):
    try:
        rooms = [summary.model_dump(by_alias=True) for summary in coordinator.list_joinable()]
    except StorageError as e:
        logger.error(f"Listing rooms failed, returning empty lobby: {e}", exc_info=True)
        rooms = []
    logger.info(f"Listed {len(rooms)} joinable rooms")
    return {"rooms": rooms}


@rooms_router.get("/{room_id}")
def get_room(room_id: str, coordinator: RoomCoordinator = Depends(get_swept_coordinator)):
    try:
        return coordinator.get_room(room_id).to_record()
    except ShelterError as e:
        raise to_http_exception(room_id, e)


@rooms_router.post("/{room_id}")
def create_room(room_id: str, coordinator: RoomCoordinator = Depends(get_swept_coordinator)):
    logger.info(f"Create room request for {room_id}")
    try:
        return coordinator.create_room(room_id).to_record()
    except ShelterError as e:
        raise to_http_exception(room_id, e)


@rooms_router.post("/{room_id}/join")
def join_room(room_id: str, join_room_request: JoinRoomRequest,
              coordinator: RoomCoordinator = Depends(get_swept_coordinator)):
    player = join_room_request.player
    logger.info(f"Join room request for {room_id} from {player.name} ({player.id})")
    try:
        result = coordinator.join(room_id, player)
    except ShelterError as e:
        raise to_http_exception(room_id, e)
    return {"outcome": result.outcome.value, "room": result.room.to_record()}


@rooms_router.post("/{room_id}/leave")
def leave_room(room_id: str, leave_room_request: LeaveRoomRequest,
               coordinator: RoomCoordinator = Depends(get_swept_coordinator)):
    logger.info(f"Leave room request for {room_id} from {leave_room_request.player_id}")
    try:
        result = coordinator.leave(room_id, leave_room_request.player_id)
    except ShelterError as e:
        raise to_http_exception(room_id, e)
    if result.deleted:
        return DeleteRoomResponse()
    return result.room.to_record()


@rooms_router.put("/{room_id}")
def update_room(room_id: str, update_room_request: UpdateRoomRequest,
                coordinator: RoomCoordinator = Depends(get_swept_coordinator)):
    logger.debug(f"Update request for room {room_id}: fields {sorted(update_room_request.game_state)}")
    try:
        return coordinator.update(room_id, update_room_request.game_state).to_record()
    except ShelterError as e:
        raise to_http_exception(room_id, e)


@rooms_router.delete("/{room_id}", response_model=DeleteRoomResponse)
def delete_room(room_id: str, coordinator: RoomCoordinator = Depends(get_swept_coordinator)):
    # Only the host should reach this; the client enforces it
    logger.info(f"Delete room request for {room_id}")
    try:
        coordinator.delete_room(room_id)
    except ShelterError as e:
        raise to_http_exception(room_id, e)
    return DeleteRoomResponse()
