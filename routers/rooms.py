from fastapi import APIRouter, Request
from schemas.rooms import RoomDetailsResponse, RoomListResponse, RoomSummary
from backend import RelayBackend
from errors import ApiError
from logging_config import get_logger

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


def get_backend(request: Request) -> RelayBackend:
    return request.app.state.backend


@rooms_router.get("", response_model=RoomListResponse)
async def list_rooms(request: Request):
    """Every live room with its member count, plus the number of live connections."""
    backend = get_backend(request)
    rooms = backend.rooms.rooms()
    logger.debug(f"Listing {len(rooms)} rooms")
    return RoomListResponse(
        rooms=[RoomSummary(room_id=room_id, member_count=len(members)) for room_id, members in rooms.items()],
        connections=len(backend.registry),
    )


@rooms_router.get("/{room_id}", response_model=RoomDetailsResponse)
async def get_room_details(room_id: str, request: Request):
    """
    Members of a room in join order.

    Rooms only exist while they have members, so an empty room is a 404.
    """
    members = get_backend(request).rooms.members(room_id)
    if not members:
        logger.info(f"Room details failed: Room {room_id} not found")
        raise ApiError(404, "Room not found")

    return RoomDetailsResponse(room_id=room_id, members=members, member_count=len(members))
