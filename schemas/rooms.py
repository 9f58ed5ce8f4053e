from pydantic import BaseModel


class RoomSummary(BaseModel):
    room_id: str
    member_count: int

class RoomListResponse(BaseModel):
    rooms: list[RoomSummary]
    connections: int

class RoomDetailsResponse(BaseModel):
    room_id: str
    members: list[str]
    member_count: int
