from typing import Literal
from pydantic import BaseModel, Field


class ReservationRequest(BaseModel):
    passenger: str = Field(min_length=1)
    travel_date: str
    seat_count: int = Field(gt=0)
    passenger_usernames: list[str] | None = None


class TrainCreateRequest(BaseModel):
    train_number: str = Field(min_length=1, max_length=20)
    name: str = Field(min_length=1)
    route: list[str] = Field(min_length=2)
    total_seats: int = Field(gt=0, le=2000)


class TicketResponse(BaseModel):
    pnr: str
    passenger_username: str
    booked_by_username: str
    train_number: str
    seat_number: str
    travel_date: str
    status: str
    created_at: str | None = None


class CancelResponse(BaseModel):
    pnr: str
    cancelled: bool


class TrainResponse(BaseModel):
    train_number: str
    name: str
    route: list[str]
    total_seats: int
    available_seats: int


class TrainDetailResponse(TrainResponse):
    free_seat_numbers: list[str]


class HistoryEntryResponse(BaseModel):
    action: str
    pnr: str | None = None
    details: str | None = None
    created_at: str


TicketScope = Literal["active", "past"]
