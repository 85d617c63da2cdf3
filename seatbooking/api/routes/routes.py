import logging

from fastapi import APIRouter, Depends, HTTPException, status, Request

from seatbooking.application.booking_engine import BookingEngine
from seatbooking.api.schemas.schemas import (
    ReservationRequest,
    TrainCreateRequest,
    TicketResponse,
    CancelResponse,
    TrainResponse,
    TrainDetailResponse,
    HistoryEntryResponse,
    TicketScope,
)
from seatbooking.domain.exceptions import (
    InsufficientSeatsError,
    InvalidStateTransitionError,
    StoreError,
    TrainNotFoundError,
    ValidationError,
)
from seatbooking.domain.state_machine import TicketStateMachine, TicketStatus
from seatbooking.domain.ticket import Ticket
from seatbooking.domain.train import Train


router = APIRouter()
logger = logging.getLogger(__name__)


def get_engine(request: Request) -> BookingEngine:
    engine = getattr(request.app.state, "booking_engine", None)
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Booking engine is not ready",
        )
    return engine


def _ticket_response(ticket: Ticket) -> TicketResponse:
    return TicketResponse(
        pnr=ticket.pnr,
        passenger_username=ticket.passenger_username,
        booked_by_username=ticket.booked_by_username,
        train_number=ticket.train_number,
        seat_number=ticket.seat_number,
        travel_date=ticket.travel_date.isoformat(),
        status=ticket.status.value,
        created_at=ticket.created_at.isoformat() if ticket.created_at else None,
    )


def _train_response(train: Train) -> TrainResponse:
    return TrainResponse(
        train_number=train.train_number,
        name=train.name,
        route=list(train.route),
        total_seats=train.total_seats,
        available_seats=train.available_seat_count,
    )


def _store_unavailable(exc: StoreError) -> HTTPException:
    logger.warning("Store error surfaced to client: %s", exc)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Ticket store unavailable, please retry",
    )


@router.get("/health")
def health():
    return {"message": "Seat booking engine is running"}


@router.get("/trains", response_model=list[TrainResponse])
def list_trains(
    start: str | None = None,
    end: str | None = None,
    engine: BookingEngine = Depends(get_engine),
):
    if start and end:
        trains = engine.catalog.search_trains(start, end)
    else:
        trains = engine.catalog.get_all_trains()
    return [_train_response(train) for train in trains]


@router.post(
    "/trains",
    response_model=TrainResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_train(
    request: TrainCreateRequest,
    engine: BookingEngine = Depends(get_engine),
):
    try:
        added = engine.catalog.add_train(
            train_number=request.train_number,
            name=request.name,
            route=request.route,
            total_seats=request.total_seats,
        )
    except ValidationError as exc:
        raise HTTPException(
            status_code=422,
            detail=str(exc),
        ) from exc

    if not added:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Train number {request.train_number} already exists",
        )

    logger.info("Added train %s (%s)", request.train_number, request.name)
    return _train_response(engine.catalog.require_train(request.train_number))


@router.get("/trains/{train_number}", response_model=TrainDetailResponse)
def get_train(
    train_number: str,
    engine: BookingEngine = Depends(get_engine),
):
    try:
        train = engine.catalog.require_train(train_number)
    except TrainNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc

    return TrainDetailResponse(
        **_train_response(train).model_dump(),
        free_seat_numbers=[seat.seat_number for seat in train.available_seats()],
    )


@router.post(
    "/trains/{train_number}/reservations",
    response_model=list[TicketResponse],
    status_code=status.HTTP_201_CREATED,
)
def reserve_seats(
    train_number: str,
    request: ReservationRequest,
    engine: BookingEngine = Depends(get_engine),
):
    try:
        train = engine.catalog.require_train(train_number)
        tickets = engine.reserve(
            passenger=request.passenger,
            train=train,
            travel_date=request.travel_date,
            seat_count=request.seat_count,
            seat_assignment_usernames=request.passenger_usernames,
        )
    except TrainNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except ValidationError as exc:
        raise HTTPException(
            status_code=422,
            detail=str(exc),
        ) from exc
    except InsufficientSeatsError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": str(exc),
                "requested": exc.requested,
                "available": exc.available,
            },
        ) from exc
    except StoreError as exc:
        raise _store_unavailable(exc) from exc

    return [_ticket_response(ticket) for ticket in tickets]


@router.get("/tickets", response_model=list[TicketResponse])
def list_active_tickets(
    engine: BookingEngine = Depends(get_engine),
):
    return [_ticket_response(ticket) for ticket in engine.active_tickets()]


@router.get("/tickets/{pnr}", response_model=TicketResponse)
def get_ticket(
    pnr: str,
    engine: BookingEngine = Depends(get_engine),
):
    try:
        ticket = engine.find_by_pnr(pnr)
    except StoreError as exc:
        raise _store_unavailable(exc) from exc

    if not ticket:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Ticket not found",
        )
    return _ticket_response(ticket)


@router.post("/tickets/{pnr}/cancel", response_model=CancelResponse)
def cancel_ticket(
    pnr: str,
    engine: BookingEngine = Depends(get_engine),
):
    try:
        cancelled = engine.cancel(pnr)
        if not cancelled:
            existing = engine.find_by_pnr(pnr)
    except StoreError as exc:
        raise _store_unavailable(exc) from exc

    if not cancelled:
        if existing is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Ticket not found",
            )
        try:
            TicketStateMachine.validate_transition(existing.status, TicketStatus.CANCELLED)
        except InvalidStateTransitionError as exc:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=str(exc),
            ) from exc
        # stale ACTIVE read; the conditional update above is authoritative
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Ticket already cancelled",
        )

    return CancelResponse(pnr=pnr.strip().upper(), cancelled=True)


@router.get("/passengers/{username}/tickets", response_model=list[TicketResponse])
def list_passenger_tickets(
    username: str,
    scope: TicketScope = "active",
    engine: BookingEngine = Depends(get_engine),
):
    try:
        if scope == "past":
            tickets = engine.find_past_or_cancelled(username)
        else:
            tickets = engine.find_active_by_passenger(username)
    except StoreError as exc:
        raise _store_unavailable(exc) from exc

    return [_ticket_response(ticket) for ticket in tickets]


@router.get("/passengers/{username}/history", response_model=list[HistoryEntryResponse])
def list_passenger_history(
    username: str,
    engine: BookingEngine = Depends(get_engine),
):
    try:
        entries = engine.history_for(username)
    except StoreError as exc:
        raise _store_unavailable(exc) from exc

    return [
        HistoryEntryResponse(
            action=entry.action.value,
            pnr=entry.pnr,
            details=entry.details,
            created_at=entry.created_at.isoformat(),
        )
        for entry in entries
    ]
