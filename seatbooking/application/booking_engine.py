import logging
import os
import threading
from datetime import date
from itertools import repeat
from typing import Callable, List, Optional, Sequence, Union

from sqlalchemy.exc import IntegrityError

from seatbooking.application.snapshot_loader import SnapshotLoader
from seatbooking.application.ticket_cache import ActiveTicketCache
from seatbooking.application.train_catalog import TrainCatalog
from seatbooking.domain.exceptions import InsufficientSeatsError, StoreError
from seatbooking.domain.pnr import generate_pnr
from seatbooking.domain.state_machine import TicketStatus
from seatbooking.domain.ticket import Ticket
from seatbooking.domain.train import Seat, Train
from seatbooking.domain.validators import (
    validate_seat_request,
    validate_travel_date,
)
from seatbooking.infrastructure.db.models import (
    HistoryAction,
    HistoryEntry,
    TicketRecord,
)
from seatbooking.infrastructure.db.store import StoreProvider
from seatbooking.infrastructure.repositories.history_repository import HistoryRepository
from seatbooking.infrastructure.repositories.ticket_repository import (
    TicketRepository,
    to_ticket,
)
from seatbooking.infrastructure.repositories.train_repository import TrainRepository


logger = logging.getLogger(__name__)


def _pnr_max_attempts() -> int:
    return int(os.getenv("PNR_MAX_ATTEMPTS", "3"))


class BookingEngine:
    """
    Atomic reserve/cancel over the durable ticket store.

    Seat availability is decided only from ticket rows read under a
    train-scoped store lock. Seat flags and the active-ticket cache are
    written only here, after the store commit, under `_state_lock`, so the
    in-memory view changes in the same order as the store commits.

    `_state_lock` is process-wide and held across the commit, so commits
    for different trains queue behind each other in this process. The
    store locks are still per train; only the short commit step is shared.
    """

    def __init__(
        self,
        store: StoreProvider,
        catalog: TrainCatalog,
        pnr_generator: Callable[[], str] = generate_pnr,
        clock: Callable[[], date] = date.today,
        pnr_max_attempts: Optional[int] = None,
    ):
        self.store = store
        self.catalog = catalog
        self._generate_pnr = pnr_generator
        self._today = clock
        if pnr_max_attempts is None:
            pnr_max_attempts = _pnr_max_attempts()
        if pnr_max_attempts < 1:
            raise ValueError("pnr_max_attempts must be at least 1")
        self.pnr_max_attempts = pnr_max_attempts

        self._state_lock = threading.RLock()
        self._register_lock = threading.Lock()
        self._registered: set[str] = set()
        self.cache = ActiveTicketCache()

        self.store.init()
        self._register_trains(self.catalog.get_all_trains())
        self.resync()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def reserve(
        self,
        passenger: str,
        train: Train,
        travel_date: Union[str, date],
        seat_count: int,
        seat_assignment_usernames: Optional[Sequence[str]] = None,
    ) -> List[Ticket]:
        """
        Book `seat_count` seats on `train` for `travel_date`, all or nothing.

        Seats are taken lowest-numbered first from those with no ACTIVE
        ticket. With `seat_assignment_usernames`, ticket i goes to
        username i; otherwise every ticket goes to `passenger`, who is
        recorded as the booker either way.
        """
        validate_seat_request(seat_count, seat_assignment_usernames)
        when = validate_travel_date(travel_date, self._today())
        self._ensure_registered(train)

        with self.store.transaction() as session:
            trains = TrainRepository(session)
            tickets = TicketRepository(session)

            trains.lock_train(train.train_number)
            taken = tickets.lock_active_seat_numbers(train.train_number)

            free = [seat for seat in train.seats if seat.seat_number not in taken]
            if len(free) < seat_count:
                raise InsufficientSeatsError(
                    requested=seat_count,
                    available=len(free),
                )

            selected = free[:seat_count]
            usernames = seat_assignment_usernames or repeat(passenger)
            created = [
                to_ticket(
                    self._insert_ticket(tickets, passenger, username, train, seat, when)
                )
                for seat, username in zip(selected, usernames)
            ]

            with self._state_lock:
                session.commit()
                for seat in selected:
                    seat.occupy()
                self.cache.add_all(created)

        logger.info(
            "Reserved %s seat(s) %s on train %s for %s by %s",
            seat_count,
            ",".join(ticket.seat_number for ticket in created),
            train.train_number,
            when.isoformat(),
            passenger,
        )

        for ticket in created:
            self._record_history(
                ticket.passenger_username,
                ticket.pnr,
                HistoryAction.BOOK,
                f"Booked seat {ticket.seat_number} on train {ticket.train_number}"
                f" for user {ticket.passenger_username}",
            )

        return created

    def cancel(self, ticket: Union[Ticket, str]) -> bool:
        """
        Cancel one ACTIVE ticket. False when the PNR is unknown or the
        ticket is already cancelled; nothing changes in that case.
        """
        raw = ticket.pnr if isinstance(ticket, Ticket) else ticket
        pnr = raw.strip().upper()

        with self.store.transaction() as session:
            tickets = TicketRepository(session)

            if not tickets.cancel_active(pnr):
                logger.info("Cancel of %s ignored: no active ticket", pnr)
                return False

            cancelled = to_ticket(tickets.get_by_pnr(pnr))

            with self._state_lock:
                session.commit()
                seat = self._resolve_seat(cancelled)
                if seat is not None:
                    seat.free()
                self.cache.remove(pnr)

        logger.info(
            "Cancelled ticket %s (train %s seat %s)",
            pnr,
            cancelled.train_number,
            cancelled.seat_number,
        )

        self._record_history(
            cancelled.passenger_username,
            pnr,
            HistoryAction.CANCEL,
            f"Cancelled ticket PNR {pnr}",
        )
        return True

    def resync(self) -> None:
        """
        Rebuild seat flags and the cache from the store's ACTIVE tickets.
        Runs at construction; call again only while no booking is in flight.
        """
        snapshot = SnapshotLoader(self.store, self.catalog).load()
        with self._state_lock:
            snapshot.apply(self.catalog, self.cache)

    # ------------------------------------------------------------------
    # Queries (never touch seat state)
    # ------------------------------------------------------------------

    def find_by_pnr(self, pnr: str) -> Optional[Ticket]:
        pnr = pnr.strip().upper()
        cached = self.cache.get(pnr)
        if cached is not None:
            return cached

        with self.store.transaction() as session:
            record = TicketRepository(session).get_by_pnr(pnr)
            return to_ticket(record) if record else None

    def find_active_by_passenger(self, username: str) -> List[Ticket]:
        """Active tickets the user travels on or booked for someone else."""
        tickets = self.cache.for_passenger(username)
        return sorted(tickets, key=lambda ticket: (ticket.travel_date, ticket.train_number))

    def find_past_or_cancelled(self, username: str) -> List[Ticket]:
        today = self._today()
        with self.store.transaction() as session:
            records = TicketRepository(session).find_for(username)
            tickets = [to_ticket(record) for record in records]
        return [ticket for ticket in tickets if ticket.is_past(today)]

    def history_for(self, username: str) -> List[HistoryEntry]:
        with self.store.transaction() as session:
            return HistoryRepository(session).list_for(username)

    def active_tickets(self) -> List[Ticket]:
        return self.cache.all()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _insert_ticket(
        self,
        tickets: TicketRepository,
        booked_by: str,
        passenger: str,
        train: Train,
        seat: Seat,
        travel_date: date,
    ) -> TicketRecord:
        for attempt in range(1, self.pnr_max_attempts + 1):
            pnr = self._generate_pnr()
            record = TicketRecord(
                pnr=pnr,
                passenger_username=passenger,
                booked_by_username=booked_by,
                train_number=train.train_number,
                seat_number=seat.seat_number,
                travel_date=travel_date.isoformat(),
                status=TicketStatus.ACTIVE,
            )
            try:
                return tickets.insert(record)
            except IntegrityError:
                if not tickets.pnr_exists(pnr):
                    raise
                logger.warning(
                    "PNR collision on %s (attempt %s/%s)",
                    pnr,
                    attempt,
                    self.pnr_max_attempts,
                )

        raise StoreError(
            f"Could not allocate a unique PNR after {self.pnr_max_attempts} attempts"
        )

    def _register_trains(self, trains: Sequence[Train]) -> None:
        with self._register_lock:
            with self.store.transaction() as session:
                repo = TrainRepository(session)
                for train in trains:
                    repo.register(train)
            self._registered.update(train.train_number for train in trains)

    def _ensure_registered(self, train: Train) -> None:
        if train.train_number in self._registered:
            return
        self._register_trains([train])

    def _resolve_seat(self, ticket: Ticket) -> Optional[Seat]:
        train = self.catalog.get_train(ticket.train_number)
        if train is None:
            return None
        return train.seat(ticket.seat_number)

    def _record_history(
        self,
        user_id: Optional[str],
        pnr: Optional[str],
        action: HistoryAction,
        details: str,
    ) -> None:
        # Outside the booking transaction; a failure here never undoes it.
        try:
            with self.store.transaction() as session:
                HistoryRepository(session).record(user_id, pnr, action, details)
        except StoreError as exc:
            logger.warning("Could not record %s history for %s: %s", action.value, pnr, exc)

