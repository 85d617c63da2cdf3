import logging
from dataclasses import dataclass, field
from typing import List, Tuple

from seatbooking.application.ticket_cache import ActiveTicketCache
from seatbooking.application.train_catalog import TrainCatalog
from seatbooking.domain.ticket import Ticket
from seatbooking.domain.train import Seat
from seatbooking.infrastructure.db.store import StoreProvider
from seatbooking.infrastructure.repositories.ticket_repository import (
    TicketRepository,
    to_ticket,
)


logger = logging.getLogger(__name__)


@dataclass
class InventorySnapshot:
    """ACTIVE tickets read from the store, resolved against the catalog."""

    resolved: List[Tuple[Ticket, Seat]] = field(default_factory=list)
    skipped: List[Ticket] = field(default_factory=list)

    @property
    def tickets(self) -> List[Ticket]:
        return [ticket for ticket, _ in self.resolved]

    def apply(self, catalog: TrainCatalog, cache: ActiveTicketCache) -> None:
        """
        Make seat flags and the cache match this snapshot exactly.
        Only the booking engine calls this, holding its state lock.
        """
        for train in catalog.get_all_trains():
            for seat in train.seats:
                seat.free()
        for _, seat in self.resolved:
            seat.occupy()
        cache.replace(self.tickets)


class SnapshotLoader:

    def __init__(self, store: StoreProvider, catalog: TrainCatalog):
        self.store = store
        self.catalog = catalog

    def load(self) -> InventorySnapshot:
        with self.store.transaction() as session:
            active = [to_ticket(record) for record in TicketRepository(session).list_active()]

        snapshot = InventorySnapshot()
        for ticket in active:
            seat = self._resolve(ticket)
            if seat is None:
                logger.warning(
                    "Could not resolve train/seat %s/%s for ticket %s; skipping",
                    ticket.train_number,
                    ticket.seat_number,
                    ticket.pnr,
                )
                snapshot.skipped.append(ticket)
                continue
            snapshot.resolved.append((ticket, seat))

        logger.info(
            "Loaded %s active tickets from store (%s unresolved)",
            len(snapshot.resolved),
            len(snapshot.skipped),
        )
        return snapshot

    def _resolve(self, ticket: Ticket) -> Seat | None:
        train = self.catalog.get_train(ticket.train_number)
        if train is None:
            return None
        return train.seat(ticket.seat_number)
