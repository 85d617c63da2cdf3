import threading
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional

from seatbooking.domain.ticket import Ticket


class ActiveTicketCache:
    """
    In-memory view of ACTIVE tickets keyed by PNR.

    Every write builds a new mapping and swaps it in, so readers on other
    threads always see a complete snapshot. The durable store stays
    authoritative; this is a lookup cache only.
    """

    def __init__(self):
        self._write_lock = threading.Lock()
        self._by_pnr: Mapping[str, Ticket] = MappingProxyType({})

    def replace(self, tickets: Iterable[Ticket]) -> None:
        fresh = {ticket.pnr: ticket for ticket in tickets}
        with self._write_lock:
            self._by_pnr = MappingProxyType(fresh)

    def add_all(self, tickets: Iterable[Ticket]) -> None:
        with self._write_lock:
            updated = dict(self._by_pnr)
            for ticket in tickets:
                updated[ticket.pnr] = ticket
            self._by_pnr = MappingProxyType(updated)

    def remove(self, pnr: str) -> Optional[Ticket]:
        with self._write_lock:
            if pnr not in self._by_pnr:
                return None
            updated = dict(self._by_pnr)
            removed = updated.pop(pnr)
            self._by_pnr = MappingProxyType(updated)
            return removed

    def get(self, pnr: str) -> Optional[Ticket]:
        return self._by_pnr.get(pnr)

    def for_passenger(self, username: str) -> List[Ticket]:
        return [
            ticket for ticket in self._by_pnr.values()
            if username in (ticket.passenger_username, ticket.booked_by_username)
        ]

    def all(self) -> List[Ticket]:
        return list(self._by_pnr.values())

    def __len__(self) -> int:
        return len(self._by_pnr)

    def __contains__(self, pnr: str) -> bool:
        return pnr in self._by_pnr
