from dataclasses import replace
from datetime import date

import pytest

from seatbooking.application.ticket_cache import ActiveTicketCache
from seatbooking.application.train_catalog import TrainCatalog, default_catalog
from seatbooking.domain.exceptions import TrainNotFoundError
from seatbooking.domain.pnr import generate_pnr
from seatbooking.domain.state_machine import TicketStatus
from seatbooking.domain.ticket import Ticket
from seatbooking.domain.train import Train


def _ticket(pnr, passenger="alice", booked_by="alice", seat="S1"):
    return Ticket(
        pnr=pnr,
        passenger_username=passenger,
        booked_by_username=booked_by,
        train_number="T123",
        seat_number=seat,
        travel_date=date(2026, 10, 25),
    )


# ---------------------
# CATALOG
# ---------------------

def test_default_catalog_trains():
    catalog = default_catalog()
    numbers = [train.train_number for train in catalog.get_all_trains()]
    assert numbers == ["T123", "T456", "T789"]
    assert catalog.get_train("T456").total_seats == 80


def test_search_trains_is_direction_aware():
    catalog = default_catalog()
    assert [t.train_number for t in catalog.search_trains("mumbai", "pune")] == ["T123", "T456"]
    assert catalog.search_trains("Pune", "Mumbai") == []


def test_lookup_by_number_ignores_case():
    catalog = default_catalog()
    assert catalog.get_train("t789").name == "Capital Mail"
    assert catalog.get_train("T000") is None
    with pytest.raises(TrainNotFoundError):
        catalog.require_train("T000")


def test_add_train_rejects_duplicate_number():
    catalog = TrainCatalog()
    assert catalog.add_train("T1", "One", ["A", "B"], 3)
    assert not catalog.add_train("t1", "Other", ["C", "D"], 3)
    assert len(catalog.get_all_trains()) == 1


def test_get_all_trains_returns_copy():
    catalog = TrainCatalog([Train("T1", "One", ["A", "B"], 1)])
    catalog.get_all_trains().clear()
    assert len(catalog.get_all_trains()) == 1


# ---------------------
# ACTIVE TICKET CACHE
# ---------------------

def test_cache_add_get_remove():
    cache = ActiveTicketCache()
    cache.add_all([_ticket("P1"), _ticket("P2", seat="S2")])

    assert len(cache) == 2
    assert cache.get("P1").seat_number == "S1"
    assert cache.remove("P1").pnr == "P1"
    assert cache.remove("P1") is None
    assert "P1" not in cache


def test_cache_for_passenger_matches_booker_too():
    cache = ActiveTicketCache()
    cache.add_all([
        _ticket("P1", passenger="bob", booked_by="alice"),
        _ticket("P2", passenger="carol", booked_by="carol", seat="S2"),
    ])

    assert [t.pnr for t in cache.for_passenger("alice")] == ["P1"]
    assert [t.pnr for t in cache.for_passenger("bob")] == ["P1"]


def test_cache_replace_drops_previous_entries():
    cache = ActiveTicketCache()
    cache.add_all([_ticket("P1")])
    cache.replace([_ticket("P9")])
    assert [t.pnr for t in cache.all()] == ["P9"]


def test_reader_snapshot_is_not_mutated_by_later_writes():
    cache = ActiveTicketCache()
    cache.add_all([_ticket("P1")])
    before = cache.all()
    cache.add_all([_ticket("P2", seat="S2")])
    assert [t.pnr for t in before] == ["P1"]


# ---------------------
# PNR
# ---------------------

def test_pnr_shape_and_spread():
    pnrs = {generate_pnr() for _ in range(200)}
    assert len(pnrs) == 200
    for pnr in pnrs:
        prefix, rand = pnr.split("-")
        assert len(prefix) == 6 and len(rand) == 8
        assert pnr == pnr.upper()


# ---------------------
# TICKET
# ---------------------

def test_ticket_is_past_after_travel_date_or_once_cancelled():
    ticket = _ticket("P1")

    assert not ticket.is_past(date(2026, 10, 25))
    assert ticket.is_past(date(2026, 10, 26))
    assert replace(ticket, status=TicketStatus.CANCELLED).is_past(date(2026, 10, 19))
