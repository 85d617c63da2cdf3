"""
Races several reservation requests against one store.
Each worker is a thread, as one request would be in the HTTP server.
"""

import os
import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy.dialects import postgresql

from seatbooking.application.booking_engine import BookingEngine
from seatbooking.domain.exceptions import InsufficientSeatsError, StoreError
from seatbooking.domain.state_machine import TicketStatus
from seatbooking.infrastructure.db.store import SqlTicketStore
from seatbooking.infrastructure.repositories.ticket_repository import TicketRepository
from seatbooking.infrastructure.repositories.train_repository import TrainRepository


TRAVEL_DATE = "2026-10-25"


def _race(engine, requests):
    """Run (passenger, train, seat_count) requests at the same instant."""
    barrier = threading.Barrier(len(requests))

    def attempt(passenger, train, seat_count):
        barrier.wait()
        try:
            return engine.reserve(passenger, train, TRAVEL_DATE, seat_count)
        except InsufficientSeatsError as exc:
            return exc

    with ThreadPoolExecutor(max_workers=len(requests)) as pool:
        futures = [pool.submit(attempt, *request) for request in requests]
        return [future.result(timeout=60) for future in futures]


def test_two_requests_for_last_two_seats(seed_ticket, make_engine, catalog, count_rows):
    seed_ticket("HELD-1", "T456", "S1")
    seed_ticket("HELD-2", "T456", "S2")
    engine = make_engine()
    train = catalog.get_train("T456")

    results = _race(engine, [("alice", train, 2), ("bob", train, 2)])

    winners = [r for r in results if isinstance(r, list)]
    losers = [r for r in results if isinstance(r, InsufficientSeatsError)]
    assert len(winners) == 1
    assert len(losers) == 1
    assert [t.seat_number for t in winners[0]] == ["S3", "S4"]
    assert losers[0].requested == 2
    assert losers[0].available == 0

    assert count_rows(train_number="T456", status=TicketStatus.ACTIVE) == 4
    assert catalog.get_train("T456").available_seat_count == 0


def test_no_double_booking_under_contention(make_engine, catalog, count_rows):
    engine = make_engine()
    train = catalog.get_train("T789")  # 6 seats

    results = _race(engine, [(f"user{i}", train, 1) for i in range(10)])

    booked = [t for r in results if isinstance(r, list) for t in r]
    rejected = [r for r in results if isinstance(r, InsufficientSeatsError)]
    assert len(booked) == 6
    assert len(rejected) == 4
    assert Counter(t.seat_number for t in booked) == Counter(
        f"S{n}" for n in range(1, 7)
    )
    assert count_rows(train_number="T789", status=TicketStatus.ACTIVE) == 6
    assert len(engine.active_tickets()) == 6


@pytest.mark.parametrize("seat_counts", [(2, 3, 4), (4, 4, 1, 1)])
def test_multi_seat_requests_stay_all_or_nothing(
    make_engine, catalog, count_rows, seat_counts
):
    engine = make_engine()
    train = catalog.get_train("T789")  # 6 seats

    results = _race(
        engine,
        [(f"user{i}", train, count) for i, count in enumerate(seat_counts)],
    )

    for i, (count, result) in enumerate(zip(seat_counts, results)):
        if isinstance(result, list):
            assert len(result) == count
        else:
            assert result.requested == count
            assert count_rows(passenger_username=f"user{i}") == 0

    booked = [t.seat_number for r in results if isinstance(r, list) for t in r]
    assert len(booked) == len(set(booked))
    assert len(booked) <= 6
    assert count_rows(train_number="T789", status=TicketStatus.ACTIVE) == len(booked)


def test_memory_matches_store_after_mixed_traffic(make_engine, catalog, store):
    engine = make_engine()
    train = catalog.get_train("T123")  # 10 seats
    first = engine.reserve("seed", train, TRAVEL_DATE, 4)
    barrier = threading.Barrier(8)

    def cancel(ticket):
        barrier.wait()
        return engine.cancel(ticket)

    def reserve(passenger):
        barrier.wait()
        try:
            return engine.reserve(passenger, train, TRAVEL_DATE, 1)
        except InsufficientSeatsError as exc:
            return exc

    with ThreadPoolExecutor(max_workers=8) as pool:
        futures = [pool.submit(cancel, ticket) for ticket in first]
        futures += [pool.submit(reserve, f"user{i}") for i in range(4)]
        for future in futures:
            future.result(timeout=60)

    in_memory = {seat.seat_number for seat in train.seats if seat.occupied}
    with store.transaction() as session:
        durable = {r.seat_number for r in TicketRepository(session).list_active()}
    assert in_memory == durable
    assert {t.seat_number for t in engine.active_tickets()} == durable

    engine.resync()
    assert {seat.seat_number for seat in train.seats if seat.occupied} == in_memory


def _postgres_sql(stmt):
    return str(
        stmt.compile(
            dialect=postgresql.dialect(),
            compile_kwargs={"literal_binds": True},
        )
    )


def test_row_locks_are_scoped_to_one_train():
    train_sql = _postgres_sql(TrainRepository.lock_statement("T123"))
    seats_sql = _postgres_sql(TicketRepository.active_seats_lock_statement("T123"))

    assert "WHERE trains.train_number = 'T123'" in train_sql
    assert train_sql.rstrip().endswith("FOR UPDATE")
    assert "tickets.train_number = 'T123'" in seats_sql
    assert seats_sql.rstrip().endswith("FOR UPDATE")


@pytest.mark.skipif(
    not os.getenv("TEST_DATABASE_URL", "").startswith("postgresql"),
    reason="needs TEST_DATABASE_URL pointing at a Postgres database",
)
def test_held_train_lock_does_not_block_other_trains(catalog, today):
    store = SqlTicketStore.from_url(os.environ["TEST_DATABASE_URL"], lock_timeout=1)
    engine = BookingEngine(store, catalog, clock=lambda: today)
    booked = []

    try:
        with store.transaction() as session:
            TrainRepository(session).lock_train("T123")

            booked = engine.reserve("bob", catalog.get_train("T456"), TRAVEL_DATE, 1)
            assert len(booked) == 1

            with pytest.raises(StoreError):
                engine.reserve("alice", catalog.get_train("T123"), TRAVEL_DATE, 1)
    finally:
        for ticket in booked:
            engine.cancel(ticket)
        store.dispose()
