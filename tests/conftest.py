from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select

from seatbooking.application.booking_engine import BookingEngine
from seatbooking.application.train_catalog import TrainCatalog
from seatbooking.domain.state_machine import TicketStatus
from seatbooking.domain.train import Train
from seatbooking.infrastructure.db.models import HistoryEntry, TicketRecord
from seatbooking.infrastructure.db.store import SqlTicketStore
from seatbooking.main import create_app


TODAY = date(2026, 10, 19)


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def store(tmp_path):
    store = SqlTicketStore.from_url(
        f"sqlite:///{tmp_path / 'tickets.db'}",
        lock_timeout=15,
    )
    store.init()
    yield store
    store.dispose()


@pytest.fixture
def catalog():
    return TrainCatalog([
        Train("T123", "City Express", ["Mumbai", "Pune", "Delhi"], 10),
        Train("T456", "Deccan Queen", ["Mumbai", "Thane", "Pune"], 4),
        Train("T789", "Capital Mail", ["Delhi", "Jaipur", "Ahmedabad"], 6),
    ])


@pytest.fixture
def make_engine(store, catalog, today):
    def _make(**kwargs):
        kwargs.setdefault("clock", lambda: today)
        return BookingEngine(store, catalog, **kwargs)

    return _make


@pytest.fixture
def engine(make_engine):
    return make_engine()


@pytest.fixture
def seed_ticket(store):
    """Write a ticket row straight into the store, bypassing the engine."""

    def _seed(
        pnr,
        train_number,
        seat_number,
        travel_date="2026-10-25",
        passenger="alice",
        booked_by=None,
        status=TicketStatus.ACTIVE,
    ):
        with store.transaction() as session:
            session.add(
                TicketRecord(
                    pnr=pnr,
                    passenger_username=passenger,
                    booked_by_username=booked_by or passenger,
                    train_number=train_number,
                    seat_number=seat_number,
                    travel_date=travel_date,
                    status=status,
                )
            )

    return _seed


@pytest.fixture
def count_rows(store):
    def _count(model=TicketRecord, **filters):
        stmt = select(func.count()).select_from(model)
        for column, value in filters.items():
            stmt = stmt.where(getattr(model, column) == value)
        with store.transaction() as session:
            return session.execute(stmt).scalar_one()

    return _count


@pytest.fixture
def count_history(count_rows):
    def _count(**filters):
        return count_rows(HistoryEntry, **filters)

    return _count


@pytest.fixture
def client(engine):
    return TestClient(create_app(engine))
