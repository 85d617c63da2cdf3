# seatbooking/infrastructure/repositories/ticket_repository.py

from datetime import date

from sqlalchemy.orm import Session
from sqlalchemy import Select, select, update, or_

from seatbooking.domain.state_machine import TicketStateMachine, TicketStatus
from seatbooking.domain.ticket import Ticket
from seatbooking.infrastructure.db.models import TicketRecord


def to_ticket(record: TicketRecord) -> Ticket:
    return Ticket(
        pnr=record.pnr,
        passenger_username=record.passenger_username,
        booked_by_username=record.booked_by_username,
        train_number=record.train_number,
        seat_number=record.seat_number,
        travel_date=date.fromisoformat(record.travel_date),
        status=record.status,
        created_at=record.created_at,
    )


class TicketRepository:

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def active_seats_lock_statement(train_number: str) -> Select:
        return (
            select(TicketRecord.seat_number)
            .where(TicketRecord.train_number == train_number)
            .where(TicketRecord.status == TicketStatus.ACTIVE)
            .with_for_update()
        )

    def lock_active_seat_numbers(self, train_number: str) -> set[str]:
        """
        SELECT ... FOR UPDATE over the train's ACTIVE tickets.
        The result is the authoritative set of occupied seats.
        """

        stmt = self.active_seats_lock_statement(train_number)

        return {seat_number.upper() for seat_number in self.db.execute(stmt).scalars()}

    def get_by_pnr(self, pnr: str) -> TicketRecord | None:
        stmt = select(TicketRecord).where(TicketRecord.pnr == pnr)
        return self.db.execute(stmt).scalar_one_or_none()

    def pnr_exists(self, pnr: str) -> bool:
        stmt = select(TicketRecord.pnr).where(TicketRecord.pnr == pnr)
        return self.db.execute(stmt).first() is not None

    def insert(self, record: TicketRecord) -> TicketRecord:
        # Savepoint: a rejected row leaves the outer transaction usable.
        with self.db.begin_nested():
            self.db.add(record)
            self.db.flush()
        return record

    def cancel_active(self, pnr: str) -> bool:
        """
        Conditional status update. False when no ACTIVE row matched.
        """

        stmt = (
            update(TicketRecord)
            .where(TicketRecord.pnr == pnr)
            .where(
                TicketRecord.status.in_(
                    sorted(
                        TicketStateMachine.sources_for(TicketStatus.CANCELLED),
                        key=lambda status: status.value,
                    )
                )
            )
            .values(status=TicketStatus.CANCELLED)
            .execution_options(synchronize_session=False)
        )

        result = self.db.execute(stmt)
        return result.rowcount == 1

    def list_active(self) -> list[TicketRecord]:
        stmt = (
            select(TicketRecord)
            .where(TicketRecord.status == TicketStatus.ACTIVE)
            .order_by(TicketRecord.train_number, TicketRecord.created_at)
        )
        return list(self.db.execute(stmt).scalars().all())

    def find_for(self, username: str) -> list[TicketRecord]:
        """Every ticket the user travels on or booked, newest travel date first."""
        stmt = (
            select(TicketRecord)
            .where(self._belongs_to(username))
            .order_by(TicketRecord.travel_date.desc(), TicketRecord.created_at)
        )
        return list(self.db.execute(stmt).scalars().all())

    @staticmethod
    def _belongs_to(username: str):
        return or_(
            TicketRecord.passenger_username == username,
            TicketRecord.booked_by_username == username,
        )
