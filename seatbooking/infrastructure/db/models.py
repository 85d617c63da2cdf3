# seatbooking/infrastructure/db/models.py

from sqlalchemy import (
    String,
    Integer,
    DateTime,
    Enum,
    Text,
    Index,
    CheckConstraint,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime
from enum import Enum as PyEnum

from seatbooking.infrastructure.db.session import Base
from seatbooking.domain.state_machine import TicketStatus


class HistoryAction(str, PyEnum):
    BOOK = "BOOK"
    CANCEL = "CANCEL"


class TrainRecord(Base):
    """
    Durable registration of a catalog train.
    Its row is the lock target that serializes reservations per train.
    """

    __tablename__ = "trains"

    train_number: Mapped[str] = mapped_column(String(50), primary_key=True)
    train_name: Mapped[str] = mapped_column(String(255), nullable=False)
    route: Mapped[str] = mapped_column(Text, nullable=False)
    total_seats: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("total_seats >= 0", name="ck_train_total_seats_nonnegative"),
    )


class TicketRecord(Base):
    """
    One booked seat. Never deleted; cancellation only flips the status.
    """

    __tablename__ = "tickets"

    pnr: Mapped[str] = mapped_column(String(50), primary_key=True)
    passenger_username: Mapped[str] = mapped_column(String(100), nullable=False)
    booked_by_username: Mapped[str] = mapped_column(String(100), nullable=False)
    train_number: Mapped[str] = mapped_column(String(50), nullable=False)
    seat_number: Mapped[str] = mapped_column(String(50), nullable=False)
    # ISO 8601 date string
    travel_date: Mapped[str] = mapped_column(String(10), nullable=False)
    status: Mapped[TicketStatus] = mapped_column(
        Enum(TicketStatus, name="ticket_status"),
        nullable=False,
        default=TicketStatus.ACTIVE,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        # At most one ACTIVE ticket per seat.
        Index(
            "uq_tickets_active_seat",
            "train_number",
            "seat_number",
            unique=True,
            postgresql_where=text("status = 'ACTIVE'"),
            sqlite_where=text("status = 'ACTIVE'"),
        ),
        Index("ix_tickets_train_status", "train_number", "status"),
        Index("ix_tickets_passenger", "passenger_username"),
        Index("ix_tickets_booked_by", "booked_by_username"),
    )


class HistoryEntry(Base):
    __tablename__ = "user_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    pnr: Mapped[str | None] = mapped_column(String(50), nullable=True)
    action: Mapped[HistoryAction] = mapped_column(
        Enum(HistoryAction, name="history_action"),
        nullable=False,
    )
    details: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_user_history_user_id", "user_id"),
    )
