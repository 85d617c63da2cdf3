# seatbooking/domain/ticket.py

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from seatbooking.domain.state_machine import TicketStateMachine, TicketStatus


@dataclass(frozen=True)
class Ticket:
    """
    One seat on one train for one travel date.
    Refers to its train and seat by identifier only.
    """

    pnr: str
    passenger_username: str
    booked_by_username: str
    train_number: str
    seat_number: str
    travel_date: date
    status: TicketStatus = TicketStatus.ACTIVE
    created_at: Optional[datetime] = None

    def is_past(self, today: date) -> bool:
        return self.travel_date < today or TicketStateMachine.is_terminal(self.status)
