

class SeatBookingError(Exception):
    """
    Base exception for all domain-level errors
    inside the seat booking engine.
    """


class ValidationError(SeatBookingError, ValueError):
    """Raised when a request is malformed (bad date, seat count, usernames)."""


class InsufficientSeatsError(SeatBookingError):
    """
    Raised when fewer seats are free than requested at lock time.
    """

    def __init__(self, requested: int, available: int):
        self.requested = requested
        self.available = available

        message = (
            f"Not enough seats available. "
            f"Requested {requested}, available {available}"
        )
        super().__init__(message)


class StoreError(SeatBookingError):
    """
    Raised when the ticket store cannot complete an operation:
    connectivity, lock timeout or constraint violation.
    The operation may be retried as a whole.
    """


class TrainNotFoundError(SeatBookingError):
    """Raised when a train number is not in the catalog."""

    def __init__(self, train_number: str):
        self.train_number = train_number
        super().__init__(f"Train not found: {train_number}")


class InvalidStateTransitionError(SeatBookingError):
    """
    Raised when an illegal ticket state transition is attempted.
    """

    def __init__(self, from_state: str, to_state: str):
        self.from_state = from_state
        self.to_state = to_state

        message = (
            f"Illegal state transition attempted: "
            f"{from_state} -> {to_state}"
        )
        super().__init__(message)
