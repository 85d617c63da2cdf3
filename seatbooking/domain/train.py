# seatbooking/domain/train.py

from typing import Iterable, List, Optional, Tuple

from seatbooking.domain.exceptions import ValidationError


SEAT_PREFIX = "S"


def _normalize_stop(stop: Optional[str]) -> Optional[str]:
    if stop is None:
        return None
    return stop.strip().lower()


class Seat:
    """
    One seat slot on a train.

    Occupancy is changed only by the booking engine, after the
    matching ticket change has been committed to the store.
    """

    def __init__(self, train_number: str, ordinal: int):
        self.train_number = train_number
        self.ordinal = ordinal
        self.seat_number = f"{SEAT_PREFIX}{ordinal}"
        self._occupied = False

    @property
    def occupied(self) -> bool:
        return self._occupied

    def occupy(self) -> None:
        self._occupied = True

    def free(self) -> None:
        self._occupied = False

    def __repr__(self) -> str:
        state = "occupied" if self._occupied else "free"
        return f"<Seat {self.train_number}/{self.seat_number} {state}>"


class Train:
    """
    A scheduled train: an ordered route and the seats it owns.
    Seats are created once, ordinals 1..total_seats.
    """

    def __init__(
        self,
        train_number: str,
        name: str,
        route: Iterable[str],
        total_seats: int,
    ):
        route = tuple(route)
        if len(route) < 2:
            raise ValidationError(
                f"Train {train_number} route needs at least 2 stops"
            )
        if total_seats < 0:
            raise ValidationError("total_seats must not be negative")

        self.train_number = train_number
        self.name = name
        self.route: Tuple[str, ...] = route
        self.seats: List[Seat] = [
            Seat(train_number, ordinal) for ordinal in range(1, total_seats + 1)
        ]

    @property
    def total_seats(self) -> int:
        return len(self.seats)

    @property
    def booked_seat_count(self) -> int:
        return sum(1 for seat in self.seats if seat.occupied)

    @property
    def available_seat_count(self) -> int:
        return self.total_seats - self.booked_seat_count

    def available_seats(self) -> List[Seat]:
        return [seat for seat in self.seats if not seat.occupied]

    def seat(self, seat_number: str) -> Optional[Seat]:
        wanted = seat_number.strip().upper()
        for seat in self.seats:
            if seat.seat_number == wanted:
                return seat
        return None

    def serves(self, start_station: str, end_station: str) -> bool:
        """
        True when both stations are on the route and start comes strictly
        before end. Direction matters; case and surrounding whitespace do not.
        """
        start = _normalize_stop(start_station)
        end = _normalize_stop(end_station)
        if start is None or end is None:
            return False

        start_idx = end_idx = None
        for idx, stop in enumerate(self.route):
            norm = _normalize_stop(stop)
            if norm == start and start_idx is None:
                start_idx = idx
            if norm == end and end_idx is None:
                end_idx = idx

        return (
            start_idx is not None
            and end_idx is not None
            and start_idx < end_idx
        )

    def __repr__(self) -> str:
        return f"<Train {self.train_number} {self.name!r}>"
