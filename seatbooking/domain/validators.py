# seatbooking/domain/validators.py

import re
from datetime import date, datetime
from typing import Optional, Sequence, Union

from seatbooking.domain.exceptions import ValidationError


_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DATE_FORMAT_MESSAGE = "Invalid travel date format. Expected YYYY-MM-DD."


def parse_travel_date(value: Union[str, date]) -> date:
    """Parse a strict ISO-8601 calendar date (YYYY-MM-DD)."""
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not _ISO_DATE.match(value.strip()):
        raise ValidationError(_DATE_FORMAT_MESSAGE)
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        # e.g. 2026-02-30
        raise ValidationError(_DATE_FORMAT_MESSAGE) from exc


def validate_travel_date(value: Union[str, date], today: date) -> date:
    travel_date = parse_travel_date(value)
    if travel_date < today:
        raise ValidationError("Travel date cannot be before today.")
    return travel_date


def validate_seat_request(
    seat_count: int,
    usernames: Optional[Sequence[str]],
) -> None:
    if isinstance(seat_count, bool) or not isinstance(seat_count, int):
        raise ValidationError("Number of seats must be an integer.")
    if seat_count < 1:
        raise ValidationError("Number of seats to book must be at least 1.")
    if usernames is not None and len(usernames) != seat_count:
        raise ValidationError(
            f"Expected {seat_count} passenger usernames, got {len(usernames)}"
        )
