from datetime import date, timedelta

from seatbooking.application.booking_engine import BookingEngine
from seatbooking.application.train_catalog import default_catalog
from seatbooking.domain.exceptions import InsufficientSeatsError
from seatbooking.infrastructure.db.store import SqlTicketStore


def _travel_day(days_from_now: int) -> str:
    return (date.today() + timedelta(days=days_from_now)).isoformat()


DEMO_BOOKINGS = [
    {"passenger": "alice", "train": "T123", "days": 3, "seat_count": 2},
    {"passenger": "bob", "train": "T456", "days": 5, "seat_count": 1},
    {
        "passenger": "carol",
        "train": "T789",
        "days": 7,
        "seat_count": 3,
        "usernames": ["carol", "dave", "erin"],
    },
]


def main() -> None:
    store = SqlTicketStore.from_url()
    catalog = default_catalog()
    engine = BookingEngine(store, catalog)

    try:
        for item in DEMO_BOOKINGS:
            train = catalog.require_train(item["train"])
            try:
                tickets = engine.reserve(
                    passenger=item["passenger"],
                    train=train,
                    travel_date=_travel_day(item["days"]),
                    seat_count=item["seat_count"],
                    seat_assignment_usernames=item.get("usernames"),
                )
            except InsufficientSeatsError as exc:
                print(f"Skipped {item['train']} for {item['passenger']}: {exc}")
                continue
            for ticket in tickets:
                print(
                    f"{ticket.pnr}  {ticket.train_number}/{ticket.seat_number}"
                    f"  {ticket.passenger_username}  {ticket.travel_date.isoformat()}"
                )
        print("Seed complete: demo tickets booked on T123, T456, T789.")
    finally:
        store.dispose()


if __name__ == "__main__":
    main()
