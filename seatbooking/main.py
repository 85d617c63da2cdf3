import logging
import os
import time

from fastapi import FastAPI

from seatbooking.api.routes.routes import router
from seatbooking.application.booking_engine import BookingEngine
from seatbooking.application.train_catalog import default_catalog
from seatbooking.domain.exceptions import StoreError
from seatbooking.infrastructure.db.store import SqlTicketStore

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _wait_for_db(store: SqlTicketStore) -> None:
    # Handles the common case where API starts before Postgres is ready.
    max_retries = int(os.getenv("DB_CONNECT_MAX_RETRIES", "30"))
    retry_delay_seconds = float(os.getenv("DB_CONNECT_RETRY_DELAY", "1.5"))

    for attempt in range(1, max_retries + 1):
        try:
            store.ping()
            logger.info("Database is reachable.")
            return
        except StoreError:
            if attempt == max_retries:
                logger.exception(
                    "Database not reachable after %s attempts. Check DATABASE_URL and Postgres status.",
                    max_retries,
                )
                raise
            logger.warning(
                "Database not ready (attempt %s/%s). Retrying in %.1f seconds...",
                attempt,
                max_retries,
                retry_delay_seconds,
            )
            time.sleep(retry_delay_seconds)


def create_app(booking_engine: BookingEngine | None = None) -> FastAPI:
    """
    Build the HTTP front end. With no engine given, one is built on
    startup from DATABASE_URL and the default train catalog.
    """
    app = FastAPI(title="Seat Booking Engine")
    app.include_router(router)
    app.state.booking_engine = booking_engine

    @app.on_event("startup")
    def on_startup() -> None:
        if app.state.booking_engine is not None:
            return
        store = SqlTicketStore.from_url()
        _wait_for_db(store)
        app.state.booking_engine = BookingEngine(store, default_catalog())

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "seatbooking.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
    )
