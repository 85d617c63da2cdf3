# seatbooking/infrastructure/repositories/history_repository.py

from sqlalchemy.orm import Session
from sqlalchemy import select

from seatbooking.infrastructure.db.models import HistoryAction, HistoryEntry


class HistoryRepository:

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        user_id: str | None,
        pnr: str | None,
        action: HistoryAction,
        details: str,
    ) -> HistoryEntry:
        entry = HistoryEntry(
            user_id=user_id,
            pnr=pnr,
            action=action,
            details=details,
        )
        self.db.add(entry)
        return entry

    def list_for(self, user_id: str, limit: int = 100) -> list[HistoryEntry]:
        stmt = (
            select(HistoryEntry)
            .where(HistoryEntry.user_id == user_id)
            .order_by(HistoryEntry.created_at.desc(), HistoryEntry.id.desc())
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all())
