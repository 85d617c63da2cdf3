# seatbooking/infrastructure/repositories/train_repository.py

import json

from sqlalchemy.orm import Session
from sqlalchemy import Select, select

from seatbooking.domain.exceptions import TrainNotFoundError
from seatbooking.domain.train import Train
from seatbooking.infrastructure.db.models import TrainRecord


class TrainRepository:

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def lock_statement(train_number: str) -> Select:
        return (
            select(TrainRecord)
            .where(TrainRecord.train_number == train_number)
            .with_for_update()
        )

    def lock_train(self, train_number: str) -> TrainRecord:
        """
        SELECT ... FOR UPDATE on the train's registration row.
        Serializes reservations for one train; other trains are unaffected.
        """

        stmt = self.lock_statement(train_number)

        record = self.db.execute(stmt).scalar_one_or_none()

        if not record:
            raise TrainNotFoundError(train_number)

        return record

    def get_by_number(self, train_number: str) -> TrainRecord | None:
        stmt = select(TrainRecord).where(TrainRecord.train_number == train_number)
        return self.db.execute(stmt).scalar_one_or_none()

    def register(self, train: Train) -> TrainRecord:
        record = self.get_by_number(train.train_number)
        route = json.dumps(list(train.route))

        if record:
            record.train_name = train.name
            record.route = route
            record.total_seats = train.total_seats
            return record

        record = TrainRecord(
            train_number=train.train_number,
            train_name=train.name,
            route=route,
            total_seats=train.total_seats,
        )
        self.db.add(record)
        return record
