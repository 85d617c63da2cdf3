import logging
from typing import Iterable, List, Optional

from seatbooking.domain.exceptions import TrainNotFoundError
from seatbooking.domain.train import Train


logger = logging.getLogger(__name__)


class TrainCatalog:
    """Registry of scheduled trains. Lookups by number ignore case."""

    def __init__(self, trains: Iterable[Train] = ()):
        self._trains: List[Train] = []
        for train in trains:
            self.add(train)

    def add(self, train: Train) -> bool:
        if self.get_train(train.train_number) is not None:
            logger.warning("Train number %s already exists", train.train_number)
            return False
        self._trains.append(train)
        return True

    def add_train(
        self,
        train_number: str,
        name: str,
        route: Iterable[str],
        total_seats: int,
    ) -> bool:
        return self.add(Train(train_number, name, route, total_seats))

    def get_all_trains(self) -> List[Train]:
        return list(self._trains)

    def get_train(self, train_number: str) -> Optional[Train]:
        wanted = train_number.strip().lower()
        for train in self._trains:
            if train.train_number.lower() == wanted:
                return train
        return None

    def require_train(self, train_number: str) -> Train:
        train = self.get_train(train_number)
        if train is None:
            raise TrainNotFoundError(train_number)
        return train

    def search_trains(self, start_station: str, end_station: str) -> List[Train]:
        return [
            train for train in self._trains
            if train.serves(start_station, end_station)
        ]


def default_catalog() -> TrainCatalog:
    return TrainCatalog([
        Train("T123", "City Express", ["Mumbai", "Pune", "Delhi"], 50),
        Train("T456", "Deccan Queen", ["Mumbai", "Thane", "Pune"], 80),
        Train("T789", "Capital Mail", ["Delhi", "Jaipur", "Ahmedabad"], 60),
    ])
