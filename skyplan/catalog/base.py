from abc import ABC, abstractmethod
from typing import Sequence

from skyplan.types import FixedPoint


class CatalogProvider(ABC):
    name: str

    @abstractmethod
    def list_targets(self) -> Sequence[FixedPoint]:
        raise NotImplementedError
