from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Dict


class Sink(ABC):
    """
    Receives finished agent records (every schema key present) together
    with their completeness score dict. Writes are terminal: a record is
    never updated after it reaches a sink.
    """

    @abstractmethod
    def write(self, record: Dict[str, Any], completeness: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def close(self) -> None:
        ...
