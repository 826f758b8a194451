from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Tuple

from .base import Sink

logger = logging.getLogger(__name__)


class MultiSink(Sink):
    """
    Fan-out sink: the same record goes to every child sink (e.g. SQLite + JSONL).

    strict=True:
      - first child error is raised
    strict=False:
      - failing children are logged and skipped, the others keep writing
    """

    def __init__(self, sinks: Iterable[Sink], strict: bool = True):
        self.sinks: List[Sink] = [s for s in sinks if s is not None]
        self.strict = strict
        self.errors: List[Tuple[str, Exception]] = []

        if not self.sinks:
            raise ValueError("MultiSink requires at least 1 sink")

    def write(self, record: Dict[str, Any], completeness: Dict[str, Any]) -> None:
        for s in self.sinks:
            try:
                s.write(record, completeness)
            except Exception as e:
                if self.strict:
                    raise
                logger.warning("[SINK] %s write failed: %s", s.__class__.__name__, e)
                self.errors.append((s.__class__.__name__, e))

    def close(self) -> None:
        for s in self.sinks:
            try:
                s.close()
            except Exception as e:
                if self.strict:
                    raise
                logger.warning("[SINK] %s close failed: %s", s.__class__.__name__, e)
