from __future__ import annotations
from pathlib import Path
from typing import Any, Dict

from agent_scraper.core.jsonl import append_jsonl
from .base import Sink


class JsonlSink(Sink):
    """One AgentRecord per line; the completeness score is not part of the record."""

    def __init__(self, out_path: str):
        self.out_path = out_path
        self.written = 0
        p = Path(out_path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.touch(exist_ok=True)

    def write(self, record: Dict[str, Any], completeness: Dict[str, Any]) -> None:
        append_jsonl(self.out_path, record)
        self.written += 1

    def close(self) -> None:
        pass
