from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Dict

import orjson

from .base import Sink


class SQLiteSink(Sink):
    """
    Agents table keyed by profile_url, a few index columns plus the full
    record JSON. Commits are batched.
    """

    def __init__(self, db_path: str, commit_every: int = 50):
        self.db_path = db_path
        self.commit_every = max(int(commit_every), 1)
        self._pending = 0

        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(db_path)
        self.conn.execute("PRAGMA journal_mode=WAL;")
        self.conn.execute("PRAGMA synchronous=NORMAL;")
        self._init_schema()

    def _init_schema(self) -> None:
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS agents (
              profile_url TEXT PRIMARY KEY,
              agent_id TEXT,
              name TEXT,
              email TEXT,
              phone TEXT,
              company TEXT,

              completeness INTEGER,
              has_critical INTEGER,

              record_json TEXT
            );
            """
        )
        self.conn.execute("CREATE INDEX IF NOT EXISTS idx_agents_company ON agents(company);")
        self.conn.execute("CREATE INDEX IF NOT EXISTS idx_agents_completeness ON agents(completeness);")
        self.conn.commit()

    def write(self, record: Dict[str, Any], completeness: Dict[str, Any]) -> None:
        profile_url = record.get("profileUrl")
        if not profile_url:
            return

        self.conn.execute(
            """
            INSERT INTO agents (
              profile_url, agent_id, name, email, phone, company,
              completeness, has_critical, record_json
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(profile_url) DO UPDATE SET
              agent_id=excluded.agent_id,
              name=excluded.name,
              email=excluded.email,
              phone=excluded.phone,
              company=excluded.company,
              completeness=excluded.completeness,
              has_critical=excluded.has_critical,
              record_json=excluded.record_json
            ;
            """,
            (
                profile_url,
                record.get("agentId"),
                record.get("name"),
                record.get("email"),
                record.get("phone"),
                record.get("company"),
                (completeness or {}).get("percentage"),
                1 if (completeness or {}).get("hasCritical") else 0,
                orjson.dumps(record).decode("utf-8"),
            ),
        )

        self._pending += 1
        if self._pending >= self.commit_every:
            self.conn.commit()
            self._pending = 0

    def close(self) -> None:
        if self._pending:
            self.conn.commit()
            self._pending = 0
        self.conn.close()
