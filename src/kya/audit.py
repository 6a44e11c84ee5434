"""
kya.audit — Audit sinks for issued commitments.

A sink is handed every commitment the HMAC issuer produces. It is consulted
for history and hash lookups, never for verification correctness.

Backends: MemoryAuditSink, SQLiteAuditSink, NullAuditSink
"""

import sqlite3
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional

from kya.models import Commitment


# ─── Abstract Sink ─────────────────────────────────────────────────

class AuditSink(ABC):
    """Persistence interface for issued commitments."""

    @abstractmethod
    def record(self, commitment: Commitment) -> None: ...

    @abstractmethod
    def get(self, commitment_hash: str) -> Optional[Commitment]: ...

    @abstractmethod
    def history(self, agent_id: str, limit: int = 50) -> list[Commitment]: ...

    def close(self) -> None:
        pass


class DuplicateCommitment(Exception):
    """A commitment with the same content hash was already recorded."""


# ─── Null Sink ─────────────────────────────────────────────────────

class NullAuditSink(AuditSink):
    """Discards everything."""

    def record(self, commitment: Commitment) -> None:
        pass

    def get(self, commitment_hash: str) -> Optional[Commitment]:
        return None

    def history(self, agent_id: str, limit: int = 50) -> list[Commitment]:
        return []


# ─── Memory Sink ───────────────────────────────────────────────────

class MemoryAuditSink(AuditSink):
    """In-memory sink (default, for testing)."""

    def __init__(self):
        self._lock = threading.Lock()
        self._by_hash: dict[str, Commitment] = {}

    def record(self, commitment: Commitment) -> None:
        with self._lock:
            if commitment.content_hash in self._by_hash:
                raise DuplicateCommitment(commitment.content_hash)
            self._by_hash[commitment.content_hash] = commitment

    def get(self, commitment_hash: str) -> Optional[Commitment]:
        return self._by_hash.get(commitment_hash)

    def history(self, agent_id: str, limit: int = 50) -> list[Commitment]:
        with self._lock:
            matches = [c for c in self._by_hash.values() if c.agent_id == agent_id]
        return list(reversed(matches))[:limit]

    def __len__(self) -> int:
        return len(self._by_hash)


# ─── SQLite Sink ───────────────────────────────────────────────────

class SQLiteAuditSink(AuditSink):
    """File-based SQLite with WAL mode, thread-safe."""

    def __init__(self, db_path: str = "kya_audit.db"):
        self._db_path = db_path
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        if db_path != ":memory:":
            self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS commitments (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                agent_id TEXT NOT NULL,
                score INTEGER NOT NULL,
                tier TEXT NOT NULL,
                created_at TEXT NOT NULL,
                expires_at TEXT NOT NULL,
                commitment_hash TEXT NOT NULL UNIQUE,
                signature TEXT NOT NULL,
                recorded_at TEXT NOT NULL
            )
        """)
        self._conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_commitments_agent ON commitments(agent_id)"
        )
        self._conn.commit()

    def record(self, commitment: Commitment) -> None:
        with self._lock:
            try:
                self._conn.execute(
                    """INSERT INTO commitments
                       (agent_id, score, tier, created_at, expires_at,
                        commitment_hash, signature, recorded_at)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        commitment.agent_id,
                        commitment.score,
                        commitment.tier.value,
                        commitment.issued_at,
                        commitment.expires_at,
                        commitment.content_hash,
                        commitment.signature,
                        datetime.now(timezone.utc).isoformat(),
                    ),
                )
                self._conn.commit()
            except sqlite3.IntegrityError as e:
                raise DuplicateCommitment(commitment.content_hash) from e

    def get(self, commitment_hash: str) -> Optional[Commitment]:
        with self._lock:
            row = self._conn.execute(
                """SELECT agent_id, score, tier, created_at, expires_at,
                          commitment_hash, signature
                   FROM commitments WHERE commitment_hash = ?""",
                (commitment_hash,),
            ).fetchone()
        return _row_to_commitment(row) if row else None

    def history(self, agent_id: str, limit: int = 50) -> list[Commitment]:
        with self._lock:
            rows = self._conn.execute(
                """SELECT agent_id, score, tier, created_at, expires_at,
                          commitment_hash, signature
                   FROM commitments WHERE agent_id = ?
                   ORDER BY id DESC LIMIT ?""",
                (agent_id, limit),
            ).fetchall()
        return [_row_to_commitment(r) for r in rows]

    def __len__(self) -> int:
        with self._lock:
            row = self._conn.execute("SELECT COUNT(*) FROM commitments").fetchone()
        return row[0]

    def close(self) -> None:
        with self._lock:
            self._conn.close()


def _row_to_commitment(row) -> Commitment:
    agent_id, score, tier, created_at, expires_at, commitment_hash, signature = row
    return Commitment.from_dict({
        "agent_id": agent_id,
        "score": score,
        "tier": tier,
        "timestamp": created_at,
        "expires_at": expires_at,
        "commitment_hash": commitment_hash,
        "signature": signature,
    })


def open_sink(path: Optional[str]) -> AuditSink:
    """SQLite sink at `path`, or an in-memory sink when no path is configured."""
    if path:
        return SQLiteAuditSink(path)
    return MemoryAuditSink()
