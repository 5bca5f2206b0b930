"""Server-side session state and the stores that hold it."""

from __future__ import annotations

import json
import sqlite3
import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, Optional, Protocol, Tuple


@dataclass(slots=True)
class SessionState:
    """OAuth progress and credentials held for one browser session."""

    code_verifier: Optional[str] = None
    oauth_state: Optional[str] = None
    access_token: Optional[str] = None
    instance_url: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)

    @property
    def is_pending(self) -> bool:
        return bool(self.code_verifier)

    def begin_flow(self, code_verifier: str, oauth_state: str) -> None:
        self.code_verifier = code_verifier
        self.oauth_state = oauth_state
        self.access_token = None
        self.instance_url = None

    def clear_pending(self) -> None:
        self.code_verifier = None
        self.oauth_state = None

    def authenticate(self, access_token: str, instance_url: str) -> None:
        self.clear_pending()
        self.access_token = access_token
        self.instance_url = instance_url

    def to_json(self) -> str:
        payload = asdict(self)
        payload["created_at"] = self.created_at.isoformat()
        return json.dumps(payload)

    @classmethod
    def from_json(cls, raw: str) -> "SessionState":
        payload = json.loads(raw)
        created_at = datetime.fromisoformat(payload.pop("created_at"))
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return cls(created_at=created_at, **payload)


class SessionStore(Protocol):
    """Storage contract used by the authorization flow."""

    def get(self, session_id: str) -> Optional[SessionState]: ...

    def put(self, session_id: str, state: SessionState) -> None: ...

    def delete(self, session_id: str) -> None: ...


def _expired(state: SessionState, ttl_seconds: int) -> bool:
    return datetime.now(timezone.utc) - state.created_at > timedelta(seconds=ttl_seconds)


class InMemorySessionStore:
    """Process-local store; sessions vanish on restart."""

    def __init__(self, ttl_seconds: int = 3600) -> None:
        self._ttl = ttl_seconds
        self._sessions: Dict[str, Tuple[datetime, str]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _prune(self) -> None:
        """Drop sessions older than the TTL. Caller holds the lock."""
        threshold = datetime.now(timezone.utc) - timedelta(seconds=self._ttl)
        stale = [
            session_id
            for session_id, (created_at, _) in self._sessions.items()
            if created_at < threshold
        ]
        for session_id in stale:
            del self._sessions[session_id]

    def get(self, session_id: str) -> Optional[SessionState]:
        with self._lock:
            self._prune()
            entry = self._sessions.get(session_id)
        if entry is None:
            return None
        state = SessionState.from_json(entry[1])
        if _expired(state, self._ttl):
            self.delete(session_id)
            return None
        return state

    def put(self, session_id: str, state: SessionState) -> None:
        # Stored serialized so callers never share a mutable instance.
        with self._lock:
            self._prune()
            self._sessions[session_id] = (state.created_at, state.to_json())

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)


class SQLiteSessionStore:
    """SQLite-backed session store with TTL pruning."""

    def __init__(self, db_path: str, ttl_seconds: int = 3600) -> None:
        self._db_path = Path(db_path)
        self._ttl = ttl_seconds
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS oauth_sessions (
                    session_id TEXT PRIMARY KEY,
                    data TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """
            )

    def _prune(self, conn: sqlite3.Connection) -> None:
        threshold = (
            datetime.now(timezone.utc) - timedelta(seconds=self._ttl)
        ).isoformat()
        conn.execute("DELETE FROM oauth_sessions WHERE created_at < ?", (threshold,))

    def get(self, session_id: str) -> Optional[SessionState]:
        with self._connect() as conn:
            self._prune(conn)
            row = conn.execute(
                "SELECT data FROM oauth_sessions WHERE session_id = ?",
                (session_id,),
            ).fetchone()
        if not row:
            return None
        return SessionState.from_json(row["data"])

    def put(self, session_id: str, state: SessionState) -> None:
        with self._connect() as conn:
            self._prune(conn)
            conn.execute(
                """
                INSERT INTO oauth_sessions (session_id, data, created_at)
                VALUES (?, ?, ?)
                ON CONFLICT(session_id) DO UPDATE SET data = excluded.data
                """,
                (session_id, state.to_json(), state.created_at.isoformat()),
            )

    def delete(self, session_id: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "DELETE FROM oauth_sessions WHERE session_id = ?",
                (session_id,),
            )


__all__ = [
    "InMemorySessionStore",
    "SQLiteSessionStore",
    "SessionState",
    "SessionStore",
]
