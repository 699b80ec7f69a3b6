"""Session store: hashed identifiers -> clear identifiers.

The store is the only place the real phone number and channel id survive
after hashing. Losing a record means replies to that conversation can no
longer be addressed.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from relay8x8.config import AdapterConfig


@dataclass
class SessionRecord:
    """Mutable per-session state, keyed by (hashed user id, hashed session id).

    Attributes:
        clear_user_id: User's msisdn as received from 8x8. NEVER logged.
        clear_session_id: 8x8 channel id as received. NEVER logged.
        timestamp: Epoch millis of the last session (re)start.
    """

    clear_user_id: str | None = None
    clear_session_id: str | None = None
    timestamp: int | None = None


class SessionStore(Protocol):
    """Create-or-fetch key-value storage for session records."""

    def get(self, user_id: str, session_id: str) -> SessionRecord:
        """Return the record for the pair, or a fresh empty one."""
        ...

    def put(self, user_id: str, session_id: str, record: SessionRecord) -> None:
        """Persist the record for the pair (last write wins)."""
        ...


class InMemorySessionStore:
    """Process-local store. No eviction; suitable for tests and single-process dev."""

    def __init__(self) -> None:
        self._records: dict[tuple[str, str], SessionRecord] = {}

    def get(self, user_id: str, session_id: str) -> SessionRecord:
        record = self._records.get((user_id, session_id))
        # hand out a copy so callers must put() to persist changes
        return replace(record) if record is not None else SessionRecord()

    def put(self, user_id: str, session_id: str, record: SessionRecord) -> None:
        self._records[(user_id, session_id)] = replace(record)

    def __len__(self) -> int:
        return len(self._records)


def build_session_store(config: AdapterConfig) -> SessionStore:
    """Instantiate the backend selected by ``config.session_store_backend``."""
    if config.session_store_backend == "postgres":
        from relay8x8.infra.session_records import PostgresSessionStore

        return PostgresSessionStore()
    return InMemorySessionStore()
