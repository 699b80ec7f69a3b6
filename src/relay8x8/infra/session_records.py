"""Postgres-backed session store.

Clear identifiers are persisted encrypted (AES-256-GCM) so that a database
dump alone does not reveal phone numbers.

Security:
- Key from SESSION_RECORDS_KEY (32 bytes, hex encoded)
- Rows expire after SESSION_RECORD_TTL_HOURS (default 24), refreshed on write
- Clear identifiers are never logged, even encrypted
"""

from __future__ import annotations

import base64
import os
from datetime import timedelta

from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from psycopg2.extensions import cursor as PgCursor

from relay8x8.infra.db import txn
from relay8x8.infra.session_store import SessionRecord
from relay8x8.infra.time import utc_now

DEFAULT_TTL_HOURS = 24

_NONCE_SIZE = 12


def _get_ttl() -> timedelta:
    raw = os.environ.get("SESSION_RECORD_TTL_HOURS", "")
    hours = int(raw) if raw else DEFAULT_TTL_HOURS
    return timedelta(hours=hours)


def _get_encryption_key() -> bytes:
    """Get the AES-256 key for session record encryption.

    Raises:
        RuntimeError: If SESSION_RECORDS_KEY is not configured or invalid.
    """
    key_hex = os.environ.get("SESSION_RECORDS_KEY")
    if not key_hex:
        raise RuntimeError(
            "SESSION_RECORDS_KEY not configured. Generate with: openssl rand -hex 32"
        )
    try:
        key = bytes.fromhex(key_hex)
    except ValueError:
        raise RuntimeError("SESSION_RECORDS_KEY must be hex encoded") from None
    if len(key) != 32:
        raise RuntimeError(
            "SESSION_RECORDS_KEY must be 32 bytes hex (64 hex chars). "
            "Generate with: openssl rand -hex 32"
        )
    return key


def encrypt(plaintext: str) -> str:
    """Encrypt with AES-256-GCM. Returns base64(nonce + ciphertext)."""
    aesgcm = AESGCM(_get_encryption_key())
    nonce = os.urandom(_NONCE_SIZE)
    ciphertext = aesgcm.encrypt(nonce, plaintext.encode(), None)
    return base64.b64encode(nonce + ciphertext).decode()


def decrypt(encrypted: str) -> str:
    """Reverse of ``encrypt``."""
    aesgcm = AESGCM(_get_encryption_key())
    data = base64.b64decode(encrypted)
    plaintext = aesgcm.decrypt(data[:_NONCE_SIZE], data[_NONCE_SIZE:], None)
    return plaintext.decode()


def _encrypt_optional(value: str | None) -> str | None:
    return encrypt(value) if value is not None else None


def _decrypt_optional(value: str | None) -> str | None:
    return decrypt(value) if value is not None else None


def load_record(cur: PgCursor, *, user_id: str, session_id: str) -> SessionRecord | None:
    """Fetch and decrypt the live record for the pair, or None."""
    cur.execute(
        """
        SELECT clear_user_id_enc, clear_session_id_enc, started_at_ms
        FROM session_records
        WHERE user_hash = %s AND session_hash = %s AND expires_at > now()
        """,
        (user_id, session_id),
    )
    row = cur.fetchone()
    if row is None:
        return None

    return SessionRecord(
        clear_user_id=_decrypt_optional(row[0]),
        clear_session_id=_decrypt_optional(row[1]),
        timestamp=row[2],
    )


def save_record(
    cur: PgCursor,
    *,
    user_id: str,
    session_id: str,
    record: SessionRecord,
) -> None:
    """Upsert the record and push its expiry forward."""
    expires_at = utc_now() + _get_ttl()

    cur.execute(
        """
        INSERT INTO session_records (
            user_hash, session_hash, clear_user_id_enc, clear_session_id_enc,
            started_at_ms, expires_at
        )
        VALUES (%s, %s, %s, %s, %s, %s)
        ON CONFLICT (user_hash, session_hash) DO UPDATE
        SET clear_user_id_enc = EXCLUDED.clear_user_id_enc,
            clear_session_id_enc = EXCLUDED.clear_session_id_enc,
            started_at_ms = EXCLUDED.started_at_ms,
            expires_at = EXCLUDED.expires_at
        """,
        (
            user_id,
            session_id,
            _encrypt_optional(record.clear_user_id),
            _encrypt_optional(record.clear_session_id),
            record.timestamp,
            expires_at,
        ),
    )


def cleanup_expired(cur: PgCursor) -> int:
    """Delete expired session records. Returns the number of rows removed."""
    cur.execute("DELETE FROM session_records WHERE expires_at <= now()")
    return cur.rowcount


class PostgresSessionStore:
    """SessionStore backed by the session_records table (see migrations)."""

    def get(self, user_id: str, session_id: str) -> SessionRecord:
        with txn() as cur:
            record = load_record(cur, user_id=user_id, session_id=session_id)
        return record if record is not None else SessionRecord()

    def put(self, user_id: str, session_id: str, record: SessionRecord) -> None:
        with txn() as cur:
            save_record(cur, user_id=user_id, session_id=session_id, record=record)
