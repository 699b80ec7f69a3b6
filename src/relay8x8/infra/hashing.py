"""One-way hashing of 8x8 identifiers.

The digest is deterministic so that the same phone number always maps to the
same hashed user id (and therefore to the same session record).

Security note: the digest is unsalted and unkeyed. Phone numbers live in a
small keyspace, so a determined attacker holding a hash can recover the
number by enumeration. The hash keeps identifiers out of the conversation
platform's transcripts and analytics; it is not a substitute for access
control on those systems.
"""

import hashlib

from relay8x8.config import DEFAULT_HASH_ALGORITHM


def redact(value: str, algorithm: str = DEFAULT_HASH_ALGORITHM) -> str:
    """Return the hex digest of ``value`` under ``algorithm``.

    Args:
        value: Clear identifier (msisdn or channel id). NEVER logged.
        algorithm: Any name accepted by ``hashlib.new`` (default: sha256).

    Returns:
        Lowercase hex digest.

    Raises:
        ValueError: If the algorithm is unknown.
    """
    digest = hashlib.new(algorithm)
    digest.update(value.encode("utf-8"))
    if digest.name.startswith("shake_"):
        # variable-length digests need an explicit size
        return digest.hexdigest(32)  # type: ignore[call-arg]
    return digest.hexdigest()


def redact_if(enabled: bool, value: str, algorithm: str = DEFAULT_HASH_ALGORITHM) -> str:
    """Hash ``value`` only when ``enabled``; otherwise return it unchanged."""
    return redact(value, algorithm) if enabled else value
