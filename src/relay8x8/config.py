"""Adapter configuration.

All tunables live in one frozen ``AdapterConfig`` that is built once (usually
from the environment) and handed to the normalizer, the formatter and the
8x8 client. Nothing in the package reads configuration from globals.
"""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass
from typing import Literal

DEFAULT_BASE_URL = "https://chatapps.8x8.com/api/v1/subaccounts"
DEFAULT_SESSION_TIMEOUT_SECONDS = 1800
DEFAULT_HASH_ALGORITHM = "sha256"
DEFAULT_HTTP_TIMEOUT_SECONDS = 10.0

SessionStoreBackend = Literal["memory", "postgres"]

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


@dataclass(frozen=True)
class AdapterConfig:
    """Static configuration for the 8x8 WhatsApp adapter.

    Attributes:
        api_key: 8x8 Connect API key (Bearer token).
        sub_account_id: 8x8 sub-account the messages are sent from.
        base_url: Sub-accounts root of the 8x8 Chat Apps API.
        session_timeout_seconds: Idle interval after which the session
            timestamp is bumped. 0 disables the check.
        hide_user_id: Hash the user's phone number before it leaves the adapter.
        hide_session_id: Hash the channel id before it leaves the adapter.
        hash_algorithm: Any algorithm name accepted by ``hashlib.new``.
        strict_interactive: Reject interactive prompts whose required fields
            are missing instead of filling in defaults.
        http_timeout_seconds: Timeout applied to outbound HTTP calls.
        cognigy_endpoint_url: REST endpoint of the conversation flow, used by
            the bundled webhook service.
        session_store_backend: "memory" or "postgres".
        webhook_secret: Shared secret expected in the X-Webhook-Secret header
            of inbound webhooks. Empty disables the check.
    """

    api_key: str = ""
    sub_account_id: str = ""
    base_url: str = DEFAULT_BASE_URL
    session_timeout_seconds: int = DEFAULT_SESSION_TIMEOUT_SECONDS
    hide_user_id: bool = True
    hide_session_id: bool = True
    hash_algorithm: str = DEFAULT_HASH_ALGORITHM
    strict_interactive: bool = True
    http_timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS
    cognigy_endpoint_url: str = ""
    session_store_backend: SessionStoreBackend = "memory"
    webhook_secret: str = ""

    def __post_init__(self) -> None:
        if self.hash_algorithm not in hashlib.algorithms_available:
            raise ValueError(f"Unsupported hash algorithm: {self.hash_algorithm}")
        if self.session_timeout_seconds < 0:
            raise ValueError("session_timeout_seconds must be >= 0")
        if self.session_store_backend not in ("memory", "postgres"):
            raise ValueError(f"Unknown session store backend: {self.session_store_backend}")
        # trailing slashes would produce "//" in request URLs
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    @classmethod
    def from_env(cls) -> AdapterConfig:
        """Build configuration from environment variables.

        Env vars:
        - EIGHTX8_API_KEY, EIGHTX8_SUBACCOUNT_ID, EIGHTX8_BASE_URL
        - SESSION_TIMEOUT_SECONDS (default: 1800, 0 disables)
        - HIDE_USER_ID, HIDE_SESSION_ID (default: true)
        - HASH_ALGORITHM (default: sha256)
        - STRICT_INTERACTIVE (default: true)
        - EIGHTX8_HTTP_TIMEOUT (default: 10 seconds)
        - COGNIGY_ENDPOINT_URL
        - SESSION_STORE_BACKEND (default: memory)
        - EIGHTX8_WEBHOOK_SECRET (default: unset, no check)
        """
        return cls(
            api_key=os.environ.get("EIGHTX8_API_KEY", ""),
            sub_account_id=os.environ.get("EIGHTX8_SUBACCOUNT_ID", ""),
            base_url=os.environ.get("EIGHTX8_BASE_URL", DEFAULT_BASE_URL),
            session_timeout_seconds=_env_int(
                "SESSION_TIMEOUT_SECONDS", DEFAULT_SESSION_TIMEOUT_SECONDS
            ),
            hide_user_id=_env_bool("HIDE_USER_ID", True),
            hide_session_id=_env_bool("HIDE_SESSION_ID", True),
            hash_algorithm=os.environ.get("HASH_ALGORITHM", DEFAULT_HASH_ALGORITHM),
            strict_interactive=_env_bool("STRICT_INTERACTIVE", True),
            http_timeout_seconds=_env_float("EIGHTX8_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT_SECONDS),
            cognigy_endpoint_url=os.environ.get("COGNIGY_ENDPOINT_URL", ""),
            session_store_backend=os.environ.get("SESSION_STORE_BACKEND", "memory"),  # type: ignore[arg-type]
            webhook_secret=os.environ.get("EIGHTX8_WEBHOOK_SECRET", ""),
        )

    def validate_for_dispatch(self) -> None:
        """Raise RuntimeError if the 8x8 credentials are not configured."""
        missing = [
            name
            for name, value in (
                ("EIGHTX8_API_KEY", self.api_key),
                ("EIGHTX8_SUBACCOUNT_ID", self.sub_account_id),
            )
            if not value
        ]
        if missing:
            raise RuntimeError(f"Missing 8x8 config: {', '.join(missing)} required")

    @property
    def messages_url(self) -> str:
        return f"{self.base_url}/{self.sub_account_id}/messages"

    @property
    def batch_messages_url(self) -> str:
        return f"{self.messages_url}/batch"
