"""Adapter error taxonomy."""

from typing import Any


class AdapterError(Exception):
    """Base class for errors raised by the 8x8 adapter."""


class MalformedEvent(AdapterError):
    """Inbound webhook body could not be interpreted as an 8x8 event."""


class MissingIdentifier(AdapterError):
    """Inbound event lacks the user msisdn or the channel id, or the
    clear identifiers for a hashed session cannot be recovered."""


class MissingChannelOutput(AdapterError):
    """Conversation output did not map to any WhatsApp content kind."""


class DeliveryError(AdapterError):
    """8x8 rejected the request or could not be reached.

    Attributes:
        status_code: HTTP status returned by 8x8, None on transport errors.
        body: Diagnostic body returned by 8x8 (parsed JSON when possible).
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
