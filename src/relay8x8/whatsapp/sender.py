"""Outbound WhatsApp messaging via the 8x8 Chat Apps API.

Security: NEVER log the msisdn or message text. Only log hashes, types and
counts. Delivery is attempted once: no retry, no backoff, no idempotency key.
"""

from __future__ import annotations

from typing import Any, Sequence

import requests

from relay8x8.config import AdapterConfig
from relay8x8.observability.correlation import CORRELATION_ID_HEADER, get_correlation_id
from relay8x8.observability.logging import get_logger
from relay8x8.observability.redaction import hash_for_log, redact_body, safe_log_context

from .errors import DeliveryError, MissingChannelOutput
from .models import (
    AudioMessage,
    ButtonPrompt,
    ImageMessage,
    InteractiveMessage,
    ListPrompt,
    OutgoingMessage,
    TemplateMessage,
    TextMessage,
    VideoMessage,
)

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Wire mapping
# ---------------------------------------------------------------------------


def _interactive_content(prompt: ButtonPrompt | ListPrompt) -> dict[str, Any]:
    if isinstance(prompt, ButtonPrompt):
        content: dict[str, Any] = {"type": "button"}
        action: dict[str, Any] = {
            "buttons": [
                {"type": "reply", "reply": {"id": button.id, "title": button.title}}
                for button in prompt.buttons
            ]
        }
    elif isinstance(prompt, ListPrompt):
        content = {"type": "list"}
        action = {
            "button": prompt.button,
            "sections": [
                {
                    "title": section.title,
                    "rows": [_list_row(row) for row in section.rows],
                }
                for section in prompt.sections
            ],
        }
    else:
        raise TypeError(f"Unsupported interactive prompt: {type(prompt).__name__}")

    if prompt.header is not None:
        content["header"] = {"type": "text", "text": prompt.header}
    content["body"] = {"text": prompt.body}
    if prompt.footer is not None:
        content["footer"] = {"text": prompt.footer}
    content["action"] = action
    return content


def _list_row(row: Any) -> dict[str, Any]:
    item = {"id": row.id, "title": row.title}
    if row.description is not None:
        item["description"] = row.description
    return item


def build_content(message: OutgoingMessage) -> dict[str, Any]:
    """Map one outgoing message to the ``content`` object of the 8x8 API.

    Raises:
        TypeError: If ``message`` is not a member of OutgoingMessage.
    """
    if isinstance(message, TextMessage):
        return {"text": message.text}
    if isinstance(message, ImageMessage):
        return {"url": message.url, "text": message.caption}
    if isinstance(message, AudioMessage):
        return {"url": message.url}
    if isinstance(message, VideoMessage):
        return {"url": message.url, "text": message.caption}
    if isinstance(message, TemplateMessage):
        return {
            "template": {
                "name": message.name,
                "language": message.language,
                "components": list(message.components),
            }
        }
    if isinstance(message, InteractiveMessage):
        return _interactive_content(message.prompt)
    raise TypeError(f"Unsupported message type: {type(message).__name__}")


def build_message_body(msisdn: str, message: OutgoingMessage) -> dict[str, Any]:
    """Build the request body for one message to ``msisdn``."""
    return {
        "user": {"msisdn": msisdn},
        "type": message.content_type,
        "content": build_content(message),
    }


def build_batch_body(msisdn: str, messages: Sequence[OutgoingMessage]) -> dict[str, Any]:
    """Build the batch request body; message order is preserved."""
    return {"messages": [build_message_body(msisdn, message) for message in messages]}


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


def _response_body(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or None


class EightByEightClient:
    """Sends WhatsApp messages through one 8x8 sub-account."""

    def __init__(self, config: AdapterConfig, http: requests.Session | None = None) -> None:
        self._config = config
        self._http = http or requests.Session()

    def _headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._config.api_key}",
        }
        correlation_id = get_correlation_id()
        if correlation_id:
            headers[CORRELATION_ID_HEADER] = correlation_id
        return headers

    def _post(self, url: str, body: dict[str, Any], log_ctx: dict[str, str]) -> Any:
        self._config.validate_for_dispatch()

        logger.info("sending outbound message via 8x8", extra={"extra_fields": log_ctx})

        try:
            response = self._http.post(
                url,
                json=body,
                headers=self._headers(),
                timeout=self._config.http_timeout_seconds,
            )
        except requests.RequestException as e:
            logger.error(
                "outbound send via 8x8 failed",
                extra={
                    "extra_fields": safe_log_context(**log_ctx, error_type=type(e).__name__)
                },
            )
            raise DeliveryError(f"8x8 request failed: {type(e).__name__}") from e

        response_body = _response_body(response)

        if not 200 <= response.status_code < 300:
            logger.error(
                "outbound send via 8x8 rejected",
                extra={
                    "extra_fields": {
                        **safe_log_context(**log_ctx, status_code=response.status_code),
                        "error_response": redact_body(response_body),
                    }
                },
            )
            raise DeliveryError(
                f"8x8 returned HTTP {response.status_code}",
                status_code=response.status_code,
                body=response_body,
            )

        logger.info(
            "outbound message sent via 8x8",
            extra={"extra_fields": safe_log_context(**log_ctx, status_code=response.status_code)},
        )
        return response_body

    def send_message(self, msisdn: str, message: OutgoingMessage) -> Any:
        """POST one message to ``{base}/{subAccountId}/messages``.

        Args:
            msisdn: Recipient phone number (E.164). NEVER logged.
            message: Message to deliver.

        Returns:
            Decoded 8x8 response body.

        Raises:
            DeliveryError: On transport errors or non-2xx responses.
            RuntimeError: If the 8x8 credentials are not configured.
        """
        log_ctx = safe_log_context(
            to_hash=hash_for_log(msisdn),
            content_type=message.content_type,
            endpoint="messages",
        )
        return self._post(self._config.messages_url, build_message_body(msisdn, message), log_ctx)

    def send_batch(self, msisdn: str, messages: Sequence[OutgoingMessage]) -> Any:
        """POST several messages to ``{base}/{subAccountId}/messages/batch``."""
        log_ctx = safe_log_context(
            to_hash=hash_for_log(msisdn),
            message_count=len(messages),
            content_types=",".join(m.content_type for m in messages),
            endpoint="messages/batch",
        )
        return self._post(
            self._config.batch_messages_url, build_batch_body(msisdn, messages), log_ctx
        )

    def dispatch(self, msisdn: str, messages: Sequence[OutgoingMessage]) -> Any:
        """Send ``messages`` with the fewest calls: single for 1, batch for more.

        Raises:
            MissingChannelOutput: If ``messages`` is empty (nothing is sent).
        """
        if not messages:
            raise MissingChannelOutput("Missing 8x8 compatible channel output")
        if len(messages) == 1:
            return self.send_message(msisdn, messages[0])
        return self.send_batch(msisdn, messages)
