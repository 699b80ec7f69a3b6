"""8x8 inbound adapter - validate, de-identify and normalize webhook events.

8x8 payload structure (fields we read):
{
  "eventType": "inbound_message_received",
  "payload": {
    "user": {"msisdn": "+6512345678"},
    "recipient": {"channelId": "..."},
    "content": {"text": "..."}
  }
}
"""

from typing import Any

from relay8x8.config import AdapterConfig
from relay8x8.infra.hashing import redact_if
from relay8x8.infra.session_store import SessionRecord, SessionStore
from relay8x8.infra.time import now_millis
from relay8x8.observability.logging import get_logger
from relay8x8.observability.redaction import hash_for_log, safe_log_context

from .errors import MalformedEvent, MissingIdentifier
from .models import InboundEvent, NormalizedInput

logger = get_logger(__name__)


def _member(container: dict[str, Any], key: str) -> dict[str, Any]:
    """Return a nested object, {} when absent. Non-objects are malformed."""
    value = container.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise MalformedEvent(f"'{key}' must be an object")
    return value


def _identifier(value: Any) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, str)):
        return str(value) or None
    raise MalformedEvent("identifiers must be strings")


def parse_event(body: Any) -> InboundEvent:
    """Extract the event type, clear identifiers and text from a webhook body.

    Args:
        body: Decoded JSON body of the webhook request.

    Returns:
        InboundEvent with clear identifiers (PII).

    Raises:
        MalformedEvent: If the body or one of its nested members has the
            wrong shape.
    """
    if not isinstance(body, dict):
        raise MalformedEvent("webhook body must be a JSON object")

    event_type = body.get("eventType")
    if not isinstance(event_type, str):
        raise MalformedEvent("missing or invalid eventType")

    payload = _member(body, "payload")
    user = _member(payload, "user")
    recipient = _member(payload, "recipient")
    content = _member(payload, "content")

    text = content.get("text")
    if text is not None and not isinstance(text, str):
        text = str(text)

    return InboundEvent(
        event_type=event_type,
        clear_user_id=_identifier(user.get("msisdn")),
        clear_session_id=_identifier(recipient.get("channelId")),
        text=text,
        payload=payload,
    )


def touch_session(
    record: SessionRecord,
    *,
    clear_user_id: str,
    clear_session_id: str,
    now: int,
    timeout_seconds: int,
) -> SessionRecord:
    """Apply one inbound event to a session record, in place.

    Clear identifiers are written only once. The timestamp is initialised on
    first contact and bumped when more than ``timeout_seconds`` have passed
    since it was last set; a timeout of 0 disables the bump. The bump does not
    rotate any key or clear the stored identifiers.
    """
    if record.clear_user_id is None:
        record.clear_user_id = clear_user_id
    if record.clear_session_id is None:
        record.clear_session_id = clear_session_id

    if record.timestamp is None:
        record.timestamp = now
    elif timeout_seconds and now - record.timestamp > timeout_seconds * 1000:
        record.timestamp = now

    return record


def normalize_inbound(
    body: Any,
    *,
    config: AdapterConfig,
    store: SessionStore,
    now: int | None = None,
) -> NormalizedInput | None:
    """Turn an 8x8 webhook body into conversation input.

    Args:
        body: Decoded JSON body of the webhook request.
        config: Adapter configuration (hide flags, algorithm, timeout).
        store: Session store receiving the clear identifiers.
        now: Epoch millis, defaults to the current time.

    Returns:
        NormalizedInput, or None when the event is not an inbound message.

    Raises:
        MalformedEvent: If the body has an invalid shape.
        MissingIdentifier: If msisdn or channelId is absent.
    """
    event = parse_event(body)

    if not event.is_actionable:
        logger.debug(
            "non-message 8x8 event ignored",
            extra={"extra_fields": safe_log_context(event_type=event.event_type)},
        )
        return None

    if not event.clear_user_id or not event.clear_session_id:
        logger.error(
            "missing userId or sessionId in inbound message",
            extra={
                "extra_fields": safe_log_context(
                    has_user_id=bool(event.clear_user_id),
                    has_session_id=bool(event.clear_session_id),
                    payload=event.payload,
                )
            },
        )
        raise MissingIdentifier("Missing userId or sessionId")

    user_id = redact_if(config.hide_user_id, event.clear_user_id, config.hash_algorithm)
    session_id = redact_if(
        config.hide_session_id, event.clear_session_id, config.hash_algorithm
    )

    record = store.get(user_id, session_id)
    touch_session(
        record,
        clear_user_id=event.clear_user_id,
        clear_session_id=event.clear_session_id,
        now=now if now is not None else now_millis(),
        timeout_seconds=config.session_timeout_seconds,
    )
    store.put(user_id, session_id, record)

    logger.info(
        "8x8 inbound message normalized",
        extra={
            "extra_fields": safe_log_context(
                user_hash=hash_for_log(event.clear_user_id),
                session_hash=hash_for_log(event.clear_session_id),
                text_len=len(event.text) if event.text is not None else None,
            )
        },
    )

    return NormalizedInput(
        user_id=user_id,
        session_id=session_id,
        text=event.text,
        data=event.payload,
    )
