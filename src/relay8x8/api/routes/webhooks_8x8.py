"""8x8 WhatsApp webhook route.

Security:
- Clear identifiers (msisdn, channelId) and text exist only in memory here
  and, for the identifiers, in the session store
- The conversation platform receives hashed identifiers
- Logs contain NO PII
"""

import hmac
from typing import Any

from fastapi import APIRouter, Header, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from relay8x8.config import AdapterConfig
from relay8x8.infra.session_store import build_session_store
from relay8x8.observability.correlation import get_correlation_id
from relay8x8.observability.logging import get_logger
from relay8x8.observability.redaction import safe_log_context
from relay8x8.services.cognigy import CognigyEndpointClient, ExecutionError
from relay8x8.services.transformer import EightByEightTransformer
from relay8x8.whatsapp.errors import (
    DeliveryError,
    MalformedEvent,
    MissingChannelOutput,
    MissingIdentifier,
)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

logger = get_logger(__name__)

# Built lazily from the environment, one instance per process
_transformer: EightByEightTransformer | None = None
_executor: CognigyEndpointClient | None = None
_config: AdapterConfig | None = None


def _get_config() -> AdapterConfig:
    global _config
    if _config is None:
        _config = AdapterConfig.from_env()
    return _config


def _get_transformer() -> EightByEightTransformer:
    """Get transformer instance (allows test injection)."""
    global _transformer
    if _transformer is None:
        config = _get_config()
        _transformer = EightByEightTransformer(config, build_session_store(config))
    return _transformer


def _get_executor() -> CognigyEndpointClient:
    """Get conversation executor instance (allows test injection)."""
    global _executor
    if _executor is None:
        _executor = CognigyEndpointClient(_get_config())
    return _executor


def _ok() -> Response:
    return Response(status_code=200, content="ok")


@router.post("/8x8")
async def eightx8_webhook(
    request: Request,
    x_webhook_secret: str | None = Header(None, alias="X-Webhook-Secret"),
) -> Response:
    """Receive an 8x8 WhatsApp webhook, run the flow, deliver the replies.

    Returns:
        200 OK for delivered, ignored and undeliverable-output events.
        400 Bad Request if the message lacks msisdn or channelId.
        401 Unauthorized if EIGHTX8_WEBHOOK_SECRET is set and the
            X-Webhook-Secret header does not match.
        502 Bad Gateway if the flow or the 8x8 delivery fails.
    """
    correlation_id = get_correlation_id()

    # Webhook secret validation (only when configured)
    expected_secret = _get_config().webhook_secret
    if expected_secret and (
        not x_webhook_secret or not hmac.compare_digest(x_webhook_secret, expected_secret)
    ):
        logger.warning(
            "8x8 webhook secret mismatch",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
        )
        return Response(status_code=401, content="unauthorized")

    # 1. Parse JSON
    try:
        body: Any = await request.json()
    except Exception:
        logger.warning(
            "invalid json body",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
        )
        return _ok()

    transformer = _get_transformer()

    # 2. Normalize (hash identifiers, record clear ones)
    try:
        normalized = await run_in_threadpool(transformer.handle_input, body)
    except MalformedEvent as e:
        logger.warning(
            "malformed 8x8 event ignored",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id, error=str(e))},
        )
        return _ok()
    except MissingIdentifier:
        return JSONResponse(status_code=400, content={"error": "Missing userId or sessionId"})

    if normalized is None:
        return _ok()

    # 3. Run the flow
    try:
        processed_output = await run_in_threadpool(_get_executor().execute, normalized)
    except (ExecutionError, RuntimeError):
        logger.exception(
            "conversation execution failed",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
        )
        return Response(status_code=502, content="execution failed")

    # 4. Deliver
    try:
        await run_in_threadpool(
            transformer.handle_execution_finished,
            processed_output,
            normalized.user_id,
            normalized.session_id,
        )
    except MissingChannelOutput:
        # already logged by the transformer; nothing to send is not a failure for 8x8
        return _ok()
    except (DeliveryError, MissingIdentifier, RuntimeError) as e:
        logger.error(
            "8x8 delivery failed",
            extra={
                "extra_fields": safe_log_context(
                    correlationId=correlation_id,
                    error_type=type(e).__name__,
                    status_code=getattr(e, "status_code", None),
                )
            },
        )
        return Response(status_code=502, content="delivery failed")

    return _ok()
