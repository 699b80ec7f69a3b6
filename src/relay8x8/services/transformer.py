"""8x8 <-> Cognigy transformer.

Implements the three lifecycle hooks a conversation host calls around one
execution of a flow:

- ``handle_input``: webhook body -> NormalizedInput (records clear ids)
- ``handle_output``: one output -> one 8x8 message (streaming hosts)
- ``handle_execution_finished``: output stack -> single or batch call

The transformer never calls the conversation platform itself; the host
orchestrates both sides.
"""

from __future__ import annotations

from typing import Any, Sequence

from relay8x8.config import AdapterConfig
from relay8x8.infra.session_store import SessionStore
from relay8x8.observability.logging import get_logger
from relay8x8.observability.redaction import safe_log_context
from relay8x8.whatsapp.errors import MissingChannelOutput, MissingIdentifier
from relay8x8.whatsapp.formatter import classify, classify_stack
from relay8x8.whatsapp.inbound import normalize_inbound
from relay8x8.whatsapp.models import NormalizedInput
from relay8x8.whatsapp.sender import EightByEightClient

logger = get_logger(__name__)


def _output_stack(processed_output: Any) -> Sequence[Any]:
    if isinstance(processed_output, list):
        return processed_output
    if isinstance(processed_output, dict):
        stack = processed_output.get("outputStack")
        if isinstance(stack, list):
            return stack
    return []


class EightByEightTransformer:
    """Bidirectional 8x8 WhatsApp <-> conversation platform adapter."""

    def __init__(
        self,
        config: AdapterConfig,
        store: SessionStore,
        client: EightByEightClient | None = None,
    ) -> None:
        self.config = config
        self.store = store
        self.client = client or EightByEightClient(config)

    def handle_input(self, body: Any, *, now: int | None = None) -> NormalizedInput | None:
        """Normalize an 8x8 webhook body. See ``normalize_inbound``."""
        return normalize_inbound(body, config=self.config, store=self.store, now=now)

    def recover_identifiers(self, user_id: str, session_id: str) -> tuple[str, str]:
        """Return the clear (msisdn, channel id) for a possibly hashed pair.

        When an identifier is not hidden the working id is already the clear
        one and is used if the store has nothing.

        Raises:
            MissingIdentifier: If a hidden identifier has no stored clear value.
        """
        record = self.store.get(user_id, session_id)

        clear_user_id = record.clear_user_id
        if clear_user_id is None and not self.config.hide_user_id:
            clear_user_id = user_id

        clear_session_id = record.clear_session_id
        if clear_session_id is None and not self.config.hide_session_id:
            clear_session_id = session_id

        if clear_user_id is None or clear_session_id is None:
            logger.error(
                "no clear identifiers stored for session",
                extra={
                    "extra_fields": safe_log_context(
                        has_user_id=clear_user_id is not None,
                        has_session_id=clear_session_id is not None,
                    )
                },
            )
            raise MissingIdentifier("No stored clear identifiers for session")

        return clear_user_id, clear_session_id

    def handle_output(self, output: dict[str, Any], user_id: str, session_id: str) -> Any:
        """Classify one output and send it as a single 8x8 message.

        Raises:
            MissingIdentifier: If the clear identifiers cannot be recovered.
            MissingChannelOutput: If the output has no WhatsApp equivalent.
            DeliveryError: If 8x8 rejects the request.
        """
        clear_user_id, clear_session_id = self.recover_identifiers(user_id, session_id)

        try:
            message = classify(output, clear_session_id, strict=self.config.strict_interactive)
        except MissingChannelOutput:
            logger.error(
                "missing 8x8 compatible channel output",
                extra={"extra_fields": safe_log_context(output_keys=output)},
            )
            raise

        return self.client.send_message(clear_user_id, message)

    def handle_execution_finished(
        self, processed_output: Any, user_id: str, session_id: str
    ) -> Any:
        """Classify a whole output stack and deliver it in one call.

        Exactly one message uses the single-message endpoint; two or more use
        the batch endpoint. An empty result sends nothing.

        Raises:
            MissingIdentifier: If the clear identifiers cannot be recovered.
            MissingChannelOutput: If no output in the stack is deliverable.
            DeliveryError: If 8x8 rejects the request.
        """
        clear_user_id, clear_session_id = self.recover_identifiers(user_id, session_id)

        stack = _output_stack(processed_output)
        messages = classify_stack(stack, clear_session_id, strict=self.config.strict_interactive)

        if not messages:
            logger.error(
                "missing 8x8 compatible channel output",
                extra={"extra_fields": safe_log_context(stack_size=len(stack))},
            )
            raise MissingChannelOutput("Missing 8x8 compatible channel output")

        return self.client.dispatch(clear_user_id, messages)
