"""Client for a Cognigy REST endpoint.

The bundled webhook service uses it to run the flow for one normalized
input. Any other conversation host can drive the transformer directly.
"""

from typing import Any

import requests

from relay8x8.config import AdapterConfig
from relay8x8.observability.correlation import CORRELATION_ID_HEADER, get_correlation_id
from relay8x8.observability.logging import get_logger
from relay8x8.observability.redaction import safe_log_context
from relay8x8.whatsapp.models import NormalizedInput

logger = get_logger(__name__)


class ExecutionError(Exception):
    """Raised when the conversation endpoint fails or answers garbage."""

    pass


class CognigyEndpointClient:
    """Posts normalized inputs to a Cognigy REST endpoint."""

    def __init__(self, config: AdapterConfig, http: requests.Session | None = None) -> None:
        self._config = config
        self._http = http or requests.Session()

    def execute(self, normalized: NormalizedInput) -> dict[str, Any]:
        """Run the flow for one input and return the processed output.

        Returns:
            Endpoint response; ``outputStack`` holds the generated outputs.

        Raises:
            RuntimeError: If COGNIGY_ENDPOINT_URL is not configured.
            ExecutionError: On transport errors, non-2xx or non-object bodies.
        """
        url = self._config.cognigy_endpoint_url
        if not url:
            raise RuntimeError("Missing Cognigy config: COGNIGY_ENDPOINT_URL required")

        headers = {"Content-Type": "application/json"}
        correlation_id = get_correlation_id()
        if correlation_id:
            headers[CORRELATION_ID_HEADER] = correlation_id

        try:
            response = self._http.post(
                url,
                json=normalized.to_dict(),
                headers=headers,
                timeout=self._config.http_timeout_seconds,
            )
            response.raise_for_status()
            result = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(
                "cognigy endpoint call failed",
                extra={"extra_fields": safe_log_context(error_type=type(e).__name__)},
            )
            raise ExecutionError(f"cognigy endpoint call failed: {type(e).__name__}") from e

        if not isinstance(result, dict):
            raise ExecutionError("cognigy endpoint returned a non-object body")

        stack = result.get("outputStack")
        logger.info(
            "cognigy flow executed",
            extra={
                "extra_fields": safe_log_context(
                    output_count=len(stack) if isinstance(stack, list) else 0
                )
            },
        )
        return result
