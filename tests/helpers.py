"""Shared test helpers for relay8x8 tests.

Regular functions and classes, not fixtures; importable from any test module.
"""

from __future__ import annotations

from typing import Any

# Synthetic identifiers, not real numbers
TEST_MSISDN = "+6500000001"
TEST_CHANNEL_ID = "channel-test-0001"


def make_inbound_body(
    msisdn: str | None = TEST_MSISDN,
    channel_id: str | None = TEST_CHANNEL_ID,
    text: str | None = "hello there",
    event_type: str = "inbound_message_received",
) -> dict[str, Any]:
    """Build an 8x8 inbound webhook body."""
    payload: dict[str, Any] = {
        "umid": "c4c8e0d2-0000-0000-0000-000000000000",
        "user": {},
        "recipient": {"type": "whatsapp"},
        "content": {"type": "text"},
    }
    if msisdn is not None:
        payload["user"]["msisdn"] = msisdn
    if channel_id is not None:
        payload["recipient"]["channelId"] = channel_id
    if text is not None:
        payload["content"]["text"] = text
    return {"eventType": event_type, "payload": payload}


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code: int = 200, json_body: Any = None, text: str = "") -> None:
        self.status_code = status_code
        self._json_body = json_body
        self.text = text

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        if self._json_body is None:
            raise ValueError("no json body")
        return self._json_body

    def raise_for_status(self) -> None:
        import requests

        if not self.ok:
            raise requests.HTTPError(f"HTTP {self.status_code}")


class RecordingHttp:
    """Records POST calls and replays canned responses (or raises)."""

    def __init__(self, *responses: Any) -> None:
        self.calls: list[dict[str, Any]] = []
        self._responses = list(responses) or [FakeResponse(200, {"umid": "ok"})]

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"url": url, **kwargs})
        response = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(response, Exception):
            raise response
        return response


class LogRecorder:
    """Capture logger calls deterministically."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple, dict]] = []

    def _record(self, level: str, *args: Any, **kwargs: Any) -> None:
        self.calls.append((level, args, kwargs))

    def info(self, *args: Any, **kwargs: Any) -> None:
        self._record("info", *args, **kwargs)

    def warning(self, *args: Any, **kwargs: Any) -> None:
        self._record("warning", *args, **kwargs)

    def error(self, *args: Any, **kwargs: Any) -> None:
        self._record("error", *args, **kwargs)

    def exception(self, *args: Any, **kwargs: Any) -> None:
        self._record("exception", *args, **kwargs)

    def debug(self, *args: Any, **kwargs: Any) -> None:
        self._record("debug", *args, **kwargs)

    def get_all_logged_content(self) -> str:
        parts = []
        for _, args, kwargs in self.calls:
            parts.append(str(args))
            parts.append(str(kwargs))
        return " ".join(parts)

    def extra_fields(self, level: str) -> list[dict[str, Any]]:
        return [
            kwargs.get("extra", {}).get("extra_fields", {})
            for lvl, _, kwargs in self.calls
            if lvl == level
        ]
