"""WhatsApp message models.

Inbound side: ``InboundEvent`` (clear identifiers, webhook-scope only) and
``NormalizedInput`` (what the conversation platform receives).

Outbound side: ``OutgoingMessage`` is a closed union with one dataclass per
WhatsApp content kind. Code that consumes it must handle every member.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Union

INBOUND_MESSAGE_RECEIVED = "inbound_message_received"


@dataclass(frozen=True)
class InboundEvent:
    """8x8 webhook event with clear identifiers.

    ATTENTION PII:
    - `clear_user_id`, `clear_session_id` and `text` are PII
    - Keep in memory during the webhook only; NEVER log
    """

    event_type: str
    clear_user_id: str | None
    clear_session_id: str | None
    text: str | None
    payload: dict[str, Any]

    @property
    def is_actionable(self) -> bool:
        return self.event_type == INBOUND_MESSAGE_RECEIVED


@dataclass(frozen=True)
class NormalizedInput:
    """Input handed to the conversation platform.

    `user_id` and `session_id` are hashed when the corresponding hide flag is
    on. `data` is the raw 8x8 payload, passed through untouched.
    """

    user_id: str
    session_id: str
    text: str | None
    data: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "sessionId": self.session_id,
            "text": self.text,
            "data": self.data,
        }


# ---------------------------------------------------------------------------
# Outgoing messages
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TextMessage:
    content_type: ClassVar[str] = "text"

    from_: str
    text: str


@dataclass(frozen=True)
class ImageMessage:
    content_type: ClassVar[str] = "image"

    from_: str
    url: str
    caption: str = ""


@dataclass(frozen=True)
class AudioMessage:
    content_type: ClassVar[str] = "audio"

    from_: str
    url: str


@dataclass(frozen=True)
class VideoMessage:
    content_type: ClassVar[str] = "video"

    from_: str
    url: str
    caption: str = ""


@dataclass(frozen=True)
class TemplateMessage:
    content_type: ClassVar[str] = "template"

    from_: str
    name: str
    language: str = "en"
    components: list[Any] = field(default_factory=list)


@dataclass(frozen=True)
class ReplyButton:
    id: str
    title: str


@dataclass(frozen=True)
class ButtonPrompt:
    """Reply-button prompt. WhatsApp renders at most 3 buttons."""

    body: str
    buttons: list[ReplyButton]
    header: str | None = None
    footer: str | None = None


@dataclass(frozen=True)
class ListRow:
    id: str
    title: str
    description: str | None = None


@dataclass(frozen=True)
class ListSection:
    title: str
    rows: list[ListRow]


@dataclass(frozen=True)
class ListPrompt:
    """List prompt: a button that opens one or more sections of rows."""

    body: str
    button: str
    sections: list[ListSection]
    header: str | None = None
    footer: str | None = None


@dataclass(frozen=True)
class InteractiveMessage:
    content_type: ClassVar[str] = "interactive"

    from_: str
    prompt: ButtonPrompt | ListPrompt


OutgoingMessage = Union[
    TextMessage,
    ImageMessage,
    AudioMessage,
    VideoMessage,
    TemplateMessage,
    InteractiveMessage,
]
