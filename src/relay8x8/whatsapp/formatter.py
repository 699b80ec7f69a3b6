"""Conversation output -> WhatsApp content classification.

Cognigy describes rich output under ``data._cognigy._default._<kind>``; flows
that build payloads by hand put them directly under ``data.<kind>``. Both
locations are accepted, the Cognigy one first.

Classification order (first match wins):
1. template
2. media: video, image, audio
3. interactive: quick replies or list
4. plain text
"""

from __future__ import annotations

from typing import Any, Sequence

from relay8x8.observability.logging import get_logger
from relay8x8.observability.redaction import safe_log_context

from .errors import MissingChannelOutput
from .models import (
    AudioMessage,
    ButtonPrompt,
    ImageMessage,
    InteractiveMessage,
    ListPrompt,
    ListRow,
    ListSection,
    OutgoingMessage,
    ReplyButton,
    TemplateMessage,
    TextMessage,
    VideoMessage,
)

logger = get_logger(__name__)

# WhatsApp platform limit for reply buttons
MAX_REPLY_BUTTONS = 3

DEFAULT_TEMPLATE_LANGUAGE = "en"
DEFAULT_INTERACTIVE_PROMPT = "Please choose an option:"
DEFAULT_LIST_BUTTON = "Options"
DEFAULT_SECTION_TITLE = "Options"

# Caption candidates, in priority order
IMAGE_CAPTION_FIELDS = ("fallbackText", "imageAltText")
VIDEO_CAPTION_FIELDS = ("fallbackText", "videoAltText")


def first_present(source: dict[str, Any], candidates: Sequence[str], default: str = "") -> str:
    """Return the first non-empty string value among ``candidates``.

    Used for every fallback chain (media captions, list button labels,
    prompt texts) so the rule is the same everywhere: missing keys, None
    and empty strings are skipped, anything else is stringified.
    """
    for key in candidates:
        value = source.get(key)
        if value is None or value == "":
            continue
        return value if isinstance(value, str) else str(value)
    return default


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _find_directive(output: dict[str, Any], kind: str) -> dict[str, Any] | None:
    """Locate the directive for ``kind`` in an output, or None."""
    data = _as_dict(output.get("data"))
    default = _as_dict(_as_dict(data.get("_cognigy")).get("_default"))

    for candidate in (default.get(f"_{kind}"), data.get(kind), data.get(f"_{kind}")):
        if isinstance(candidate, dict):
            return candidate
    return None


def _text_block(value: Any) -> str | None:
    """Header/footer may come as a plain string or as {"text": ...}."""
    if isinstance(value, dict):
        value = value.get("text")
    if value is None or value == "":
        return None
    return str(value)


# ---------------------------------------------------------------------------
# Per-kind builders. Each returns None when the directive is unusable.
# ---------------------------------------------------------------------------


def _build_template(directive: dict[str, Any], from_: str) -> TemplateMessage | None:
    name = directive.get("name")
    if not name:
        return None

    language = directive.get("language")
    if isinstance(language, dict):
        language = language.get("code")

    components = directive.get("components")
    return TemplateMessage(
        from_=from_,
        name=str(name),
        language=str(language) if language else DEFAULT_TEMPLATE_LANGUAGE,
        components=list(components) if isinstance(components, list) else [],
    )


def _build_media(output: dict[str, Any], from_: str) -> OutgoingMessage | None:
    video = _find_directive(output, "video")
    if video is not None:
        url = first_present(video, ("videoUrl", "url"))
        if url:
            return VideoMessage(
                from_=from_, url=url, caption=first_present(video, VIDEO_CAPTION_FIELDS)
            )

    image = _find_directive(output, "image")
    if image is not None:
        url = first_present(image, ("imageUrl", "url"))
        if url:
            return ImageMessage(
                from_=from_, url=url, caption=first_present(image, IMAGE_CAPTION_FIELDS)
            )

    audio = _find_directive(output, "audio")
    if audio is not None:
        url = first_present(audio, ("audioUrl", "url"))
        if url:
            return AudioMessage(from_=from_, url=url)

    return None


class _RowIds:
    """Running 1-based counter for synthesized row ids within one message."""

    def __init__(self) -> None:
        self._index = 0

    def next(self, explicit: Any) -> str:
        self._index += 1
        if explicit is None or explicit == "":
            return f"option-{self._index}"
        return str(explicit)


def _build_rows(items: list[Any], ids: _RowIds) -> list[ListRow]:
    rows = []
    for item in items:
        if not isinstance(item, dict):
            continue
        rows.append(
            ListRow(
                id=ids.next(item.get("id")),
                title=first_present(item, ("title",)),
                description=_text_block(item.get("description") or item.get("subtitle")),
            )
        )
    return rows


def _build_list_prompt(
    directive: dict[str, Any],
    *,
    sections_source: list[Any],
    strict: bool,
) -> ListPrompt | None:
    button = first_present(directive, ("button", "buttonText", "buttonLabel"))
    if not button:
        if strict:
            return None
        button = DEFAULT_LIST_BUTTON

    ids = _RowIds()
    sections = []
    for raw in sections_source:
        raw = _as_dict(raw)
        rows = _build_rows(_as_list(raw.get("rows")), ids)
        if not rows:
            continue
        sections.append(
            ListSection(title=first_present(raw, ("title",), DEFAULT_SECTION_TITLE), rows=rows)
        )

    if not sections:
        return None

    return ListPrompt(
        body=first_present(directive, ("text", "body"), DEFAULT_INTERACTIVE_PROMPT),
        button=button,
        sections=sections,
        header=_text_block(directive.get("header")),
        footer=_text_block(directive.get("footer")),
    )


def _build_button_prompt(directive: dict[str, Any], *, strict: bool) -> ButtonPrompt | None:
    replies = [r for r in _as_list(directive.get("quickReplies")) if isinstance(r, dict)]
    if not replies and strict:
        return None

    buttons = [
        ReplyButton(id=f"option-{index + 1}", title=first_present(reply, ("title",)))
        for index, reply in enumerate(replies[:MAX_REPLY_BUTTONS])
    ]
    return ButtonPrompt(
        body=first_present(directive, ("text", "body"), DEFAULT_INTERACTIVE_PROMPT),
        buttons=buttons,
        header=_text_block(directive.get("header")),
        footer=_text_block(directive.get("footer")),
    )


def _build_interactive(
    output: dict[str, Any], from_: str, *, strict: bool
) -> InteractiveMessage | None:
    list_directive = _find_directive(output, "list")
    if list_directive is not None:
        sections = list_directive.get("sections")
        if not isinstance(sections, list):
            # Cognigy's native list carries a flat "items" array
            sections = [{"rows": _as_list(list_directive.get("items"))}]
        prompt = _build_list_prompt(list_directive, sections_source=sections, strict=strict)
        return InteractiveMessage(from_=from_, prompt=prompt) if prompt else None

    quick_replies = _find_directive(output, "quickReplies")
    if quick_replies is None:
        return None

    if quick_replies.get("displayType") == "list":
        section = {
            "title": quick_replies.get("sectionTitle"),
            "rows": _as_list(quick_replies.get("quickReplies")),
        }
        prompt = _build_list_prompt(quick_replies, sections_source=[section], strict=strict)
    else:
        prompt = _build_button_prompt(quick_replies, strict=strict)

    return InteractiveMessage(from_=from_, prompt=prompt) if prompt else None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def classify(output: dict[str, Any], from_: str, *, strict: bool = True) -> OutgoingMessage:
    """Map one conversation output to exactly one WhatsApp message.

    Args:
        output: Output object emitted by the conversation platform.
        from_: Clear 8x8 channel id the reply is sent from.
        strict: Reject interactive prompts with missing required fields.

    Raises:
        MissingChannelOutput: If the output matches no content kind.
    """
    if not isinstance(output, dict):
        raise MissingChannelOutput("output is not an object")

    template = _find_directive(output, "template")
    if template is not None:
        message = _build_template(template, from_)
        if message is not None:
            return message

    media = _build_media(output, from_)
    if media is not None:
        return media

    interactive = _build_interactive(output, from_, strict=strict)
    if interactive is not None:
        return interactive

    text = output.get("text")
    if isinstance(text, str) and text:
        return TextMessage(from_=from_, text=text)

    raise MissingChannelOutput("Missing 8x8 compatible channel output")


def classify_stack(
    outputs: Sequence[Any], from_: str, *, strict: bool = True
) -> list[OutgoingMessage]:
    """Classify every item of an output stack, preserving order.

    Items that match no content kind are logged and skipped; the caller
    decides what an empty result means.
    """
    messages: list[OutgoingMessage] = []
    for index, output in enumerate(outputs):
        try:
            messages.append(classify(output, from_, strict=strict))
        except MissingChannelOutput:
            logger.warning(
                "output stack item skipped: no channel output",
                extra={
                    "extra_fields": safe_log_context(
                        index=index,
                        output_keys=output if isinstance(output, dict) else None,
                    )
                },
            )
    return messages
