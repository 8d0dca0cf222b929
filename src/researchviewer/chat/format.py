"""HTML formatting of chat bubbles."""

from __future__ import annotations

import html
import re
from typing import TYPE_CHECKING, Sequence

from researchviewer.models.chat import ChatMessage

if TYPE_CHECKING:
    from researchviewer.chat.session import ChatSnapshot

_H3_RE = re.compile(r"^###\s+(.+)$", re.MULTILINE)
_H2_RE = re.compile(r"^##\s+(.+)$", re.MULTILINE)
_BOLD_RE = re.compile(r"\*\*([^*]+?)\*\*")
_BULLET_RE = re.compile(r"^[•\-*]\s+(.+)$", re.MULTILINE)
_NUMBERED_RE = re.compile(r"^\d+\.\s+(.+)$", re.MULTILINE)
_PARA_BREAK_RE = re.compile(r"\n\n+")
_EMPTY_PARA_RE = re.compile(r"<p>\s*</p>")


def escape_html(text: str) -> str:
    return html.escape(text, quote=False)


def format_chat_message(content: str) -> str:
    """Format assistant text for display.

    The text is escaped first; headers, bold runs, bullets, numbered items and paragraph breaks
    are then turned into markup.
    """

    if not content:
        return ""
    formatted = escape_html(content)
    formatted = _H3_RE.sub(r'<h3 class="chat-h3">\1</h3>', formatted)
    formatted = _H2_RE.sub(r'<h2 class="chat-h2">\1</h2>', formatted)
    formatted = _BOLD_RE.sub(r"<strong>\1</strong>", formatted)
    formatted = _BULLET_RE.sub(r'<div class="chat-bullet">• \1</div>', formatted)
    formatted = _NUMBERED_RE.sub(r'<div class="chat-numbered">\1</div>', formatted)
    formatted = _PARA_BREAK_RE.sub("</p><p>", formatted)
    formatted = f"<p>{formatted}</p>"
    return _EMPTY_PARA_RE.sub("", formatted)


def render_message_html(message: ChatMessage) -> str:
    body = format_chat_message(message.content) if message.role == "assistant" else escape_html(message.content)
    return (
        f'<div class="chat-message {message.role}">'
        f'<div class="chat-message-bubble">{body}</div>'
        f'<div class="chat-message-time">{message.display_time}</div>'
        "</div>"
    )


THINKING_HTML = (
    '<div class="chat-message assistant thinking" id="thinking-indicator">'
    '<div class="chat-message-bubble"><div class="thinking-dots">'
    "<span></span><span></span><span></span></div></div></div>"
)

EMPTY_STATE_HTML = (
    '<div class="chat-empty-state">'
    "<p>Ask questions about this document to get deeper insights</p></div>"
)


def render_transcript_html(messages: Sequence[ChatMessage], *, thinking: bool = False) -> str:
    """Render the whole chat pane, including the empty state and thinking indicator."""

    if not messages and not thinking:
        return EMPTY_STATE_HTML
    parts = [render_message_html(m) for m in messages]
    if thinking:
        parts.append(THINKING_HTML)
    return "\n".join(parts)


class HtmlChatPane:
    """Chat view that keeps the pane markup for the latest snapshot."""

    def __init__(self) -> None:
        self.html = EMPTY_STATE_HTML
        self.input_enabled = True

    def render(self, snapshot: ChatSnapshot) -> None:
        self.html = render_transcript_html(snapshot.messages, thinking=snapshot.thinking)
        self.input_enabled = snapshot.input_enabled
