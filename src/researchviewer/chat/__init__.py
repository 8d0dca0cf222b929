"""Chat about the open document."""

from __future__ import annotations

from researchviewer.chat.format import HtmlChatPane, format_chat_message, render_transcript_html
from researchviewer.chat.session import ChatSnapshot, ChatState, ChatView, SessionController
from researchviewer.chat.stream import StreamHandle, consume_stream

__all__ = [
    "ChatSnapshot",
    "HtmlChatPane",
    "ChatState",
    "ChatView",
    "SessionController",
    "StreamHandle",
    "consume_stream",
    "format_chat_message",
    "render_transcript_html",
]
