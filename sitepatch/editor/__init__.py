"""Editing session: edit cycle, undo stack, autosave, and publish flow."""

from .controller import EditorSession, enrich_instruction
from .debounce import DebouncedSaver
from .models import (
    ChatMessage,
    EditOutcome,
    EditRequest,
    EditResponse,
    EditState,
    MediaAttachment,
    Page,
    PageStatus,
    SelectionInfo,
    cap_chat_history,
    chat_history_from_payload,
    chat_history_payload,
)

__all__ = [
    "ChatMessage",
    "DebouncedSaver",
    "EditOutcome",
    "EditRequest",
    "EditResponse",
    "EditState",
    "EditorSession",
    "MediaAttachment",
    "Page",
    "PageStatus",
    "SelectionInfo",
    "cap_chat_history",
    "chat_history_from_payload",
    "chat_history_payload",
    "enrich_instruction",
]
