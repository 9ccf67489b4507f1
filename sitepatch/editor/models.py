"""Dataclasses shared by the editing session and the service clients."""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import enum
import time
import typing as typ

from sitepatch._constants import CHAT_HISTORY_LIMIT
from sitepatch.sections import Section, clone_sections, normalize_sections

ChatRole = typ.Literal["user", "assistant"]


class PageStatus(enum.StrEnum):
    """Lifecycle status of a stored page version."""

    DRAFT = "draft"
    PUBLISHED = "published"
    INACTIVE = "inactive"


class EditState(enum.StrEnum):
    """States of one edit cycle on the open page."""

    IDLE = "idle"
    EDITING = "editing"
    APPLIED = "applied"
    REJECTED = "rejected"
    FAILED = "failed"


class EditOutcome(enum.StrEnum):
    """Result reported by :meth:`EditorSession.send_edit`."""

    APPLIED = "applied"
    REJECTED = "rejected"
    FAILED = "failed"
    DISCARDED = "discarded"


def _now_ms() -> int:
    return int(time.time() * 1000)


@dc.dataclass(slots=True)
class ChatMessage:
    """One entry in a component's edit transcript.

    Attributes
    ----------
    role : {"user", "assistant"}
        Author of the message.
    content : str
        Message text; user messages hold the instruction verbatim.
    timestamp : int
        Milliseconds since the epoch.
    is_error : bool
        Marks rejection and failure replies.
    """

    role: ChatRole
    content: str
    timestamp: int = dc.field(default_factory=_now_ms)
    is_error: bool = False

    @classmethod
    def from_mapping(cls, data: typ.Mapping[str, typ.Any]) -> ChatMessage:
        """Build a message from its persisted form."""
        role = data.get("role")
        return cls(
            role="user" if role == "user" else "assistant",
            content=str(data.get("content") or ""),
            timestamp=int(data.get("timestamp") or 0),
            is_error=bool(data.get("isError", False)),
        )

    def to_dict(self) -> dict[str, typ.Any]:
        """Return the persisted form of the message."""
        payload: dict[str, typ.Any] = {
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp,
        }
        if self.is_error:
            payload["isError"] = True
        return payload

    def to_history_entry(self) -> dict[str, str]:
        """Return the role/content pair sent to the edit service."""
        return {"role": self.role, "content": self.content}


ChatHistory = dict[str, list[ChatMessage]]


def cap_chat_history(
    history: typ.Mapping[str, typ.Sequence[ChatMessage]],
    limit: int = CHAT_HISTORY_LIMIT,
) -> ChatHistory:
    """Return a copy of ``history`` keeping the newest ``limit`` messages per key."""
    if limit <= 0:
        return {key: [] for key in history}
    return {key: list(messages[-limit:]) for key, messages in history.items()}


def chat_history_payload(
    history: typ.Mapping[str, typ.Sequence[ChatMessage]],
    limit: int = CHAT_HISTORY_LIMIT,
) -> dict[str, list[dict[str, typ.Any]]]:
    """Return the capped, JSON-ready form of ``history``."""
    return {
        key: [message.to_dict() for message in messages]
        for key, messages in cap_chat_history(history, limit).items()
    }


def chat_history_from_payload(raw: object) -> ChatHistory:
    """Hydrate a persisted transcript map; non-list values are ignored."""
    if not isinstance(raw, cabc.Mapping):
        return {}
    history: ChatHistory = {}
    for key, messages in raw.items():
        if not isinstance(messages, list):
            continue
        history[str(key)] = [
            message if isinstance(message, ChatMessage) else ChatMessage.from_mapping(message)
            for message in messages
            if isinstance(message, ChatMessage | cabc.Mapping)
        ]
    return history


@dc.dataclass(slots=True)
class Page:
    """A stored page version and its editing metadata."""

    id: str
    path: str = "/"
    sections: list[Section] = dc.field(default_factory=list)
    status: PageStatus = PageStatus.DRAFT
    version: int = 1
    chat_history: ChatHistory = dc.field(default_factory=dict)

    @property
    def is_draft(self) -> bool:
        """Return True when the page can be edited."""
        return self.status is PageStatus.DRAFT

    @classmethod
    def from_mapping(cls, data: typ.Mapping[str, typ.Any]) -> Page:
        """Build a page from a persistence payload.

        Sections may be stored as a bare list, a ``{"sections": [...]}``
        wrapper, or a JSON string of either.
        """
        raw_status = str(data.get("status") or PageStatus.DRAFT)
        try:
            status = PageStatus(raw_status)
        except ValueError:
            status = PageStatus.INACTIVE
        return cls(
            id=str(data["id"]),
            path=str(data.get("path") or "/"),
            sections=normalize_sections(data.get("sections")),
            status=status,
            version=int(data.get("version") or 1),
            chat_history=chat_history_from_payload(data.get("edit_chat_history")),
        )

    def copy(self) -> Page:
        """Return a deep-enough copy that callers may mutate freely."""
        return Page(
            id=self.id,
            path=self.path,
            sections=clone_sections(self.sections),
            status=self.status,
            version=self.version,
            chat_history={
                key: [dc.replace(message) for message in messages]
                for key, messages in self.chat_history.items()
            },
        )


@dc.dataclass(slots=True)
class SelectionInfo:
    """The component currently selected in the preview.

    ``section_name`` is the page section that contains the component, or
    ``None`` for header and footer components owned by the project layout.
    """

    component_id: str
    fragment_markup: str
    is_hidden: bool = False
    section_name: str | None = None


@dc.dataclass(slots=True)
class MediaAttachment:
    """An image referenced by an edit instruction."""

    url: str
    alt_text: str | None = None

    @classmethod
    def from_mapping(cls, data: typ.Mapping[str, typ.Any]) -> MediaAttachment:
        """Build an attachment from a media-library record."""
        url = data.get("url") or data.get("s3_url") or ""
        alt_text = data.get("alt_text")
        return cls(url=str(url), alt_text=str(alt_text) if alt_text else None)


@dc.dataclass(slots=True)
class EditRequest:
    """Payload sent to the edit service for one instruction."""

    component_id: str
    current_fragment_markup: str
    instruction: str
    chat_history: list[dict[str, str]] = dc.field(default_factory=list)

    def to_payload(self) -> dict[str, typ.Any]:
        """Return the JSON body expected by the edit service."""
        return {
            "componentId": self.component_id,
            "currentFragmentMarkup": self.current_fragment_markup,
            "instruction": self.instruction,
            "chatHistory": list(self.chat_history),
        }


@dc.dataclass(slots=True)
class EditResponse:
    """Reply from the edit service."""

    message: str = ""
    rejected: bool = False
    edited_html: str | None = None
    debug: dict[str, typ.Any] | None = None

    @classmethod
    def from_mapping(cls, data: typ.Mapping[str, typ.Any]) -> EditResponse:
        """Build a response from the service's JSON body."""
        edited_html = data.get("editedHtml")
        debug = data.get("debug")
        return cls(
            message=str(data.get("message") or ""),
            rejected=bool(data.get("rejected", False)),
            edited_html=edited_html if isinstance(edited_html, str) else None,
            debug=dict(debug) if isinstance(debug, cabc.Mapping) else None,
        )


__all__ = [
    "ChatHistory",
    "ChatMessage",
    "ChatRole",
    "EditOutcome",
    "EditRequest",
    "EditResponse",
    "EditState",
    "MediaAttachment",
    "Page",
    "PageStatus",
    "SelectionInfo",
    "cap_chat_history",
    "chat_history_from_payload",
    "chat_history_payload",
]
