"""Drive the edit, undo, and draft/publish cycle for one open page.

:class:`EditorSession` owns the live preview tree and the section list derived
from it. It enforces a single edit in flight, snapshots sections for undo,
coalesces saves through a :class:`~sitepatch.editor.debounce.DebouncedSaver`,
and tags every asynchronous call with a session token so results that arrive
after a page switch are dropped instead of applied.

Example
-------
>>> session = EditorSession(edit_client, store, assembler)  # doctest: +SKIP
>>> await session.open_page("page-1")  # doctest: +SKIP
>>> session.select("tpl-3fa2-section-hero")  # doctest: +SKIP
>>> await session.send_edit("Make the heading shorter")  # doctest: +SKIP
<EditOutcome.APPLIED: 'applied'>
"""

from __future__ import annotations

import asyncio
import logging
import typing as typ

from sitepatch._constants import HIDDEN_ATTR, SECTION_LOCATOR_ATTR
from sitepatch.config.models import EditorSettings
from sitepatch.document import (
    clean_markup,
    clear_marks,
    extract,
    find_component,
    instrument,
    mark,
    parse,
    parse_fragment,
    patch,
    prepare_for_preview,
    serialize,
)
from sitepatch.errors import (
    EditInProgressError,
    EditorStateError,
    NotEditableError,
    PersistenceError,
    RejectedByPolicy,
    SitepatchError,
    ValidationError,
)
from sitepatch.sections import Section, clone_sections

from .debounce import DebouncedSaver
from .models import (
    ChatHistory,
    ChatMessage,
    EditOutcome,
    EditRequest,
    EditResponse,
    EditState,
    MediaAttachment,
    Page,
    SelectionInfo,
    cap_chat_history,
)

if typ.TYPE_CHECKING:
    from bs4 import BeautifulSoup, Tag

    from sitepatch.assembler import PageAssembler
    from sitepatch.services.ports import EditService, PersistenceService

logger = logging.getLogger(__name__)

DEFAULT_REJECTION_MESSAGE = "This edit is not allowed."
DEFAULT_SUCCESS_MESSAGE = "Edit applied."
MEDIA_HEADING = "\n\n## Use the images below:\n"

StateListener = typ.Callable[[EditState], None]


def enrich_instruction(
    instruction: str, media: typ.Sequence[MediaAttachment] = ()
) -> str:
    """Append references to attached images to ``instruction``.

    >>> enrich_instruction("Swap the photo", [MediaAttachment("https://x/a.png", "Team")])
    'Swap the photo\\n\\n## Use the images below:\\nImage 1 (Team): https://x/a.png\\n'
    """
    if not media:
        return instruction
    lines = [instruction, MEDIA_HEADING]
    for index, attachment in enumerate(media, start=1):
        alt = f" ({attachment.alt_text})" if attachment.alt_text else ""
        lines.append(f"Image {index}{alt}: {attachment.url}\n")
    return "".join(lines)


class EditorSession:
    """Single-writer editing session over one draft page at a time.

    Attributes
    ----------
    page : Page | None
        The draft being edited.
    sections : list[Section]
        Section list derived from the live tree after every mutation.
    tree : BeautifulSoup | None
        Instrumented preview document.
    chat : dict[str, list[ChatMessage]]
        Edit transcripts keyed by component identifier.
    undo_stack : list[list[Section]]
        Section snapshots, most recent last.
    selection : SelectionInfo | None
        The component targeted by the next edit.
    state : EditState
        Current edit-cycle state.
    last_error : str | None
        Most recent failure, shown outside the chat until dismissed.
    dirty : bool
        True while the draft has changes not yet persisted.
    scroll_offset : tuple[float, float]
        Viewport offset reported by the preview surface. In-place patches
        leave it untouched; full re-renders reset it.
    """

    def __init__(
        self,
        edit_service: EditService,
        persistence: PersistenceService,
        assembler: PageAssembler,
        *,
        config: EditorSettings | None = None,
        on_state_change: StateListener | None = None,
    ) -> None:
        self.edit_service = edit_service
        self.persistence = persistence
        self.assembler = assembler
        self.config = config or EditorSettings()
        self._on_state_change = on_state_change

        self.page: Page | None = None
        self.sections: list[Section] = []
        self.tree: BeautifulSoup | None = None
        self.chat: ChatHistory = {}
        self.undo_stack: list[list[Section]] = []
        self.selection: SelectionInfo | None = None
        self.state = EditState.IDLE
        self.last_outcome: EditOutcome | None = None
        self.last_error: str | None = None
        self.dirty = False
        self.scroll_offset: tuple[float, float] = (0.0, 0.0)
        self.preview_html: str | None = None
        self.preview_version_id: str | None = None

        self._token = 0
        self._revision = 0
        self._switch_seq = 0
        self._loading = 0
        self._saver = DebouncedSaver(self._autosave, self.config.debounce_seconds)

    # -- read-only views -------------------------------------------------

    @property
    def html(self) -> str:
        """Return the clean, persistable document for the live tree."""
        return serialize(self._require_tree())

    @property
    def previewing(self) -> bool:
        """Return True while a historical version is shown read-only."""
        return self.preview_html is not None

    @property
    def save_pending(self) -> bool:
        """Return True while a debounced save is waiting to fire."""
        return self._saver.pending

    def transcript(self, component_id: str) -> list[ChatMessage]:
        """Return the chat transcript for ``component_id``."""
        return list(self.chat.get(component_id, []))

    def dismiss_error(self) -> None:
        """Clear the out-of-chat error signal."""
        self.last_error = None

    # -- page lifecycle --------------------------------------------------

    async def open_page(self, page_id: str) -> Page:
        """Load ``page_id`` for editing, cloning a draft when it is published.

        Any pending save for the previous page is flushed first. Edits,
        undo, and restores are refused until the new page is installed.
        Results of calls still in flight for the previous page are discarded
        once it is; if loading fails the previous page stays open and its
        in-flight calls complete normally.

        Raises
        ------
        ConfigurationError
            When the project wrapper has no slot marker.
        PersistenceError
            When the page cannot be fetched or cloned.
        """
        self._switch_seq += 1
        seq = self._switch_seq
        self._loading += 1
        try:
            if self.page is not None:
                await self._saver.flush()
            page = await asyncio.to_thread(self.persistence.fetch_page, page_id)
            if not page.is_draft:
                page = await asyncio.to_thread(
                    self.persistence.create_draft_from_page, page.id
                )
            if seq != self._switch_seq:
                logger.info("Page switch superseded", extra={"page_id": page_id})
                return page
            self._install(page)
        finally:
            self._loading -= 1
        return page

    async def close(self) -> None:
        """Flush any pending save and drop the open page."""
        if self.page is not None:
            await self._saver.flush()
        self._token += 1
        self.page = None
        self.tree = None

    def _install(self, page: Page, *, chat: ChatHistory | None = None) -> None:
        sections = clone_sections(page.sections)
        tree = self._render(sections)
        self._token += 1
        if self.state is not EditState.IDLE:
            self._transition(EditState.IDLE)
        self.page = page
        self.sections = sections
        self.tree = tree
        self.chat = chat if chat is not None else page.copy().chat_history
        self.undo_stack = []
        self.selection = None
        self.preview_html = None
        self.preview_version_id = None
        self.last_error = None
        self.dirty = False
        self.scroll_offset = (0.0, 0.0)
        self._saver.cancel()

    def _render(self, sections: typ.Sequence[Section]) -> BeautifulSoup:
        html = self.assembler.render(sections)
        tree = parse(prepare_for_preview(html))
        instrument(tree)
        return tree

    # -- selection -------------------------------------------------------

    def select(self, component_id: str) -> SelectionInfo:
        """Target ``component_id`` for the next edit and mark it selected.

        Raises
        ------
        NotFoundError
            When the component is not in the live tree.
        """
        tree = self._require_tree()
        element, _ = find_component(tree, component_id, self.config.match_policy)
        clear_marks(tree, "selected")
        mark(element, "selected")
        self.selection = _selection_for(component_id, element)
        return self.selection

    def clear_selection(self) -> None:
        """Drop the active selection."""
        if self.tree is not None:
            clear_marks(self.tree, "selected")
        self.selection = None

    def _refresh_selection(self) -> None:
        if self.selection is None:
            return
        component_id = self.selection.component_id
        try:
            element, _ = find_component(
                self._require_tree(), component_id, self.config.match_policy
            )
        except SitepatchError:
            self.selection = None
            return
        mark(element, "selected")
        self.selection = _selection_for(component_id, element)

    # -- editing ---------------------------------------------------------

    async def send_edit(
        self, instruction: str, media: typ.Sequence[MediaAttachment] = ()
    ) -> EditOutcome:
        """Ask the edit service to change the selected component.

        The instruction is recorded verbatim in the component's transcript;
        the service receives it enriched with ``media`` references together
        with the transcript that preceded it.

        Returns
        -------
        EditOutcome
            ``APPLIED``, ``REJECTED``, ``FAILED``, or ``DISCARDED`` when the
            page was switched while the call was in flight.

        Raises
        ------
        EditInProgressError
            When another edit is still in flight.
        NotEditableError
            When the selection lies outside every page section.
        EditorStateError
            When no page is open, nothing is selected, a version preview is
            active, or another page is still loading.
        """
        self._require_ready("An edit is already in progress for this page")
        selection = self._require_editable_selection()

        page_id = self._require_page().id
        component_id = selection.component_id
        transcript = self.chat.setdefault(component_id, [])
        trailing = [message.to_history_entry() for message in transcript]
        transcript.append(ChatMessage(role="user", content=instruction))
        request = EditRequest(
            component_id=component_id,
            current_fragment_markup=selection.fragment_markup,
            instruction=enrich_instruction(instruction, media),
            chat_history=trailing,
        )

        token = self._token
        self._transition(EditState.EDITING)
        try:
            response = await asyncio.to_thread(
                self.edit_service.request_edit, request
            )
            if not self._is_current(token, page_id):
                return self._discard(component_id)
            edited_html = _accepted_html(response)
            self._apply(component_id, edited_html)
        except RejectedByPolicy as exc:
            if not self._is_current(token, page_id):
                return self._discard(component_id)
            return self._reject(component_id, str(exc))
        except SitepatchError as exc:
            if not self._is_current(token, page_id):
                return self._discard(component_id)
            return self._fail(component_id, str(exc))
        except Exception as exc:
            if not self._is_current(token, page_id):
                return self._discard(component_id)
            logger.exception(
                "Unexpected edit failure", extra={"component_id": component_id}
            )
            return self._fail(component_id, str(exc) or type(exc).__name__)

        self._append(
            component_id,
            ChatMessage(role="assistant", content=response.message or DEFAULT_SUCCESS_MESSAGE),
        )
        self._mark_dirty()
        self._finish(EditOutcome.APPLIED)
        logger.info("Edit applied", extra={"component_id": component_id})
        return EditOutcome.APPLIED

    def _apply(self, component_id: str, edited_html: str) -> None:
        tree = self._require_tree()
        parse_fragment(edited_html)
        snapshot = clone_sections(self.sections)
        offset = self.scroll_offset
        policy = self.config.match_policy
        try:
            patch(tree, component_id, edited_html, policy=policy)
            refreshed = extract(
                tree, self.sections, prefix=self.config.component_prefix, policy=policy
            )
        except SitepatchError:
            self.sections = snapshot
            self.tree = self._render(snapshot)
            raise
        self.undo_stack.append(snapshot)
        self.sections = refreshed
        self.scroll_offset = offset
        self._refresh_selection()

    def _reject(self, component_id: str, reason: str) -> EditOutcome:
        self._append(
            component_id,
            ChatMessage(
                role="assistant",
                content=reason or DEFAULT_REJECTION_MESSAGE,
                is_error=True,
            ),
        )
        self._finish(EditOutcome.REJECTED)
        return EditOutcome.REJECTED

    def _fail(self, component_id: str, reason: str) -> EditOutcome:
        logger.warning(
            "Edit failed", extra={"component_id": component_id, "reason": reason}
        )
        self.last_error = reason
        self._append(
            component_id,
            ChatMessage(role="assistant", content=f"Error: {reason}", is_error=True),
        )
        self._finish(EditOutcome.FAILED)
        return EditOutcome.FAILED

    def _discard(self, component_id: str) -> EditOutcome:
        logger.info(
            "Discarding edit result for abandoned page",
            extra={"component_id": component_id},
        )
        return EditOutcome.DISCARDED

    def _append(self, component_id: str, message: ChatMessage) -> None:
        self.chat.setdefault(component_id, []).append(message)

    def _finish(self, outcome: EditOutcome) -> None:
        self.last_outcome = outcome
        self._transition(EditState(outcome.value))
        self._transition(EditState.IDLE)

    def _transition(self, state: EditState) -> None:
        self.state = state
        if self._on_state_change is not None:
            self._on_state_change(state)

    def toggle_hidden(self) -> bool:
        """Flip the hidden flag on the selected component and return it.

        Must be called from the event loop that runs the debounced save.
        """
        self._require_ready("An edit is already in progress for this page")
        selection = self._require_editable_selection()
        tree = self._require_tree()
        policy = self.config.match_policy
        element, _ = find_component(tree, selection.component_id, policy)
        snapshot = clone_sections(self.sections)
        if element.get(HIDDEN_ATTR) == "true":
            del element[HIDDEN_ATTR]
        else:
            element[HIDDEN_ATTR] = "true"
        self.sections = extract(
            tree, self.sections, prefix=self.config.component_prefix, policy=policy
        )
        self.undo_stack.append(snapshot)
        self._refresh_selection()
        self._mark_dirty()
        return self.selection.is_hidden if self.selection else False

    async def undo(self) -> list[Section]:
        """Restore the most recent snapshot and re-render the whole document.

        Raises
        ------
        EditorStateError
            When there is nothing to undo.
        """
        self._require_ready("Cannot undo while an edit is in progress")
        if not self.undo_stack:
            msg = "Nothing to undo"
            raise EditorStateError(msg)
        self._require_tree()
        previous = self.undo_stack[-1]
        self.tree = self._render(previous)
        self.undo_stack.pop()
        self.sections = previous
        self.selection = None
        self.scroll_offset = (0.0, 0.0)
        self._mark_dirty()
        return clone_sections(previous)

    # -- persistence -----------------------------------------------------

    def _mark_dirty(self) -> None:
        self.dirty = True
        self._revision += 1
        self._saver.schedule()

    async def _write(self) -> None:
        page = self._require_page()
        token = self._token
        revision = self._revision
        sections = clone_sections(self.sections)
        chat = cap_chat_history(self.chat, self.config.chat_history_limit)
        await asyncio.to_thread(
            self.persistence.update_sections, page.id, sections, chat
        )
        if token == self._token and revision == self._revision:
            self.dirty = False

    async def _autosave(self) -> None:
        try:
            await self._write()
        except PersistenceError as exc:
            self.last_error = str(exc)
            raise

    async def save(self) -> None:
        """Cancel the debounce timer and persist the draft now.

        Raises
        ------
        PersistenceError
            When the write fails; the message is also kept in ``last_error``.
        """
        self._require_page()
        self._saver.cancel()
        await self._saver.drain()
        try:
            await self._write()
        except PersistenceError as exc:
            self.last_error = str(exc)
            raise

    async def _flush_unsaved(self) -> None:
        had_timer = self._saver.pending
        if not (self.dirty or had_timer):
            return
        self._saver.cancel()
        await self._saver.drain()
        try:
            await self._write()
        except PersistenceError as exc:
            self.last_error = str(exc)
            if had_timer:
                self._saver.schedule()
            raise

    async def publish(self) -> Page:
        """Publish the draft and continue on a freshly cloned draft.

        Unsaved changes are written first; if that write fails nothing is
        published and the draft, undo stack, and dirty flag are unchanged.

        Returns
        -------
        Page
            The new draft now open for editing.

        Raises
        ------
        PersistenceError
            When flushing, publishing, or cloning fails.
        """
        self._require_ready("Cannot publish while an edit is in progress")
        page = self._require_page()
        token = self._token
        await self._flush_unsaved()

        try:
            await asyncio.to_thread(self.persistence.publish, page.id)
            published = await asyncio.to_thread(self.persistence.fetch_page, page.id)
            draft = await asyncio.to_thread(
                self.persistence.create_draft_from_page, published.id
            )
        except PersistenceError as exc:
            self.last_error = str(exc)
            raise

        if not self._is_current(token, page.id):
            return draft
        self._install(draft, chat={})
        logger.info(
            "Published page",
            extra={
                "page_id": published.id,
                "published_version": published.version,
                "draft_version": draft.version,
            },
        )
        return draft

    # -- versions --------------------------------------------------------

    async def preview_version(self, version_id: str) -> str:
        """Render a stored version read-only without touching the draft."""
        page = self._require_page()
        version = await asyncio.to_thread(
            self.persistence.fetch_version, page.id, version_id
        )
        self.preview_html = self.assembler.render(version.sections)
        self.preview_version_id = version_id
        return self.preview_html

    def exit_preview(self) -> None:
        """Return from a version preview to the live draft."""
        self.preview_html = None
        self.preview_version_id = None

    async def restore_version(self, version_id: str) -> list[Section]:
        """Replace the draft's sections with those of ``version_id``.

        Unsaved changes are written first so the draft history holds them;
        if that write fails nothing is restored. The previous sections are
        pushed onto the undo stack.

        Raises
        ------
        PersistenceError
            When flushing or restoring fails.
        """
        self._require_ready("Cannot restore while an edit is in progress")
        page = self._require_page()
        token = self._token
        await self._flush_unsaved()
        restored = await asyncio.to_thread(
            self.persistence.restore_version, page.id, version_id
        )
        if not self._is_current(token, page.id):
            return clone_sections(restored.sections)
        sections = clone_sections(restored.sections)
        tree = self._render(sections)
        self.undo_stack.append(clone_sections(self.sections))
        self.sections = sections
        self.tree = tree
        self.exit_preview()
        self.selection = None
        self.dirty = False
        return clone_sections(sections)

    # -- guards ----------------------------------------------------------

    def _require_ready(self, busy_message: str) -> None:
        if self.state is EditState.EDITING:
            raise EditInProgressError(busy_message)
        if self._loading:
            msg = "A page switch is in progress"
            raise EditorStateError(msg)

    def _is_current(self, token: int, page_id: str) -> bool:
        return (
            token == self._token
            and self.page is not None
            and self.page.id == page_id
        )

    def _require_page(self) -> Page:
        if self.page is None:
            msg = "No page is open"
            raise EditorStateError(msg)
        return self.page

    def _require_tree(self) -> BeautifulSoup:
        self._require_page()
        if self.tree is None:
            msg = "No page is open"
            raise EditorStateError(msg)
        return self.tree

    def _require_editable_selection(self) -> SelectionInfo:
        self._require_page()
        if self.previewing:
            msg = "Exit the version preview before editing"
            raise EditorStateError(msg)
        if self.selection is None:
            msg = "Select a component before editing"
            raise EditorStateError(msg)
        if self.selection.section_name is None:
            msg = (
                "Header and footer components belong to the project layout "
                "and cannot be edited here"
            )
            raise NotEditableError(msg)
        return self.selection


def _accepted_html(response: EditResponse) -> str:
    if response.rejected:
        raise RejectedByPolicy(response.message or DEFAULT_REJECTION_MESSAGE)
    if not response.edited_html:
        msg = "Edit service returned no HTML"
        raise ValidationError(msg)
    return response.edited_html


def _selection_for(component_id: str, element: Tag) -> SelectionInfo:
    section_root = (
        element
        if element.get(SECTION_LOCATOR_ATTR) is not None
        else element.find_parent(attrs={SECTION_LOCATOR_ATTR: True})
    )
    section_name = section_root.get(SECTION_LOCATOR_ATTR) if section_root else None
    return SelectionInfo(
        component_id=component_id,
        fragment_markup=clean_markup(element),
        is_hidden=element.get(HIDDEN_ATTR) == "true",
        section_name=str(section_name) if section_name is not None else None,
    )


__all__ = [
    "DEFAULT_REJECTION_MESSAGE",
    "DEFAULT_SUCCESS_MESSAGE",
    "EditorSession",
    "enrich_instruction",
]
