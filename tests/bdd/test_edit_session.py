"""Behaviour tests for the edit and publish cycle of an editing session."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from pytest_bdd import given, parsers, scenarios, then, when

from sitepatch.assembler import PageAssembler, TemplateSet
from sitepatch.config import EditorSettings
from sitepatch.editor import EditorSession, EditRequest, EditResponse, PageStatus
from sitepatch.sections import Section
from sitepatch.services import InMemoryPageStore

FEATURE_FILE = Path(__file__).resolve().parents[2] / "features" / "edit_session.feature"
scenarios(FEATURE_FILE)

HERO_ID = "tpl-1a-section-hero"
HERO = '<section class="tpl-1a-section-hero"><h1>Hello</h1></section>'


class ScriptedEditService:
    """Answer each request with the next queued reply."""

    def __init__(self) -> None:
        self.replies: list[EditResponse] = []

    def request_edit(self, request: EditRequest) -> EditResponse:  # noqa: ARG002
        return self.replies.pop(0)


@pytest.fixture
def scenario_state() -> dict[str, object]:
    return {}


@given("a published home page with a hero section")
def given_published_page(scenario_state: dict[str, object]) -> None:
    store = InMemoryPageStore()
    store.add_page("/", [Section("hero", HERO)], page_id="home")
    scenario_state["store"] = store


@given("an editing session on that page")
def given_session(scenario_state: dict[str, object]) -> None:
    """Open the home page and select its hero section."""
    service = ScriptedEditService()
    session = EditorSession(
        service,
        scenario_state["store"],
        PageAssembler(TemplateSet(wrapper="<html><body>{{slot}}</body></html>")),
        config=EditorSettings(debounce_seconds=0.01),
    )
    asyncio.run(session.open_page("home"))
    session.select(HERO_ID)
    scenario_state["service"] = service
    scenario_state["session"] = session
    scenario_state["before"] = session.html


@given(parsers.parse('the edit service rejects instructions with "{message}"'))
def given_rejection(scenario_state: dict[str, object], message: str) -> None:
    service: ScriptedEditService = scenario_state["service"]
    service.replies.append(EditResponse(message=message, rejected=True))


@given(parsers.parse('the edit service replaces the hero heading with "{text}"'))
def given_replacement(scenario_state: dict[str, object], text: str) -> None:
    service: ScriptedEditService = scenario_state["service"]
    service.replies.append(
        EditResponse(
            message="Done",
            edited_html=f'<section class="tpl-1a-section-hero"><h1>{text}</h1></section>',
        )
    )


@when(parsers.parse('I ask to "{instruction}" on the hero'))
def when_send_edit(scenario_state: dict[str, object], instruction: str) -> None:
    """Send the instruction and persist the result before the loop closes."""
    session: EditorSession = scenario_state["session"]

    async def _edit() -> None:
        scenario_state["outcome"] = await session.send_edit(instruction)
        if session.dirty:
            await session.save()

    asyncio.run(_edit())


@when("I publish the page")
def when_publish(scenario_state: dict[str, object]) -> None:
    session: EditorSession = scenario_state["session"]
    scenario_state["draft"] = asyncio.run(session.publish())


@then("the page markup is unchanged")
def then_unchanged(scenario_state: dict[str, object]) -> None:
    session: EditorSession = scenario_state["session"]
    assert session.html == scenario_state["before"], "Rejected edit altered the page"
    assert session.undo_stack == []


@then(parsers.parse('the hero transcript ends with the error "{message}"'))
def then_transcript_error(scenario_state: dict[str, object], message: str) -> None:
    session: EditorSession = scenario_state["session"]
    last = session.transcript(HERO_ID)[-1]
    assert (last.role, last.content, last.is_error) == ("assistant", message, True)


@then(parsers.parse('version {version:d} is published with the heading "{text}"'))
def then_published(scenario_state: dict[str, object], version: int, text: str) -> None:
    store: InMemoryPageStore = scenario_state["store"]
    published = store.fetch_page("page-1")
    assert published.status is PageStatus.PUBLISHED
    assert published.version == version
    assert f"<h1>{text}</h1>" in published.sections[0].content
    assert store.fetch_page("home").status is PageStatus.INACTIVE


@then(parsers.parse("the session edits a draft at version {version:d} with an empty undo stack"))
def then_new_draft(scenario_state: dict[str, object], version: int) -> None:
    session: EditorSession = scenario_state["session"]
    assert session.page is not None
    assert session.page.is_draft
    assert session.page.version == version
    assert session.undo_stack == []
    assert session.chat == {}
