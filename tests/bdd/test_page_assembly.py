"""Behaviour tests for assembling pages from templates and sections."""

from __future__ import annotations

from pathlib import Path

import pytest
from pytest_bdd import given, parsers, scenarios, then, when

from sitepatch.assembler import CodeSnippet, SnippetLocation, assemble
from sitepatch.sections import Section

FEATURE_FILE = Path(__file__).resolve().parents[2] / "features" / "page_assembly.feature"
scenarios(FEATURE_FILE)


@pytest.fixture
def scenario_state() -> dict[str, object]:
    return {"header": "", "footer": "", "sections": [], "snippets": []}


@given("a project wrapper with a single slot")
def given_wrapper(scenario_state: dict[str, object]) -> None:
    """Use a minimal HTML document as the wrapper."""
    scenario_state["wrapper"] = "<html><head></head><body>{{slot}}</body></html>"


@given("a heading header and a footer")
def given_header_footer(scenario_state: dict[str, object]) -> None:
    scenario_state["header"] = "<h1>H</h1>"
    scenario_state["footer"] = "<footer>F</footer>"


@given(parsers.parse('a section named "{name}" holding a paragraph "{text}"'))
def given_section(scenario_state: dict[str, object], name: str, text: str) -> None:
    sections: list[Section] = scenario_state["sections"]
    sections.append(Section(name=name, content=f"<p>{text}</p>"))


@given(parsers.parse('a head_end snippet "{code}" with order {order:d}'))
def given_snippet(scenario_state: dict[str, object], code: str, order: int) -> None:
    snippets: list[CodeSnippet] = scenario_state["snippets"]
    snippets.append(
        CodeSnippet(
            code=f"<script>{code}</script>",
            location=SnippetLocation.HEAD_END,
            order_index=order,
        )
    )


@when("I assemble the page")
def when_assemble(scenario_state: dict[str, object]) -> None:
    """Run the assembler with whatever the scenario configured."""
    scenario_state["html"] = assemble(
        scenario_state["wrapper"],
        scenario_state["header"],
        scenario_state["footer"],
        scenario_state["sections"],
        snippets=scenario_state["snippets"],
    )


@then("the slot holds the header, the tagged section, and the footer")
def then_exact_page(scenario_state: dict[str, object]) -> None:
    expected = (
        "<html><head></head><body><h1>H</h1>\n"
        '<p data-section="a">A</p>\n'
        "<footer>F</footer></body></html>"
    )
    assert scenario_state["html"] == expected, (
        f"Unexpected assembled page: {scenario_state['html']!r}"
    )


@then(parsers.parse('the head ends with snippets "{first}" then "{second}"'))
def then_snippet_order(scenario_state: dict[str, object], first: str, second: str) -> None:
    html: str = scenario_state["html"]
    expected = f"<script>{first}</script>\n<script>{second}</script></head>"
    assert expected in html, f"Snippets out of order in {html!r}"
