"""Common literal values used across sitepatch.

These constants keep marker strings, attribute names, and timing defaults
centralized so the assembler, document adapter, controller, and tests import
the same values without drifting. Intended for internal use within the
sitepatch package.

Examples
--------
>>> from sitepatch import _constants
>>> _constants.SLOT_MARKER
'{{slot}}'
>>> _constants.SECTION_LOCATOR_ATTR
'data-section'
"""

SLOT_MARKER = "{{slot}}"

SECTION_LOCATOR_ATTR = "data-section"
HIDDEN_ATTR = "data-hidden"
FORM_OPT_OUT_ATTR = "data-sitepatch-ignore"

DEFAULT_COMPONENT_PREFIX = "tpl-"
SECTION_ID_MARKER = "-section-"
COMPONENT_ID_MARKER = "-component-"

# Editor-only instrumentation; never persisted.
SELECTOR_STYLE_ID = "sitepatch-selector-styles"
HOVER_LABEL_ID = "sitepatch-hover-label"
SELECTED_LABEL_ID = "sitepatch-selected-label"
ACTION_PANEL_ID = "sitepatch-action-panel"
HOVER_ATTR = "data-sitepatch-hover"
SELECTED_ATTR = "data-sitepatch-selected"
EDITOR_ELEMENT_IDS = (
    SELECTOR_STYLE_ID,
    HOVER_LABEL_ID,
    SELECTED_LABEL_ID,
    ACTION_PANEL_ID,
)
EDITOR_FLAG_ATTRS = (HOVER_ATTR, SELECTED_ATTR)

DEFAULT_DOCTYPE = "<!DOCTYPE html>"

DEFAULT_DEBOUNCE_SECONDS = 0.8
CHAT_HISTORY_LIMIT = 50
FORM_REENABLE_DELAY_MS = 3000
DEFAULT_FORM_ENDPOINT = "/api/websites/form-submission"
