"""Name the partner-site screen that is currently rendered."""

from __future__ import annotations

import logging

from playwright.sync_api import Page, Error as PwError

from shiftsync.models import PageState, ScreenReading

logger = logging.getLogger(__name__)

# =============================================================================
# CSS SELECTORS
# =============================================================================

SELECTORS = {
    # Markers used to tell the screens apart
    "credential_marker": ".txtUserid",
    "password_marker": "input.tbxPassword",
    "security_question": ".bodytext.lblKBQ.lblKBQ1",
    "schedule_marker": ".scheduleShift",

    # Input fields
    "credential_input": "input.textbox.txtUserid",
    "password_input": "input.textbox.tbxPassword",
    "security_input": "input.textbox.tbxKBA",

    # The enabled submit button on any login screen
    "submit": "input[type='submit']:not(.aspNetDisabled)",

    # Something every known screen renders once it has settled
    "settled": "input.textbox,.scheduleShift",
}

_MARKER_SCRIPT = """(sel) => {
    const question = document.querySelector(sel.security_question);
    return {
        credential: document.querySelectorAll(sel.credential_marker).length > 0,
        password: document.querySelectorAll(sel.password_marker).length > 0,
        security: !!question,
        schedule: document.querySelectorAll(sel.schedule_marker).length > 0,
        question: question ? question.innerText : "",
    };
}"""


def resolve_page_state(credential: bool, password: bool, security: bool, schedule: bool) -> PageState:
    """Collapse the four DOM markers into one state.

    Precedence is Schedule > Password > Security > Credential, so the
    terminal screen always wins when markers overlap.
    """
    if schedule:
        return PageState.ON_SCHEDULE
    if password:
        return PageState.AWAITING_PASSWORD
    if security:
        return PageState.AWAITING_SECURITY_ANSWER
    if credential:
        return PageState.AWAITING_CREDENTIAL
    return PageState.INDETERMINATE


def classify_page(page: Page) -> ScreenReading:
    """Inspect the current DOM and return which screen it is.

    Never raises: if the page cannot be queried (e.g. the execution context
    was destroyed by a navigation) the reading is INDETERMINATE.
    """
    try:
        markers = page.evaluate(_MARKER_SCRIPT, SELECTORS)
    except PwError as e:
        logger.debug(f"Page not queryable, treating as indeterminate: {e}")
        return ScreenReading(PageState.INDETERMINATE)

    state = resolve_page_state(
        bool(markers.get("credential")),
        bool(markers.get("password")),
        bool(markers.get("security")),
        bool(markers.get("schedule")),
    )
    question = (markers.get("question") or "").strip() if state is PageState.AWAITING_SECURITY_ANSWER else ""
    logger.debug(f"Classified page as {state.value} (markers={markers})")
    return ScreenReading(state, question)
