"""Drive the partner-site login screens until the schedule is shown.

The site asks for credentials over a varying sequence of screens (partner
id, password, one or more security questions) and sometimes re-renders the
same screen while a postback is still in flight. The navigator classifies
the page, acts on what it sees, waits for the page to settle and classifies
again, until the schedule screen appears or a bound is exceeded.
"""

from __future__ import annotations

import logging
from enum import Enum

from playwright.sync_api import Page, TimeoutError as PwTimeout

from shiftsync.classifier import SELECTORS, classify_page
from shiftsync.config import Credentials
from shiftsync.errors import MissingSecurityAnswerError, NavigationError, UnrecognizedScreenError
from shiftsync.models import PageState, ScreenReading

logger = logging.getLogger(__name__)


class NavState(Enum):
    AWAITING_CREDENTIAL = "credential"
    AWAITING_PASSWORD = "password"
    PASSWORD_SUBMITTED = "password submitted"
    AWAITING_SECURITY_ANSWER = "security question"
    ON_SCHEDULE = "schedule"
    INDETERMINATE = "indeterminate"


_FROM_PAGE_STATE = {
    PageState.AWAITING_CREDENTIAL: NavState.AWAITING_CREDENTIAL,
    PageState.AWAITING_PASSWORD: NavState.AWAITING_PASSWORD,
    PageState.AWAITING_SECURITY_ANSWER: NavState.AWAITING_SECURITY_ANSWER,
    PageState.ON_SCHEDULE: NavState.ON_SCHEDULE,
    PageState.INDETERMINATE: NavState.INDETERMINATE,
}

# States in which nothing is typed; the page is given more time instead
_WAITING_STATES = (NavState.INDETERMINATE, NavState.PASSWORD_SUBMITTED)


def normalize_question(text: str) -> str:
    """Trim, collapse internal whitespace and case-fold a security question."""
    return " ".join(text.split()).casefold()


def find_security_answer(question: str, answers: dict[str, str]) -> str | None:
    """Look up the answer for a displayed question.

    Exact text wins; otherwise the normalized forms are compared.
    """
    if question in answers:
        return answers[question]
    wanted = normalize_question(question)
    for known, answer in answers.items():
        if normalize_question(known) == wanted:
            logger.info("Security question matched after normalizing whitespace/case")
            return answer
    return None


class SessionNavigator:
    """State machine that logs into the partner site.

    Args:
        page: Playwright page already pointed at the schedule URL.
        credentials: Partner id, password and security answers.
        timeout_ms: Bound for every navigation and selector wait.
        poll_interval_ms: Pause before re-polling an unsettled page.
        max_stalls: Consecutive polls without progress before giving up.
        max_steps: Total form submissions before giving up.
    """

    def __init__(
        self,
        page: Page,
        credentials: Credentials,
        timeout_ms: int = 30000,
        poll_interval_ms: int = 2000,
        max_stalls: int = 5,
        max_steps: int = 12,
    ) -> None:
        self.page = page
        self.credentials = credentials
        self.timeout_ms = timeout_ms
        self.poll_interval_ms = poll_interval_ms
        self.max_stalls = max_stalls
        self.max_steps = max_steps
        self.state = NavState.INDETERMINATE
        self.trail: list[NavState] = []

    @property
    def password_submitted(self) -> bool:
        return NavState.PASSWORD_SUBMITTED in self.trail

    def _enter(self, state: NavState) -> None:
        self.state = state
        if not self.trail or self.trail[-1] is not state:
            self.trail.append(state)

    def _next_state(self, reading: ScreenReading) -> NavState:
        if reading.state is PageState.AWAITING_PASSWORD and self.password_submitted:
            return NavState.PASSWORD_SUBMITTED
        return _FROM_PAGE_STATE[reading.state]

    def run(self) -> list[NavState]:
        """Navigate until the schedule screen is reached.

        Returns:
            The sequence of states traversed, ending in ON_SCHEDULE.

        Raises:
            MissingSecurityAnswerError: A question has no configured answer.
            UnrecognizedScreenError: No known screen appeared within the stall bound.
            NavigationError: The password screen persisted, or too many steps.
        """
        stalls = 0
        steps = 0
        reading = classify_page(self.page)

        while True:
            self._enter(self._next_state(reading))

            if self.state is NavState.ON_SCHEDULE:
                logger.info(f"Reached schedule after {steps} submission(s)")
                return self.trail

            if self.state in _WAITING_STATES:
                stalls += 1
                if stalls > self.max_stalls:
                    if self.state is NavState.PASSWORD_SUBMITTED:
                        raise NavigationError(
                            f"Password screen still shown after submission ({self.max_stalls} polls); "
                            f"not resubmitting. Check PARTNER_PASSWORD."
                        )
                    raise UnrecognizedScreenError(
                        f"No known screen after {self.max_stalls} consecutive polls"
                    )
                logger.info(f"Page {self.state.value}, re-polling ({stalls}/{self.max_stalls})...")
                self.page.wait_for_timeout(self.poll_interval_ms)
                self._wait_until_settled()
            else:
                stalls = 0
                steps += 1
                if steps > self.max_steps:
                    raise NavigationError(
                        f"Schedule not reached after {self.max_steps} submissions "
                        f"(stuck on {self.state.value} screen)"
                    )
                self._act(reading)

            reading = classify_page(self.page)

    def _act(self, reading: ScreenReading) -> None:
        if self.state is NavState.AWAITING_CREDENTIAL:
            logger.info("Entering partner id...")
            self._type_into(SELECTORS["credential_input"], self.credentials.partner_id)
            self._submit()

        elif self.state is NavState.AWAITING_PASSWORD:
            logger.info("Entering password...")
            self._type_into(SELECTORS["password_input"], self.credentials.password)
            self._enter(NavState.PASSWORD_SUBMITTED)
            self._submit()

        elif self.state is NavState.AWAITING_SECURITY_ANSWER:
            question = reading.security_question
            answer = find_security_answer(question, self.credentials.security_answers)
            if answer is None:
                raise MissingSecurityAnswerError(question)
            logger.info(f"Answering security question: {question!r}")
            self._type_into(SELECTORS["security_input"], answer)
            self._submit()

    def _type_into(self, selector: str, text: str) -> None:
        # Typed key by key; the page enables its submit button from key events
        self.page.fill(selector, "", timeout=self.timeout_ms)
        self.page.focus(selector, timeout=self.timeout_ms)
        self.page.keyboard.type(text)

    def _submit(self) -> None:
        try:
            with self.page.expect_navigation(wait_until="networkidle", timeout=self.timeout_ms):
                self.page.click(SELECTORS["submit"], timeout=self.timeout_ms)
        except PwTimeout as e:
            logger.warning(f"Navigation after submit did not complete: {e}")
        self._wait_until_settled()

    def _wait_until_settled(self) -> None:
        """Wait for the load to finish and for a known screen marker to be attached."""
        try:
            self.page.wait_for_load_state("networkidle", timeout=self.timeout_ms)
            self.page.wait_for_selector(SELECTORS["settled"], timeout=self.timeout_ms, state="attached")
        except PwTimeout as e:
            logger.warning(f"Page did not settle within {self.timeout_ms}ms: {e}")
