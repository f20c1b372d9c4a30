"""Exceptions raised by the scrape-and-sync run."""

from __future__ import annotations


class ShiftSyncError(Exception):
    """Base class for every error this package raises on purpose."""


class ConfigError(ShiftSyncError):
    """Missing or invalid configuration. The operator has to fix the environment."""


class CalendarNotFoundError(ConfigError):
    """The target calendar could not be resolved, or is not a dedicated calendar."""


class NavigationError(ShiftSyncError):
    """The login flow could not reach the schedule screen."""


class UnrecognizedScreenError(NavigationError):
    """The site kept showing screens the navigator cannot make progress on."""


class MissingSecurityAnswerError(NavigationError):
    """A security question was shown that has no configured answer."""

    def __init__(self, question: str) -> None:
        super().__init__(
            f"No answer configured for security question {question!r}. "
            f"Add it to SECURITY_ANSWERS and re-run."
        )
        self.question = question


class ShiftParseError(ShiftSyncError, ValueError):
    """A scraped shift could not be turned into a start/end interval."""
