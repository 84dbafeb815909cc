"""
Error taxonomy for the scrape loop.

Session, login and navigation failures are raised by the component that hit
them and handled by the controller. Extraction-attempt, teardown and dispatch
failures are collected as values and only ever logged.
"""


class ScraperError(Exception):
    """Base class for scrape loop errors."""


class SessionCreationError(ScraperError):
    """Raised when a browser session could not be launched."""


class AuthenticationError(ScraperError):
    """Raised when the login form could not be driven."""


class NavigationError(ScraperError):
    """Raised when a search page failed to load."""


class ExtractionAttemptError(ScraperError):
    """A single poll/extract attempt failed."""


class TeardownError(ScraperError):
    """Closing one browser resource failed."""


class DispatchError(ScraperError):
    """The dispatch hook raised."""
