"""
Scrape loop - keeps one authenticated browser session alive and polls the
search pages forever, recreating the session on failure and every
`restart_every` cycles to bound browser memory growth.
"""

import logging
import threading
from enum import Enum
from typing import Any, Callable, List, Optional

from collector import JobCardCollector
from config_loader import ConfigLoader
from dispatch import DispatchHook
from errors import AuthenticationError, DispatchError, NavigationError, SessionCreationError
from models import ExtractionResult, JobRecord, select_target
from run_metrics import RestartReason, RunMetrics

logger = logging.getLogger(__name__)


class LoopState(Enum):
    NEED_SESSION = "need_session"
    AUTHENTICATING = "authenticating"
    SCRAPING = "scraping"
    STOPPED = "stopped"


class RunToken:
    """Cooperative run flag, checked by the loop at its checkpoints."""

    def __init__(self) -> None:
        self._stop = threading.Event()
        self._stop.set()

    def start(self) -> None:
        self._stop.clear()

    def stop(self) -> None:
        self._stop.set()

    @property
    def is_running(self) -> bool:
        return not self._stop.is_set()

    def wait(self, seconds: float) -> None:
        """Sleep, returning early once a stop is requested."""
        self._stop.wait(seconds)


class ScrapeController:
    """Session lifecycle state machine"""

    def __init__(
        self,
        config: ConfigLoader,
        session_factory: Callable[[], Any],
        authenticator: Any,
        collector: JobCardCollector,
        dispatch_hook: DispatchHook,
        owner_id: str = "",
        metrics: Optional[RunMetrics] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.session_factory = session_factory
        self.authenticator = authenticator
        self.collector = collector
        self.dispatch_hook = dispatch_hook
        self.owner_id = owner_id
        self.metrics = metrics if metrics is not None else RunMetrics()
        self._sleep = sleep

        self.search_urls = config.get_search_urls()
        self.restart_every = config.get_restart_every()
        self.navigation_timeout = config.get_navigation_timeout()
        self.viewport = config.get_viewport()
        self.session_retry_delay = config.get_session_retry_delay()
        self.login_retry_delay = config.get_login_retry_delay()
        self.login_settle_delay = config.get_login_settle_delay()
        self.cycle_delay = config.get_cycle_delay()

        self.session: Optional[Any] = None
        self.iteration = 0
        self.state = LoopState.NEED_SESSION
        self._token = RunToken()

        self._pending_reason: Optional[RestartReason] = None

    def restart_reason(self) -> Optional[RestartReason]:
        """Why the session must be recreated now, or None if it is usable"""
        if self._pending_reason is not None:
            return self._pending_reason
        if self.session is None:
            return RestartReason.MISSING_HANDLE if self.metrics.sessions_created else RestartReason.INITIAL
        if getattr(self.session, "page", None) is None:
            return RestartReason.MISSING_HANDLE
        if self.iteration >= self.restart_every:
            return RestartReason.THRESHOLD
        return None

    def needs_restart(self) -> bool:
        return self.restart_reason() is not None

    def _pause(self, seconds: float) -> None:
        if self._sleep is not None:
            self._sleep(seconds)
        else:
            self._token.wait(seconds)

    def run(self, token: RunToken) -> None:
        """Run until a stop is observed at a checkpoint. Never raises from a step."""
        self._token = token
        self.state = LoopState.NEED_SESSION
        logger.info("Scrape loop started")
        try:
            while self.state is not LoopState.STOPPED:
                try:
                    self.step()
                except Exception as exc:
                    logger.error("Error in scrape loop: %s", exc, exc_info=True)
                    self.metrics.record_unexpected(exc)
        finally:
            self.teardown()
            self.metrics.stop()
            logger.info("Scrape loop stopped after %s cycles", self.metrics.cycles)

    def step(self) -> None:
        """Advance the state machine by one transition"""
        if self.state is LoopState.SCRAPING:
            self._scrape_cycle()
            return

        if not self._token.is_running:
            self.state = LoopState.STOPPED
            return

        if self.state is LoopState.NEED_SESSION:
            self._start_session()
        elif self.state is LoopState.AUTHENTICATING:
            self._authenticate()

    def teardown(self) -> None:
        if self.session is None:
            return
        for error in self.session.close() or []:
            self.metrics.record_error(error)
        self.session = None

    def _start_session(self) -> None:
        reason = self.restart_reason() or RestartReason.MISSING_HANDLE
        logger.info("♻️ Restarting browser (%s)...", reason.value)
        self.teardown()

        try:
            session = self.session_factory()
        except SessionCreationError as exc:
            logger.error("Error creating browser: %s", exc)
            self.metrics.record_error(exc)
            self._pending_reason = reason
            self._pause(self.session_retry_delay)
            return

        self.session = session
        self.iteration = 0
        self._pending_reason = None
        self.metrics.record_session(reason)

        try:
            session.set_viewport(self.viewport["width"], self.viewport["height"])
        except Exception as exc:
            logger.error("Error setting viewport: %s", exc)

        self.state = LoopState.AUTHENTICATING

    def _authenticate(self) -> None:
        try:
            self.authenticator.login(self.session.page)
        except AuthenticationError as exc:
            logger.error("Error during login: %s", exc)
            self.metrics.record_error(exc)
            self._pending_reason = RestartReason.AUTH_FAILURE
            self._pause(self.login_retry_delay)
            self.state = LoopState.NEED_SESSION
            return

        self._pause(self.login_settle_delay)
        self.state = LoopState.SCRAPING

    def _scrape_cycle(self) -> None:
        if self.needs_restart():
            self.state = LoopState.NEED_SESSION
            return

        self.iteration += 1
        if not self._token.is_running:
            self.state = LoopState.STOPPED
            return

        url = select_target(self.iteration, self.search_urls)
        if not url:
            logger.warning("Empty search url at position %s; skipping", self.iteration % len(self.search_urls))
            return

        try:
            self.session.navigate(url, self.navigation_timeout)
        except NavigationError as exc:
            logger.error("Error navigating to search url: %s", exc)
            self.metrics.record_navigation_failure(url, exc)
            return

        result = self.collector.collect(self.session.page)
        self._log_result(result)
        self.metrics.record_cycle(url, result)
        self._dispatch(result.records)
        self._pause(self.cycle_delay)

    def _log_result(self, result: ExtractionResult) -> None:
        if result.ok:
            logger.info(
                "✅ Scraped jobs %s from %s cards (attempt %s)",
                len(result.records), result.cards_found, result.attempts,
            )
        elif result.cards_found:
            logger.warning("❌ %s cards found but nothing extracted", result.cards_found)
        else:
            logger.warning("❌ Failed to scrape jobs after multiple attempts.")
        for error in result.errors:
            logger.debug("Extraction attempt error: %s", error)

    def _dispatch(self, records: List[JobRecord]) -> None:
        ordered = [record.to_dict() for record in reversed(records)]
        try:
            self.dispatch_hook(self.owner_id, ordered)
        except Exception as exc:
            error = DispatchError(f"Dispatch hook failed: {exc}")
            logger.error("Error in dispatch hook: %s", error)
            self.metrics.record_error(error)



_run_token = RunToken()


def start_scraping(controller: ScrapeController) -> None:
    """Set the run flag and run the loop in the calling thread."""
    _run_token.start()
    try:
        controller.run(_run_token)
    except Exception as exc:
        logger.error("Error occurred while scraping jobs: %s", exc)


def stop_scraping() -> None:
    _run_token.stop()


def get_scraping_status() -> bool:
    return _run_token.is_running
