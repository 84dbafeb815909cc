"""
Browser session handling - launch, login and teardown
One BrowserSession is alive at a time; the controller replaces it wholesale
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional
from playwright.sync_api import sync_playwright, Page, Browser, BrowserContext, Playwright

from cloudflare_bypass import CloudflareBypass
from config_loader import ConfigLoader, Credentials
from errors import AuthenticationError, NavigationError, SessionCreationError, TeardownError

logger = logging.getLogger(__name__)

EMAIL_SELECTOR = 'input[id="UserEmail"]'
PASSWORD_SELECTOR = 'input[id="UserPassword"]'
SUBMIT_SELECTOR = 'button[type="submit"]'


@dataclass
class BrowserSession:
    """A live browser + page pair"""

    playwright: Optional[Playwright]
    browser: Optional[Browser]
    context: Optional[BrowserContext]
    page: Optional[Page]
    bypass: CloudflareBypass = field(default_factory=CloudflareBypass)

    def set_viewport(self, width: int, height: int) -> None:
        self.page.set_viewport_size({"width": width, "height": height})

    def navigate(self, url: str, timeout_ms: int) -> None:
        """Load a search page and wait out any bot challenge"""
        try:
            self.page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
        except Exception as exc:
            raise NavigationError(f"Navigation to {url} failed: {exc}") from exc

        if not self.bypass.clear_challenge(self.page):
            logger.warning("Continuing on %s with challenge still showing", url)

    def close(self) -> List[TeardownError]:
        """Release every handle; one failure never blocks the rest"""
        errors: List[TeardownError] = []
        steps = (
            ("page", self.page, "close"),
            ("context", self.context, "close"),
            ("browser", self.browser, "close"),
            ("playwright", self.playwright, "stop"),
        )
        for name, resource, method in steps:
            if resource is None:
                continue
            try:
                getattr(resource, method)()
            except Exception as exc:
                logger.error("Error closing %s: %s", name, exc)
                errors.append(TeardownError(f"{name}: {exc}"))

        self.page = None
        self.context = None
        self.browser = None
        self.playwright = None
        return errors


class SessionFactory:
    """Launches headless Chromium with anti-detection settings"""

    def __init__(self, config: ConfigLoader):
        self.config = config
        self.bypass = CloudflareBypass(config)

    def __call__(self) -> BrowserSession:
        return self.create()

    def create(self) -> BrowserSession:
        """
        Launch a fresh session.

        Raises:
            SessionCreationError: launch failed; anything started is already closed
        """
        logger.info("Starting browser...")
        partial = BrowserSession(playwright=None, browser=None, context=None, page=None, bypass=self.bypass)
        channel = self.config.get_browser_channel() or None
        executable_path = self.config.get_browser_executable_path() or None

        if executable_path and not Path(executable_path).exists():
            logger.warning("Browser executable not found: %s", executable_path)
            executable_path = None

        try:
            partial.playwright = sync_playwright().start()
            partial.browser = partial.playwright.chromium.launch(
                headless=self.config.is_headless(),
                args=self.bypass.get_stealth_args(),
                channel=channel,
                executable_path=executable_path,
                timeout=self.config.get_launch_timeout(),
            )
            partial.context = partial.browser.new_context(viewport=self.config.get_viewport())
            partial.page = partial.context.new_page()
            partial.page.set_default_timeout(self.config.get_protocol_timeout())
        except Exception as exc:
            partial.close()
            raise SessionCreationError(f"Browser launch failed: {exc}") from exc

        self.bypass.apply_stealth_to_page(partial.page)
        logger.info("Browser started successfully")
        return partial


class Authenticator:
    """Drives the login form on a fresh page"""

    def __init__(self, config: ConfigLoader, credentials: Credentials):
        self.login_url = config.get_login_url()
        self.type_delay = config.get_type_delay_ms()
        self.credentials = credentials

    def login(self, page: Any) -> None:
        """
        Submit the login form. Success is not verified here.

        Raises:
            AuthenticationError: navigation or form interaction failed
        """
        try:
            page.goto(self.login_url, wait_until="domcontentloaded")
            page.type(EMAIL_SELECTOR, self.credentials.email, delay=self.type_delay)
            page.type(PASSWORD_SELECTOR, self.credentials.password, delay=self.type_delay)
            page.click(SUBMIT_SELECTOR)
        except Exception as exc:
            raise AuthenticationError(f"Login failed: {exc}") from exc

        logger.info("🔓 Submitted login form")
