"""
Anti-detection helpers for the scraper's Playwright session.

Provides:
- Stealth launch arguments and init script
- playwright-stealth application
- Cloudflare / Turnstile challenge detection and waiting
"""

import logging
import time
from typing import Any, Dict, List, Optional

from playwright_stealth.stealth import Stealth

logger = logging.getLogger(__name__)


# Browser launch arguments for headless operation on a server
STEALTH_ARGS: List[str] = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-blink-features=AutomationControlled",
    "--no-first-run",
    "--no-default-browser-check",
    "--disable-infobars",
    "--disable-notifications",
    "--mute-audio",
]


STEALTH_INIT_SCRIPT: str = """
Object.defineProperty(navigator, 'webdriver', {
    get: () => undefined,
});

window.chrome = window.chrome || {
    runtime: {},
    loadTimes: function() {},
    csi: function() {},
    app: {},
};

Object.defineProperty(navigator, 'languages', {
    get: () => ['ja-JP', 'ja', 'en-US', 'en'],
});

const originalQuery = window.navigator.permissions.query;
window.navigator.permissions.query = (parameters) => (
    parameters.name === 'notifications' ?
        Promise.resolve({ state: Notification.permission }) :
        originalQuery(parameters)
);
"""

TITLE_MARKERS = [
    "just a moment...",
    "attention required! | cloudflare",
    "please wait...",
    "checking your browser",
]

URL_MARKERS = [
    "__cf_chl",
    "/cdn-cgi/",
    "challenges.cloudflare.com",
    "cf-challenge",
]

SELECTOR_MARKERS = {
    "#cf-challenge-running": "selector:#cf-challenge-running",
    "form#challenge-form": "selector:form#challenge-form",
    "iframe[src*='challenges.cloudflare.com']": "selector:cloudflare-iframe",
    ".cf-turnstile": "selector:cf-turnstile",
}


class CloudflareBypass:
    """
    Stealth and bot-challenge handling for one scraper session.

    Usage:
        bypass = CloudflareBypass(config)
        bypass.apply_stealth_to_page(page)
        cleared = bypass.clear_challenge(page)
    """

    def __init__(self, config: Any = None):
        self.enabled = True
        self.challenge_timeout = 30
        self.poll_interval = 1.0
        if config is not None:
            self.enabled = config.use_stealth()
            self.challenge_timeout = config.get_challenge_timeout()

    def get_stealth_args(self) -> List[str]:
        """Get browser launch arguments for stealth mode."""
        return STEALTH_ARGS.copy()

    def apply_stealth_to_page(self, page: Any) -> None:
        """Apply stealth measures to a Playwright page."""
        if not self.enabled:
            return

        try:
            page.add_init_script(STEALTH_INIT_SCRIPT)
            logger.debug("Stealth init script added to page")
        except Exception as e:
            logger.warning("Failed to add stealth init script: %s", e)

        try:
            Stealth().apply_stealth_sync(page)
            logger.debug("Playwright-stealth applied to page")
        except Exception as e:
            logger.warning("Failed to apply playwright-stealth: %s", e)

    def is_cloudflare_challenge(self, page: Any) -> Optional[Dict[str, str]]:
        """
        Check if page is showing a Cloudflare challenge.

        Returns:
            Detection dict with reason/title/url if challenge detected, None otherwise
        """
        try:
            title = (page.title() or "").lower()
            url = (page.url or "").lower()

            for marker in TITLE_MARKERS:
                if marker in title:
                    return {"reason": f"title:{marker}", "title": title, "url": url}

            for marker in URL_MARKERS:
                if marker in url:
                    return {"reason": f"url:{marker}", "title": title, "url": url}

            for selector, reason in SELECTOR_MARKERS.items():
                if page.query_selector(selector):
                    return {"reason": reason, "title": title, "url": url}

            return None
        except Exception:
            return None

    def wait_for_challenge(self, page: Any, timeout_seconds: Optional[int] = None) -> bool:
        """
        Wait for a challenge interstitial to complete on its own.

        Turnstile and the JS challenge usually auto-complete after a few seconds.

        Returns:
            True if challenge cleared, False if still blocked
        """
        timeout = self.challenge_timeout if timeout_seconds is None else timeout_seconds
        deadline = time.monotonic() + timeout
        logger.info("Waiting for Cloudflare challenge to complete...")

        while time.monotonic() < deadline:
            if self.is_cloudflare_challenge(page) is None:
                logger.info("Cloudflare challenge cleared")
                return True
            time.sleep(self.poll_interval)

        logger.warning("Cloudflare challenge did not clear within %ss", timeout)
        return False

    def clear_challenge(self, page: Any) -> bool:
        """Return True when the page is not (or no longer) behind a challenge."""
        if not self.enabled:
            return True
        detection = self.is_cloudflare_challenge(page)
        if detection is None:
            return True
        logger.info("Bot challenge detected (%s)", detection["reason"])
        return self.wait_for_challenge(page)
