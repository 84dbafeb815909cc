"""
Job Collector - polls a search page for listing cards and extracts them
"""

import logging
import time
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence
from urllib.parse import urljoin

from errors import ExtractionAttemptError
from models import ExtractionResult, JobRecord

logger = logging.getLogger(__name__)

SITE_BASE_URL = "https://www.lancers.jp/"
CARD_SELECTOR = "div.p-search-job-media.c-media.c-media--item"
SCREENSHOT_NAME = "job_cards.png"

# Runs in the page; returns one raw dict per card in document order
EXTRACT_CARDS_SCRIPT = """
(selector) => {
    const text = (node) => (node && node.textContent ? node.textContent.trim() : "");
    const attr = (node, name) => (node ? node.getAttribute(name) || "" : "");

    return Array.from(document.querySelectorAll(selector)).map((card) => {
        const titleAnchor = card.querySelector("a.p-search-job-media__title");
        const employerAnchor = card.querySelector(".p-search-job-media__avatar-note a");
        const avatar = card.querySelector(".p-search-job-media__avatar-image-wrapper img");
        const proposeNodes = card.querySelectorAll(".p-search-job-media__propose-number");

        return {
            title: text(titleAnchor),
            href: attr(titleAnchor, "href"),
            price: text(card.querySelector(".p-search-job-media__price")),
            daysLeft: text(card.querySelector(".p-search-job-media__time-remaining")),
            employer: text(employerAnchor),
            employerHref: attr(employerAnchor, "href"),
            employerAvatar: attr(avatar, "src"),
            proposeNumbers: Array.from(proposeNodes).map(text),
            category: text(card.querySelector(".p-search-job__division-link")),
            description: text(card.querySelector(".c-media__description")),
        };
    });
}
"""


def _clean(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def absolute_url(href: Any) -> str:
    """Resolve a card link against the site; empty stays empty"""
    href = _clean(href)
    if not href or href.startswith("http"):
        return href
    return urljoin(SITE_BASE_URL, href)


def format_suggestions(numbers: Optional[Sequence[Any]]) -> str:
    """Combine the positional proposal-count nodes into "winners/applicants"."""
    numbers = list(numbers or [])
    winners = _clean(numbers[0]) if len(numbers) > 0 else ""
    applicants = _clean(numbers[1]) if len(numbers) > 1 else ""
    return f"{winners}/{applicants}"


def build_record(raw: Optional[dict]) -> JobRecord:
    """Turn one raw card dict into a JobRecord; absent fields become ''"""
    raw = raw or {}
    return JobRecord(
        title=_clean(raw.get("title")),
        url=absolute_url(raw.get("href")),
        description=_clean(raw.get("description")),
        category=_clean(raw.get("category")),
        price=" ".join(_clean(raw.get("price")).split()),
        suggestions=format_suggestions(raw.get("proposeNumbers")),
        days_left=_clean(raw.get("daysLeft")),
        employer_name=_clean(raw.get("employer")),
        employer_url=absolute_url(raw.get("employerHref")),
        employer_avatar_url=_clean(raw.get("employerAvatar")),
    )


class JobCardCollector:
    """Retry engine: waits for listing cards to render, then extracts them"""

    def __init__(
        self,
        max_attempts: int = 30,
        poll_interval: float = 1.0,
        screenshot_dir: Path = Path("screenshots"),
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.max_attempts = max_attempts
        self.poll_interval = poll_interval
        self.screenshot_dir = screenshot_dir
        self._sleep = sleep

    @classmethod
    def from_config(cls, config, sleep: Callable[[float], None] = time.sleep) -> "JobCardCollector":
        return cls(
            max_attempts=config.get_max_attempts(),
            poll_interval=config.get_poll_interval(),
            screenshot_dir=config.get_screenshot_dir(),
            sleep=sleep,
        )

    def _save_screenshot(self, page: Any) -> Optional[Path]:
        """Diagnostic capture; failures are logged and ignored"""
        directory = self.screenshot_dir
        if not directory.is_absolute():
            directory = Path.cwd() / directory
        path = directory / SCREENSHOT_NAME
        try:
            directory.mkdir(parents=True, exist_ok=True)
            page.screenshot(path=str(path))
        except Exception as exc:
            logger.warning("Screenshot failed: %s", exc)
            return None
        return path

    def collect(self, page: Any) -> ExtractionResult:
        """
        Poll for job cards and extract them.

        An empty result means no cards appeared (or every extraction attempt
        failed) within the retry budget; this never raises.
        """
        errors: List[ExtractionAttemptError] = []
        cards_seen = 0

        for attempt in range(1, self.max_attempts + 1):
            try:
                cards = page.query_selector_all(CARD_SELECTOR)
                if not cards:
                    logger.info("🕵️ Waiting for job cards... (%s/%s)", attempt, self.max_attempts)
                    self._sleep(self.poll_interval)
                    continue

                cards_seen = len(cards)
                self._save_screenshot(page)

                raw_cards = page.evaluate(EXTRACT_CARDS_SCRIPT, CARD_SELECTOR) or []
                records = [build_record(raw) for raw in raw_cards]
                return ExtractionResult(
                    records=records,
                    attempts=attempt,
                    cards_found=len(cards),
                    errors=[str(e) for e in errors],
                )
            except Exception as exc:
                logger.warning("⚠️ Error during scrape attempt %s: %s", attempt, exc)
                errors.append(ExtractionAttemptError(f"attempt {attempt}: {exc}"))
                continue

        return ExtractionResult(
            attempts=self.max_attempts,
            cards_found=cards_seen,
            errors=[str(e) for e in errors],
        )
