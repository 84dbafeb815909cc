from pathlib import Path
from typing import List, Optional

import pytest

from config_loader import ConfigLoader
from scraper import stop_scraping

SETTINGS = """
browser:
  headless: true
  navigation_timeout: 20
  use_stealth: false
scraper:
  search_urls:
    - "https://www.lancers.jp/work/search/system?open=1"
    - "https://www.lancers.jp/work/search/web?open=1"
  restart_every: 100
  max_attempts: 30
  poll_interval: 1.0
  cycle_delay: 30
  session_retry_delay: 5
  login_retry_delay: 2
  login_settle_delay: 5
  screenshot_dir: "{screenshot_dir}"
"""


class FakeCard:
    pass


class FakePage:
    """Stands in for a Playwright page"""

    def __init__(self, card_counts: Optional[List[int]] = None, raw_cards: Optional[list] = None):
        self.card_counts = list(card_counts or [])
        self.raw_cards = raw_cards if raw_cards is not None else []
        self.polls = 0
        self.screenshots: List[str] = []
        self.visited: List[str] = []
        self.typed: List[tuple] = []
        self.clicked: List[str] = []
        self.evaluate_errors: List[Exception] = []
        self.goto_error: Optional[Exception] = None
        self.on_goto = None
        self.url = ""

    def query_selector_all(self, selector):
        count = self.card_counts[self.polls] if self.polls < len(self.card_counts) else 0
        self.polls += 1
        return [FakeCard() for _ in range(count)]

    def query_selector(self, selector):
        return None

    def title(self):
        return "Lancers"

    def screenshot(self, path):
        Path(path).write_bytes(b"png")
        self.screenshots.append(path)

    def evaluate(self, script, arg=None):
        if self.evaluate_errors:
            raise self.evaluate_errors.pop(0)
        return list(self.raw_cards)

    def goto(self, url, wait_until=None, timeout=None):
        self.visited.append(url)
        if self.on_goto:
            self.on_goto(url)
        if self.goto_error:
            raise self.goto_error
        self.url = url

    def type(self, selector, text, delay=None):
        self.typed.append((selector, text, delay))

    def click(self, selector):
        self.clicked.append(selector)


class FakeSession:
    """Stands in for session.BrowserSession"""

    def __init__(self, page: FakePage, close_errors=None, navigation_error=None):
        self.page = page
        self.closed = False
        self.close_errors = close_errors or []
        self.navigation_error = navigation_error
        self.viewport = None
        self.navigated: List[str] = []

    def set_viewport(self, width, height):
        self.viewport = (width, height)

    def navigate(self, url, timeout_ms):
        self.navigated.append(url)
        if self.navigation_error:
            raise self.navigation_error
        self.page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)

    def close(self):
        self.closed = True
        self.page = None
        return list(self.close_errors)


def raw_card(n: int) -> dict:
    return {
        "title": f"Job {n}",
        "href": f"/work/detail/{n}",
        "price": "10,000 円  ~\n  20,000 円",
        "daysLeft": "あと3日",
        "employer": f"Client {n}",
        "employerHref": f"/client/{n}",
        "employerAvatar": f"https://cdn.lancers.jp/avatar/{n}.png",
        "proposeNumbers": ["1", "12"],
        "category": "システム開発",
        "description": f"Build thing {n}",
    }


@pytest.fixture
def config(tmp_path: Path) -> ConfigLoader:
    path = tmp_path / "settings.yaml"
    path.write_text(SETTINGS.format(screenshot_dir=tmp_path / "screenshots"), encoding="utf-8")
    return ConfigLoader(str(path))


@pytest.fixture(autouse=True)
def _reset_run_flag():
    yield
    stop_scraping()
