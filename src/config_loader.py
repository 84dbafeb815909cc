"""
Configuration loader for the Lancers scraper
Reads and validates settings.yaml
"""

import yaml
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, List
from datetime import datetime
import logging

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_URLS = [
    "https://www.lancers.jp/work/search/system?open=1&ref=header_menu",
    "https://www.lancers.jp/work/search/web?open=1&ref=header_menu",
]


class ConfigValidationError(ValueError):
    """Raised when configuration fails invariant validation."""
    pass


def _validate_non_negative(value: Any, field: str) -> None:
    """Validate that a numeric value is non-negative."""
    if value is not None and float(value) < 0:
        raise ConfigValidationError(
            f"Invalid config: '{field}' must be non-negative, got {value}"
        )


def _validate_positive(value: Any, field: str) -> None:
    """Validate that a numeric value is positive (> 0)."""
    if value is not None and float(value) <= 0:
        raise ConfigValidationError(
            f"Invalid config: '{field}' must be positive (> 0), got {value}"
        )


@dataclass(frozen=True)
class Credentials:
    """Login credentials and the owner id handed to the dispatch hook"""

    email: str
    password: str
    admin_id: str

    def __repr__(self) -> str:
        return f"Credentials(email={self.email!r}, admin_id={self.admin_id!r})"


def load_credentials() -> Credentials:
    """Read EMAIL / PASSWORD / ADMIN_ID from the environment"""
    email = (os.getenv("EMAIL") or "").strip()
    password = os.getenv("PASSWORD") or ""
    admin_id = (os.getenv("ADMIN_ID") or "").strip()

    missing = [name for name, value in (("EMAIL", email), ("PASSWORD", password)) if not value]
    if missing:
        raise ConfigValidationError(
            f"Missing credentials in environment: {', '.join(missing)}"
        )
    if not admin_id:
        logger.warning("ADMIN_ID not set; dispatching jobs with an empty owner id")

    return Credentials(email=email, password=password, admin_id=admin_id)


class ConfigLoader:
    """Loads and validates configuration from YAML file"""

    def __init__(self, config_path: str = "config/settings.yaml"):
        self.config_path = Path(config_path)
        self.config: Dict[str, Any] = {}
        self._load()

    def _load(self) -> None:
        """Load config from YAML file"""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        try:
            with open(self.config_path, 'r') as f:
                self.config = yaml.safe_load(f) or {}
            logger.info(f"✓ Config loaded from {self.config_path}")
        except yaml.YAMLError as e:
            logger.error(f"Error parsing config file: {e}")
            raise

        self._validate_invariants()

    def _validate_invariants(self) -> None:
        """Validate configuration invariants. Raises ConfigValidationError on failure."""
        # Browser timeouts (must be positive)
        _validate_positive(self.get('browser.protocol_timeout'), 'browser.protocol_timeout')
        _validate_positive(self.get('browser.launch_timeout'), 'browser.launch_timeout')
        _validate_positive(self.get('browser.navigation_timeout'), 'browser.navigation_timeout')
        _validate_non_negative(self.get('browser.challenge_timeout'), 'browser.challenge_timeout')
        _validate_positive(self.get('browser.viewport.width'), 'browser.viewport.width')
        _validate_positive(self.get('browser.viewport.height'), 'browser.viewport.height')

        _validate_non_negative(self.get('login.type_delay_ms'), 'login.type_delay_ms')

        # Loop budgets
        _validate_positive(self.get('scraper.restart_every'), 'scraper.restart_every')
        _validate_positive(self.get('scraper.max_attempts'), 'scraper.max_attempts')

        # Loop delays
        for key in (
            'scraper.poll_interval',
            'scraper.cycle_delay',
            'scraper.session_retry_delay',
            'scraper.login_retry_delay',
            'scraper.login_settle_delay',
        ):
            _validate_non_negative(self.get(key), key)

        urls = self.get('scraper.search_urls')
        if urls is not None and (not isinstance(urls, list) or not urls):
            raise ConfigValidationError(
                "Invalid config: 'scraper.search_urls' must be a non-empty list"
            )

        logger.debug("✓ Config invariants validated")

    def get(self, key: str, default: Any = None) -> Any:
        """Get config value by dot notation (e.g., 'scraper.cycle_delay')"""
        keys = key.split('.')
        value = self.config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k, default)
            else:
                return default

        return value

    # === Browser Config ===

    def is_headless(self) -> bool:
        """Check if browser should run in headless mode"""
        return bool(self.get('browser.headless', True))

    def get_protocol_timeout(self) -> int:
        """Get default per-operation timeout in milliseconds"""
        return int(float(self.get('browser.protocol_timeout', 100)) * 1000)

    def get_launch_timeout(self) -> int:
        """Get browser launch timeout in milliseconds"""
        return int(float(self.get('browser.launch_timeout', 60)) * 1000)

    def get_navigation_timeout(self) -> int:
        """Get search page navigation timeout in milliseconds"""
        return int(float(self.get('browser.navigation_timeout', 20)) * 1000)

    def get_challenge_timeout(self) -> int:
        """Get seconds to wait for a bot challenge to clear"""
        return int(self.get('browser.challenge_timeout', 30))

    def get_viewport(self) -> Dict[str, int]:
        """Get viewport size applied after each session launch"""
        return {
            "width": int(self.get('browser.viewport.width', 1220)),
            "height": int(self.get('browser.viewport.height', 860)),
        }

    def get_browser_channel(self) -> str:
        """Get Playwright browser channel override"""
        return self.get('browser.channel', '') or ''

    def get_browser_executable_path(self) -> str:
        """Get browser executable path override"""
        return self.get('browser.executable_path', '') or ''

    def use_stealth(self) -> bool:
        """Check if Playwright stealth should be enabled"""
        return bool(self.get('browser.use_stealth', True))

    # === Login Config ===

    def get_login_url(self) -> str:
        return self.get('login.url', 'https://www.lancers.jp/user/login')

    def get_type_delay_ms(self) -> float:
        """Get per-character typing delay in milliseconds"""
        return float(self.get('login.type_delay_ms', 150))

    # === Scraper Config ===

    def get_search_urls(self) -> List[str]:
        """Get the ordered search pages alternated between cycles"""
        return list(self.get('scraper.search_urls', DEFAULT_SEARCH_URLS))

    def get_restart_every(self) -> int:
        """Get number of cycles after which the browser is recreated"""
        return int(self.get('scraper.restart_every', 100))

    def get_max_attempts(self) -> int:
        """Get number of polls for job cards per search page"""
        return int(self.get('scraper.max_attempts', 30))

    def get_poll_interval(self) -> float:
        return float(self.get('scraper.poll_interval', 1.0))

    def get_cycle_delay(self) -> float:
        return float(self.get('scraper.cycle_delay', 30))

    def get_session_retry_delay(self) -> float:
        return float(self.get('scraper.session_retry_delay', 5))

    def get_login_retry_delay(self) -> float:
        return float(self.get('scraper.login_retry_delay', 2))

    def get_login_settle_delay(self) -> float:
        return float(self.get('scraper.login_settle_delay', 5))

    def get_screenshot_dir(self) -> Path:
        """Get screenshot directory, relative to the working directory"""
        return Path(self.get('scraper.screenshot_dir', 'screenshots'))

    # === Metrics Config ===

    def is_metrics_enabled(self) -> bool:
        return bool(self.get('metrics.enabled', False))

    def get_metrics_template(self) -> str:
        return self.get('metrics.output_file', 'output/run_metrics_{timestamp}.json')

    # === Logging Config ===

    def get_log_level(self) -> str:
        """Get logging level"""
        return self.get('logging.level', 'INFO')

    def get_log_file(self) -> Path:
        """Get log file path with timestamp"""
        template = self.get('logging.log_file', 'logs/scraper.log')
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        filename = template.replace('{timestamp}', timestamp)
        return Path(filename)

    def __repr__(self) -> str:
        return f"<Config: {len(self.get_search_urls())} search urls, restart_every={self.get_restart_every()}>"


# Convenience function
def load_config(config_path: str = "config/settings.yaml") -> ConfigLoader:
    """Load configuration from file"""
    return ConfigLoader(config_path)
