from pathlib import Path

import pytest

from config_loader import (
    DEFAULT_SEARCH_URLS,
    ConfigLoader,
    ConfigValidationError,
    load_credentials,
)


def write(tmp_path: Path, text: str) -> str:
    path = tmp_path / "settings.yaml"
    path.write_text(text, encoding="utf-8")
    return str(path)


def test_defaults_from_empty_file(tmp_path: Path) -> None:
    config = ConfigLoader(write(tmp_path, ""))

    assert config.get_search_urls() == DEFAULT_SEARCH_URLS
    assert config.get_restart_every() == 100
    assert config.get_max_attempts() == 30
    assert config.get_poll_interval() == 1.0
    assert config.get_cycle_delay() == 30
    assert config.get_session_retry_delay() == 5
    assert config.get_login_retry_delay() == 2
    assert config.get_login_settle_delay() == 5
    assert config.get_navigation_timeout() == 20000
    assert config.get_protocol_timeout() == 100000
    assert config.get_viewport() == {"width": 1220, "height": 860}
    assert config.get_screenshot_dir() == Path("screenshots")
    assert config.is_headless()


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        ConfigLoader(str(tmp_path / "nope.yaml"))


@pytest.mark.parametrize(
    "text",
    [
        "scraper:\n  cycle_delay: -1\n",
        "scraper:\n  max_attempts: 0\n",
        "browser:\n  navigation_timeout: 0\n",
        "scraper:\n  search_urls: []\n",
    ],
)
def test_invalid_values_rejected(tmp_path: Path, text: str) -> None:
    with pytest.raises(ConfigValidationError):
        ConfigLoader(write(tmp_path, text))


def test_credentials_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("EMAIL", " me@example.com ")
    monkeypatch.setenv("PASSWORD", "secret")
    monkeypatch.setenv("ADMIN_ID", "42")

    credentials = load_credentials()

    assert credentials.email == "me@example.com"
    assert credentials.admin_id == "42"
    assert "secret" not in repr(credentials)


def test_missing_credentials(monkeypatch) -> None:
    monkeypatch.setenv("EMAIL", "me@example.com")
    monkeypatch.delenv("PASSWORD", raising=False)

    with pytest.raises(ConfigValidationError, match="PASSWORD"):
        load_credentials()
