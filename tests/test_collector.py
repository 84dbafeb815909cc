from pathlib import Path

from collector import (
    JobCardCollector,
    SCREENSHOT_NAME,
    absolute_url,
    build_record,
    format_suggestions,
)
from conftest import FakePage, raw_card


def make_collector(tmp_path: Path, sleeps: list) -> JobCardCollector:
    return JobCardCollector(
        max_attempts=30,
        poll_interval=1.0,
        screenshot_dir=tmp_path / "screenshots",
        sleep=sleeps.append,
    )


def test_format_suggestions_positional() -> None:
    assert format_suggestions(["2", "15"]) == "2/15"
    assert format_suggestions(["2"]) == "2/"
    assert format_suggestions([]) == "/"
    assert format_suggestions(None) == "/"


def test_build_record_missing_fields_are_empty_strings() -> None:
    record = build_record({"title": "Only a title"})

    assert record.title == "Only a title"
    assert record.url == ""
    assert record.price == ""
    assert record.employer_name == ""
    assert record.employer_avatar_url == ""
    assert record.suggestions == "/"


def test_build_record_normalizes_card() -> None:
    record = build_record(raw_card(7))

    assert record.url == "https://www.lancers.jp/work/detail/7"
    assert record.employer_url == "https://www.lancers.jp/client/7"
    assert record.price == "10,000 円 ~ 20,000 円"
    assert record.suggestions == "1/12"
    assert record.days_left == "あと3日"


def test_absolute_url_keeps_full_links() -> None:
    assert absolute_url("https://example.com/x") == "https://example.com/x"
    assert absolute_url("") == ""
    assert absolute_url(None) == ""


def test_cards_on_last_attempt_still_extracted(tmp_path: Path) -> None:
    sleeps: list = []
    page = FakePage(card_counts=[0] * 29 + [1], raw_cards=[raw_card(1)])

    result = make_collector(tmp_path, sleeps).collect(page)

    assert len(result.records) == 1
    assert result.attempts == 30
    assert sleeps == [1.0] * 29


def test_no_cards_returns_empty_without_raising(tmp_path: Path) -> None:
    sleeps: list = []
    page = FakePage(card_counts=[0] * 30)

    result = make_collector(tmp_path, sleeps).collect(page)

    assert result.records == []
    assert not result.ok
    assert page.polls == 30
    assert len(sleeps) == 30
    assert page.screenshots == []


def test_attempt_error_is_swallowed_and_retried(tmp_path: Path) -> None:
    sleeps: list = []
    page = FakePage(card_counts=[2, 2], raw_cards=[raw_card(1), raw_card(2)])
    page.evaluate_errors.append(RuntimeError("Execution context was destroyed"))

    result = make_collector(tmp_path, sleeps).collect(page)

    assert [r.title for r in result.records] == ["Job 1", "Job 2"]
    assert result.attempts == 2
    assert len(result.errors) == 1
    assert "Execution context was destroyed" in result.errors[0]
    assert sleeps == []


def test_every_attempt_failing_returns_empty(tmp_path: Path) -> None:
    page = FakePage(card_counts=[1] * 30, raw_cards=[raw_card(1)])
    page.evaluate_errors.extend(RuntimeError("boom") for _ in range(30))

    result = make_collector(tmp_path, []).collect(page)

    assert result.records == []
    assert len(result.errors) == 30


def test_screenshot_directory_created(tmp_path: Path) -> None:
    page = FakePage(card_counts=[1], raw_cards=[raw_card(1)])

    make_collector(tmp_path, []).collect(page)

    expected = tmp_path / "screenshots" / SCREENSHOT_NAME
    assert page.screenshots == [str(expected)]
    assert expected.exists()


def test_screenshot_failure_does_not_block_extraction(tmp_path: Path) -> None:
    class BrokenScreenshotPage(FakePage):
        def screenshot(self, path):
            raise OSError("disk full")

    page = BrokenScreenshotPage(card_counts=[1], raw_cards=[raw_card(3)])

    result = make_collector(tmp_path, []).collect(page)

    assert [r.title for r in result.records] == ["Job 3"]
    assert result.errors == []


def test_failed_extraction_still_reports_cards_seen(tmp_path: Path) -> None:
    page = FakePage(card_counts=[4] * 30, raw_cards=[raw_card(1)])
    page.evaluate_errors.extend(RuntimeError("boom") for _ in range(30))

    result = make_collector(tmp_path, []).collect(page)

    assert result.records == []
    assert result.cards_found == 4


def test_relative_links_get_a_single_slash() -> None:
    assert absolute_url("/work/detail/7") == "https://www.lancers.jp/work/detail/7"
    assert absolute_url("work/detail/7") == "https://www.lancers.jp/work/detail/7"
    assert "//work" not in absolute_url("/work/detail/7")
