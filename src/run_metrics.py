"""
Run metrics for the scrape loop.

The loop runs unattended for days, so degraded outcomes (restarts, empty
pages, swallowed errors) are only visible here and in the log.
"""

import json
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Deque, Dict, Optional, Type

from errors import (
    AuthenticationError,
    DispatchError,
    ExtractionAttemptError,
    NavigationError,
    ScraperError,
    SessionCreationError,
    TeardownError,
)
from models import ExtractionResult

TRACKED_ERRORS = (
    SessionCreationError,
    AuthenticationError,
    NavigationError,
    ExtractionAttemptError,
    TeardownError,
    DispatchError,
)


class RestartReason(Enum):
    INITIAL = "initial"
    THRESHOLD = "threshold"
    MISSING_HANDLE = "missing_handle"
    AUTH_FAILURE = "auth_failure"


@dataclass
class TargetStats:
    """Per search page outcome counts"""

    cycles: int = 0
    jobs: int = 0
    empty_extractions: int = 0
    navigation_failures: int = 0


@dataclass
class RunMetrics:
    started_at: datetime = field(default_factory=datetime.now)
    stopped_at: Optional[datetime] = None
    sessions_created: int = 0
    unexpected_errors: int = 0
    errors: Counter = field(default_factory=Counter)
    restarts: Counter = field(default_factory=Counter)
    targets: Dict[str, TargetStats] = field(default_factory=dict)
    recent_errors: Deque[str] = field(default_factory=lambda: deque(maxlen=50))

    def target(self, url: str) -> TargetStats:
        if url not in self.targets:
            self.targets[url] = TargetStats()
        return self.targets[url]

    def error_count(self, error_type: Type[ScraperError]) -> int:
        return self.errors[error_type.__name__]

    def record_error(self, error: ScraperError) -> None:
        self.errors[type(error).__name__] += 1
        self.recent_errors.append(f"{datetime.now().isoformat()} {type(error).__name__}: {error}")

    def record_unexpected(self, exc: Exception) -> None:
        self.unexpected_errors += 1
        self.recent_errors.append(f"{datetime.now().isoformat()} {type(exc).__name__}: {exc}")

    def record_session(self, reason: RestartReason) -> None:
        self.sessions_created += 1
        self.restarts[reason.value] += 1

    def record_navigation_failure(self, url: str, error: NavigationError) -> None:
        self.target(url).navigation_failures += 1
        self.record_error(error)

    def record_cycle(self, url: str, result: ExtractionResult) -> None:
        stats = self.target(url)
        stats.cycles += 1
        stats.jobs += len(result.records)
        if not result.ok:
            stats.empty_extractions += 1
        # attempt errors only arrive as strings from the collector
        self.errors[ExtractionAttemptError.__name__] += len(result.errors)

    @property
    def cycles(self) -> int:
        return sum(stats.cycles for stats in self.targets.values())

    def stop(self) -> None:
        if self.stopped_at is None:
            self.stopped_at = datetime.now()

    def summary(self) -> Dict[str, Any]:
        end = self.stopped_at or datetime.now()
        return {
            "started_at": self.started_at.isoformat(),
            "stopped_at": self.stopped_at.isoformat() if self.stopped_at else None,
            "uptime_seconds": round((end - self.started_at).total_seconds(), 3),
            "sessions_created": self.sessions_created,
            "restarts": dict(self.restarts),
            "errors": {cls.__name__: self.errors[cls.__name__] for cls in TRACKED_ERRORS},
            "unexpected_errors": self.unexpected_errors,
            "targets": {url: vars(stats).copy() for url, stats in self.targets.items()},
            "recent_errors": list(self.recent_errors),
        }

    def write_json(self, *, template: str) -> Path:
        path = Path(template.replace("{timestamp}", self.started_at.strftime("%Y%m%d_%H%M%S")))
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.summary(), indent=2, ensure_ascii=False), encoding="utf-8")
        return path
