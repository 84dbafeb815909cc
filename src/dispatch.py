"""
Dispatch hook - receives each scraped batch
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

# hook(owner_id, records): records are JobRecord.to_dict() payloads
# (camelCase keys), oldest-appearing first
DispatchHook = Callable[[str, List[Dict[str, Any]]], None]

DEFAULT_MAX_SEEN = 5000


class LoggingDispatcher:
    """Default hook: logs listings not seen recently in this process."""

    def __init__(self, max_seen: int = DEFAULT_MAX_SEEN) -> None:
        self.max_seen = max_seen
        self.seen: OrderedDict[str, None] = OrderedDict()

    def _key(self, record: Dict[str, Any]) -> str:
        return record.get("url") or f"{record.get('title', '')}|{record.get('employerName', '')}"

    def filter_new(self, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        new_records: List[Dict[str, Any]] = []
        for record in records:
            key = self._key(record)
            if key in self.seen:
                self.seen.move_to_end(key)
                continue
            self.seen[key] = None
            new_records.append(record)
            if len(self.seen) > self.max_seen:
                self.seen.popitem(last=False)
        return new_records

    def __call__(self, owner_id: str, records: List[Dict[str, Any]]) -> None:
        new_records = self.filter_new(records)
        logger.info(
            "Dispatch for %s: %s jobs, %s new", owner_id or "-", len(records), len(new_records)
        )
        for record in new_records:
            logger.info(
                "🆕 %s (%s) %s", record.get("title"), record.get("price") or "no price", record.get("url")
            )
