"""Collects unrecognized elements seen during a single parse."""
from __future__ import annotations

import logging
from typing import List, Tuple

logger = logging.getLogger(__name__)


class UnknownElementTracker:
    """Order-preserving, de-duplicating record of unknown tags.

    A fresh tracker is created for every parse call and handed to the
    adapter and normalizer, so nothing leaks between documents.
    """

    def __init__(self) -> None:
        self._tags: List[str] = []
        self._seen: set = set()

    def track(self, tag: str) -> None:
        if not tag or tag in self._seen:
            return
        self._seen.add(tag)
        self._tags.append(tag)
        logger.debug("Unknown element: %s", tag)

    def extend(self, tags) -> None:
        for tag in tags:
            self.track(tag)

    def __len__(self) -> int:
        return len(self._tags)

    def __contains__(self, tag: object) -> bool:
        return tag in self._seen

    def as_list(self) -> List[str]:
        return list(self._tags)

    def as_tuple(self) -> Tuple[str, ...]:
        return tuple(self._tags)
