import logging
import threading
import time
from typing import Callable, Dict, List, Optional

from .match import Match

logger = logging.getLogger(__name__)


class MatchRegistry:
    """In-memory match table with an explicit lifecycle.

    Matches are created lazily on first join and evicted once they have
    been in Results for ``grace_seconds``.
    """

    def __init__(self, grace_seconds: float = 300, clock: Callable[[], float] = time.monotonic):
        self.grace_seconds = grace_seconds
        self._clock = clock
        self._matches: Dict[str, Match] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._matches)

    def __contains__(self, match_id: str) -> bool:
        return match_id in self._matches

    def get(self, match_id: str) -> Optional[Match]:
        return self._matches.get(match_id)

    def create(self, match: Match) -> Match:
        with self._lock:
            if match.id in self._matches:
                raise KeyError(f"match {match.id} already exists")
            self._matches[match.id] = match
        logger.info(f"[match-create] match={match.id} mode={match.mode} input={match.input_mode}")
        return match

    def get_or_create(self, match_id: str, factory: Callable[[], Match]) -> Match:
        """Return the match for ``match_id``, building it with ``factory`` if absent."""
        with self._lock:
            existing = self._matches.get(match_id)
            if existing is not None:
                return existing
            match = factory()
            self._matches[match_id] = match
        logger.info(f"[match-create] match={match.id} mode={match.mode} input={match.input_mode}")
        return match

    def remove(self, match_id: str) -> Optional[Match]:
        with self._lock:
            return self._matches.pop(match_id, None)

    def all_matches(self) -> List[Match]:
        with self._lock:
            return list(self._matches.values())

    def live_matches(self) -> List[Match]:
        return [m for m in self.all_matches() if not m.is_finished]

    def evict_finished(self, now: Optional[float] = None) -> List[str]:
        now = self._clock() if now is None else now
        evicted = []
        with self._lock:
            for match_id, match in list(self._matches.items()):
                if match.finished_at is not None and now - match.finished_at >= self.grace_seconds:
                    del self._matches[match_id]
                    evicted.append(match_id)
        for match_id in evicted:
            logger.info(f"[match-evict] match={match_id}")
        return evicted
