import logging
import threading
import uuid
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .broadcast import MATCH_FOUND, QUEUE_JOINED, QUEUE_LEFT

logger = logging.getLogger(__name__)


@dataclass
class RankedQueueEntry:
    connection_id: str
    user_id: str
    username: str
    rating: int
    input_mode: str = 'voice'


@dataclass
class Pairing:
    match_id: str
    first: RankedQueueEntry
    second: RankedQueueEntry


def new_ranked_match_id() -> str:
    return f"ranked-{uuid.uuid4().hex[:12]}"


class RankedMatchmaker:
    """First-fit ranked queue.

    A newcomer is paired with the first waiting entry that uses the same
    input mode and sits within ``rating_window`` of its rating, not with the
    closest one.
    """

    def __init__(self, broadcaster, rating_window: int = 200):
        self.broadcaster = broadcaster
        self.rating_window = rating_window
        self._waiting: List[RankedQueueEntry] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._waiting)

    def waiting(self) -> List[RankedQueueEntry]:
        with self._lock:
            return list(self._waiting)

    def is_compatible(self, waiting: RankedQueueEntry, newcomer: RankedQueueEntry) -> bool:
        return (
            abs(waiting.rating - newcomer.rating) < self.rating_window
            and waiting.input_mode == newcomer.input_mode
            and waiting.user_id != newcomer.user_id
        )

    def join(self, entry: RankedQueueEntry) -> Optional[Pairing]:
        with self._lock:
            pairing, position = self._join_locked(entry)

        if pairing is None:
            logger.info(f"[queue-join] user={entry.user_id} rating={entry.rating} position={position}")
            self.broadcaster.emit_to_connection(entry.connection_id, QUEUE_JOINED, {'position': position})
            return None

        opponent = pairing.first
        logger.info(f"[queue-match] match={pairing.match_id} users={opponent.user_id},{entry.user_id}")
        self.broadcaster.emit_to_connection(entry.connection_id, MATCH_FOUND, {
            'matchId': pairing.match_id,
            'opponentName': opponent.username,
            'inputMode': entry.input_mode,
        })
        self.broadcaster.emit_to_connection(opponent.connection_id, MATCH_FOUND, {
            'matchId': pairing.match_id,
            'opponentName': entry.username,
            'inputMode': opponent.input_mode,
        })
        return pairing

    def _join_locked(self, entry: RankedQueueEntry) -> Tuple[Optional[Pairing], int]:
        # Re-joining replaces the connection's previous entry
        self._waiting = [e for e in self._waiting if e.connection_id != entry.connection_id]
        for idx, candidate in enumerate(self._waiting):
            if self.is_compatible(candidate, entry):
                del self._waiting[idx]
                return Pairing(new_ranked_match_id(), candidate, entry), 0
        self._waiting.append(entry)
        return None, len(self._waiting)

    def leave(self, connection_id: str, notify: bool = True) -> bool:
        with self._lock:
            before = len(self._waiting)
            self._waiting = [e for e in self._waiting if e.connection_id != connection_id]
            removed = len(self._waiting) != before
        if removed:
            logger.info(f"[queue-leave] connection={connection_id}")
        if notify:
            self.broadcaster.emit_to_connection(connection_id, QUEUE_LEFT, {})
        return removed
