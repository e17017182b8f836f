"""Per-connection session records.

A session ties a socket connection to the match it joined, its seat and,
for voice matches, the live transcription stream it owns. Closing the
session releases that stream.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class Session:
    sid: str
    match_id: Optional[str] = None
    side: Optional[str] = None
    user_id: Optional[str] = None
    username: Optional[str] = None
    transcriber: Any = None

    @property
    def is_player(self) -> bool:
        return self.side is not None

    def release_transcriber(self) -> None:
        stream, self.transcriber = self.transcriber, None
        if stream is None:
            return
        try:
            stream.close()
        except Exception:
            logger.exception(f"[transcriber-close] sid={self.sid}")


class SessionRegistry:
    def __init__(self):
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, sid: str) -> Optional[Session]:
        return self._sessions.get(sid)

    def open(self, sid: str, **fields) -> Session:
        """Bind ``sid`` to a fresh session, releasing any previous one."""
        session = Session(sid=sid, **fields)
        with self._lock:
            previous = self._sessions.get(sid)
            self._sessions[sid] = session
        if previous is not None:
            previous.release_transcriber()
        return session

    def close(self, sid: str) -> Optional[Session]:
        with self._lock:
            session = self._sessions.pop(sid, None)
        if session is not None:
            session.release_transcriber()
        return session
