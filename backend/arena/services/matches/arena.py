import logging
from typing import Any, Callable, Dict, Optional

from .ai_opponent import AIOpponentDriver
from .broadcast import GAME_INIT, VOICE_ACTIVITY
from .clock import PhaseClock, run_inline
from .match import Match, normalize_input_mode
from .matchmaking import RankedMatchmaker, RankedQueueEntry
from .momentum import MomentumEngine
from .phases import PhaseStateMachine
from .registry import MatchRegistry
from .sessions import SessionRegistry

logger = logging.getLogger(__name__)


class Arena:
    """Entry point from the transport layer into the match core.

    Every inbound client event maps onto one method here. Unknown match ids
    are ignored for everything except ``join``.
    """

    def __init__(self, oracle, store, topics, broadcaster,
                 spawn: Callable = run_inline, sleep: Optional[Callable[[float], None]] = None,
                 tick_interval: float = 1.0, heartbeat_sec: int = 0,
                 grace_seconds: float = 300, rating_window: int = 200, default_rating: int = 1000,
                 transcriber_factory: Optional[Callable] = None):
        self.oracle = oracle
        self.store = store
        self.topics = topics
        self.broadcaster = broadcaster
        self.default_rating = default_rating
        self.transcriber_factory = transcriber_factory

        self.registry = MatchRegistry(grace_seconds=grace_seconds)
        self.sessions = SessionRegistry()
        self.machine = PhaseStateMachine(store)
        self.engine = MomentumEngine(oracle, store, broadcaster)
        self.driver = AIOpponentDriver(oracle, self.engine)
        self.matchmaker = RankedMatchmaker(broadcaster, rating_window=rating_window)
        clock_kwargs = {'sleep': sleep} if sleep is not None else {}
        self.clock = PhaseClock(self.registry, self.machine, self.driver, broadcaster,
                                spawn=spawn, interval=tick_interval, heartbeat_sec=heartbeat_sec,
                                **clock_kwargs)

    # ---- Matches ----

    def join(self, sid: str, match_id: str, mode: Optional[str] = None, difficulty: Optional[str] = None,
             input_mode: Optional[str] = None, user_id: Optional[str] = None,
             username: Optional[str] = None) -> Match:
        match = self.registry.get(match_id)
        if match is None:
            topic = self._fetch_topic()
            match = self.registry.get_or_create(
                match_id, lambda: Match.create(match_id, topic, mode, difficulty, input_mode)
            )

        player_id = str(user_id) if user_id else sid
        with match.lock:
            side = None if match.is_finished else match.seat(player_id, username)
            state = match.to_dict()
        self.sessions.open(sid, match_id=match_id, side=side, user_id=player_id, username=username)
        logger.info(f"[join] match={match_id} sid={sid} side={side or 'spectator'}")
        self.broadcaster.emit_to_connection(sid, GAME_INIT, state)
        return match

    def submit_utterance(self, sid: str, match_id: str, text: str, side: Optional[str] = None) -> Optional[int]:
        match = self.registry.get(match_id)
        if match is None:
            return None
        session = self.sessions.get(sid)
        if session is None or session.match_id != match_id or not session.is_player:
            return None
        # A claimed side must match the held seat
        if side is not None and side != session.side:
            return None
        return self.engine.apply_utterance(match, text, session.side, user_id=session.user_id)

    def crowd_vote(self, match_id: str, side: str) -> Optional[int]:
        match = self.registry.get(match_id)
        if match is None:
            return None
        return self.engine.apply_crowd_vote(match, side)

    def audio_chunk(self, sid: str, match_id: str, chunk: Any, volume: float = 0.0) -> None:
        match = self.registry.get(match_id)
        session = self.sessions.get(sid)
        if match is None or session is None or session.match_id != match_id or not session.is_player:
            return
        self.broadcaster.emit_to_match(match_id, VOICE_ACTIVITY, {'side': session.side, 'volume': volume})
        if self.transcriber_factory is None or chunk is None:
            return
        if session.transcriber is None:
            session.transcriber = self.transcriber_factory(
                lambda text: self.submit_utterance(sid, match_id, text)
            )
        if session.transcriber is not None:
            session.transcriber.send(chunk)

    def get_state(self, match_id: str) -> Optional[Dict[str, Any]]:
        match = self.registry.get(match_id)
        if match is None:
            return None
        with match.lock:
            return match.to_dict()

    # ---- Ranked queue ----

    def queue_join(self, sid: str, user_id: str, username: Optional[str] = None,
                   input_mode: Optional[str] = None):
        entry = RankedQueueEntry(
            connection_id=sid,
            user_id=str(user_id),
            username=username or str(user_id),
            rating=self._rating_for(user_id),
            input_mode=normalize_input_mode(input_mode),
        )
        return self.matchmaker.join(entry)

    def queue_leave(self, sid: str) -> bool:
        return self.matchmaker.leave(sid)

    # ---- Connections ----

    def disconnect(self, sid: str) -> None:
        self.matchmaker.leave(sid, notify=False)
        self.sessions.close(sid)

    def _fetch_topic(self) -> Dict[str, str]:
        try:
            return self.topics.get_random_topic()
        except Exception:
            logger.exception("[topic-fail] using empty topic")
            return {'title': '', 'description': ''}

    def _rating_for(self, user_id) -> int:
        try:
            rating = self.store.rating_for(user_id)
        except Exception:
            logger.exception(f"[store-fail] rating lookup user={user_id}")
            rating = None
        return self.default_rating if rating is None else int(rating)
