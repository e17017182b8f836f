import logging
from typing import Optional

from .broadcast import GAME_UPDATE
from .match import clamp_momentum
from .phases import Phase, SILENT_PHASES, SYSTEM, LEFT, RIGHT, can_speak

logger = logging.getLogger(__name__)

CROWD_VOTE_DELTAS = {LEFT: -1, RIGHT: 1}


class MomentumEngine:
    """Applies judged speech and crowd votes to a match's momentum.

    Negative deltas favor the left side, positive ones the right. Momentum
    is clamped into [0, 100] on every write.
    """

    def __init__(self, oracle, store, broadcaster):
        self.oracle = oracle
        self.store = store
        self.broadcaster = broadcaster

    def apply_utterance(self, match, text: str, side: str, user_id: Optional[str] = None) -> Optional[int]:
        """Record and score one utterance.

        Returns the delta applied, or None when the utterance was not
        admitted (silent phase, off-turn speaker, empty text).
        """
        text = (text or '').strip()
        if not text:
            return None

        with match.lock:
            if match.phase in SILENT_PHASES:
                return None
            if not can_speak(match.phase, side):
                logger.debug(f"[utterance-drop] match={match.id} side={side} phase={match.phase.value}")
                return None
            match.transcripts.append(text)
            spoken_in = match.phase

        # The oracle is consulted without holding the match lock; the clock
        # may advance the phase in the meantime.
        delta = self._score(text, spoken_in, side)

        with match.lock:
            if match.phase is Phase.RESULTS:
                logger.info(f"[delta-discard] match={match.id} delta={delta} arrived after results")
                return None
            match.momentum = clamp_momentum(match.momentum + delta)
            self.broadcaster.emit_to_match(match.id, GAME_UPDATE, {
                'momentum': match.momentum,
                'lastDelta': delta,
                'transcript': text,
            })

        try:
            self.store.save_match_message(match.id, user_id, text, spoken_in.value, delta)
        except Exception:
            logger.exception(f"[store-fail] match={match.id} saving message")
        return delta

    def apply_crowd_vote(self, match, side: str) -> Optional[int]:
        delta = CROWD_VOTE_DELTAS.get(side)
        if delta is None:
            return None
        with match.lock:
            if match.phase is Phase.RESULTS:
                return None
            match.momentum = clamp_momentum(match.momentum + delta)
            self.broadcaster.emit_to_match(match.id, GAME_UPDATE, {'momentum': match.momentum})
            return match.momentum

    def _score(self, text: str, phase: Phase, side: str) -> int:
        if side == SYSTEM:
            return 0
        try:
            return int(self.oracle.score_impact(text, phase.value, side))
        except Exception as exc:
            logger.warning(f"[oracle-fail] scoring failed, using neutral delta: {exc}")
            return 0
