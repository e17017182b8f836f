import logging
from typing import Optional

from .match import AI_BOT_ID
from .phases import Phase, RIGHT, duration_of

logger = logging.getLogger(__name__)

AI_TURN_PHASES = frozenset({Phase.OPENING_P2, Phase.REBUTTAL_P2, Phase.CLOSING_P2})
THINKING_DELAY_SEC = 2
CROSSFIRE_CADENCE_SEC = 15
HISTORY_SIZE = 5
AI_PREFIX = 'AI: '


class AIOpponentDriver:
    """Injects the bot's turns into AI-mode matches.

    Checked once per clock tick, before the countdown step. The bot speaks
    once, two seconds into each of its own phases, and every 15 seconds of
    remaining Crossfire time.
    """

    def __init__(self, oracle, engine):
        self.oracle = oracle
        self.engine = engine

    def should_inject(self, match) -> bool:
        if match.mode != 'ai':
            return False
        if match.phase in AI_TURN_PHASES:
            return match.time_left == duration_of(match.phase) - THINKING_DELAY_SEC
        if match.phase is Phase.CROSSFIRE:
            return match.time_left > 0 and match.time_left % CROSSFIRE_CADENCE_SEC == 0
        return False

    def inject(self, match) -> Optional[int]:
        with match.lock:
            if match.is_finished:
                return None
            topic = dict(match.topic)
            history = match.recent_transcripts(HISTORY_SIZE)
            difficulty = match.difficulty or 'medium'
            phase = match.phase

        try:
            reply = self.oracle.generate_response(topic, history, difficulty, phase.value)
        except Exception as exc:
            logger.warning(f"[oracle-fail] match={match.id} generation skipped: {exc}")
            return None
        if not reply:
            return None

        logger.info(f"[ai-turn] match={match.id} phase={phase.value}")
        return self.engine.apply_utterance(match, f"{AI_PREFIX}{reply}", RIGHT, user_id=AI_BOT_ID)
