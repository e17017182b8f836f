"""Phase sequence and countdown transitions for a match.

The sequence is fixed and only ever walked forward:

    Lobby -> Opening_P1 -> Opening_P2 -> Rebuttal_P1 -> Rebuttal_P2
          -> Crossfire -> Closing_P1 -> Closing_P2 -> Results

``_P1`` phases belong to the left player, ``_P2`` phases to the right
player (the bot in AI matches), Crossfire is open to both and nobody
speaks in Lobby or Results.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)

LEFT = 'left'
RIGHT = 'right'
BOTH = 'both'
SYSTEM = 'system'
SIDES = (LEFT, RIGHT)


class Phase(str, Enum):
    LOBBY = 'Lobby'
    OPENING_P1 = 'Opening_P1'
    OPENING_P2 = 'Opening_P2'
    REBUTTAL_P1 = 'Rebuttal_P1'
    REBUTTAL_P2 = 'Rebuttal_P2'
    CROSSFIRE = 'Crossfire'
    CLOSING_P1 = 'Closing_P1'
    CLOSING_P2 = 'Closing_P2'
    RESULTS = 'Results'


PHASE_SEQUENCE = list(Phase)

PHASE_DURATIONS = {
    Phase.LOBBY: 15,
    Phase.OPENING_P1: 45,
    Phase.OPENING_P2: 45,
    Phase.REBUTTAL_P1: 30,
    Phase.REBUTTAL_P2: 30,
    Phase.CROSSFIRE: 60,
    Phase.CLOSING_P1: 30,
    Phase.CLOSING_P2: 30,
    Phase.RESULTS: 0,
}

SILENT_PHASES = frozenset({Phase.LOBBY, Phase.RESULTS})


def duration_of(phase: Phase) -> int:
    return PHASE_DURATIONS[phase]


def phase_index(phase: Phase) -> int:
    return PHASE_SEQUENCE.index(phase)


def next_phase(phase: Phase) -> Optional[Phase]:
    """Phase following ``phase``, or None when ``phase`` is terminal."""
    idx = phase_index(phase)
    if idx + 1 >= len(PHASE_SEQUENCE):
        return None
    return PHASE_SEQUENCE[idx + 1]


def speaker_for(phase: Phase) -> Optional[str]:
    if phase in SILENT_PHASES:
        return None
    if phase is Phase.CROSSFIRE:
        return BOTH
    return LEFT if phase.value.endswith('_P1') else RIGHT


def can_speak(phase: Phase, side: str) -> bool:
    """Whether ``side`` may submit scored speech during ``phase``."""
    if phase in SILENT_PHASES:
        return False
    if side == SYSTEM:
        return True
    speaker = speaker_for(phase)
    return speaker == BOTH or speaker == side


@dataclass
class PhaseTick:
    previous: Phase
    phase: Phase
    time_left: int

    @property
    def transitioned(self) -> bool:
        return self.previous is not self.phase

    @property
    def entered_results(self) -> bool:
        return self.transitioned and self.phase is Phase.RESULTS


class PhaseStateMachine:
    """Countdown and transition rules, plus the terminal persistence hook.

    Callers hold ``match.lock`` around :meth:`tick`. :meth:`finalize` must be
    called outside the lock; it hands the final state to the result store
    at most once per match.
    """

    def __init__(self, store):
        self.store = store

    def tick(self, match) -> PhaseTick:
        previous = match.phase
        if match.phase is Phase.RESULTS:
            return PhaseTick(previous, match.phase, match.time_left)

        # 0 is shown for one tick; a phase of duration D spans D+1 ticks
        if match.time_left <= 0:
            following = next_phase(match.phase)
            match.phase = following
            match.time_left = duration_of(following)
            logger.info(f"[phase] match={match.id} from={previous.value} to={following.value} time_left={match.time_left}")
        else:
            match.time_left -= 1
        return PhaseTick(previous, match.phase, match.time_left)

    def finalize(self, match) -> bool:
        """Persist the final result once. Returns True if this call saved it."""
        with match.lock:
            if match.phase is not Phase.RESULTS or match.result_saved:
                return False
            match.result_saved = True
            match.mark_finished()
            snapshot = match.result_snapshot()

        try:
            self.store.save_match_result(**snapshot)
        except Exception:
            logger.exception(f"[store-fail] match={match.id} saving final result")
        return True
