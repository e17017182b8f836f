import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .phases import Phase, LEFT, RIGHT, duration_of

MODES = ('casual', 'ai', 'ranked')
DIFFICULTIES = ('easy', 'medium', 'hard')
INPUT_MODES = ('voice', 'chat')

AI_BOT_ID = 'ai-bot'
AI_BOT_NAME = 'AI Opponent'

START_MOMENTUM = 50
MIN_MOMENTUM = 0
MAX_MOMENTUM = 100


def clamp_momentum(value: int) -> int:
    return max(MIN_MOMENTUM, min(MAX_MOMENTUM, value))


def normalize_mode(mode: Optional[str]) -> str:
    return mode if mode in MODES else 'casual'


def normalize_difficulty(mode: str, difficulty: Optional[str]) -> Optional[str]:
    if mode != 'ai':
        return None
    return difficulty if difficulty in DIFFICULTIES else 'medium'


def normalize_input_mode(input_mode: Optional[str]) -> str:
    return input_mode if input_mode in INPUT_MODES else 'voice'


@dataclass
class PlayerSeat:
    id: str
    name: str

    def to_dict(self) -> Dict[str, str]:
        return {'id': self.id, 'name': self.name}


@dataclass
class Match:
    """In-memory state of one debate session.

    All mutation happens under ``lock``; the registry owns the instance.
    """

    id: str
    topic: Dict[str, str]
    mode: str = 'casual'
    difficulty: Optional[str] = None
    input_mode: str = 'voice'
    phase: Phase = Phase.LOBBY
    time_left: int = duration_of(Phase.LOBBY)
    momentum: int = START_MOMENTUM
    transcripts: List[str] = field(default_factory=list)
    left_player: Optional[PlayerSeat] = None
    right_player: Optional[PlayerSeat] = None
    result_saved: bool = False
    finished_at: Optional[float] = None
    lock: Any = field(default_factory=threading.RLock, repr=False, compare=False)

    @classmethod
    def create(cls, match_id: str, topic: Dict[str, str], mode: Optional[str] = None,
               difficulty: Optional[str] = None, input_mode: Optional[str] = None) -> 'Match':
        mode = normalize_mode(mode)
        match = cls(
            id=match_id,
            topic={'title': topic.get('title', ''), 'description': topic.get('description', '')},
            mode=mode,
            difficulty=normalize_difficulty(mode, difficulty),
            input_mode=normalize_input_mode(input_mode),
        )
        if mode == 'ai':
            match.right_player = PlayerSeat(AI_BOT_ID, AI_BOT_NAME)
        return match

    @property
    def is_finished(self) -> bool:
        return self.phase is Phase.RESULTS

    def mark_finished(self, now: Optional[float] = None) -> None:
        if self.finished_at is None:
            self.finished_at = time.monotonic() if now is None else now

    def seat(self, player_id: str, name: Optional[str] = None) -> Optional[str]:
        """Seat a participant and return its side, or None for a spectator."""
        for side, current in ((LEFT, self.left_player), (RIGHT, self.right_player)):
            if current is not None and current.id == player_id:
                return side
        if self.left_player is None:
            self.left_player = PlayerSeat(player_id, name or player_id)
            return LEFT
        if self.right_player is None:
            self.right_player = PlayerSeat(player_id, name or player_id)
            return RIGHT
        return None

    def recent_transcripts(self, count: int = 5) -> List[str]:
        return list(self.transcripts[-count:])

    def result_snapshot(self) -> Dict[str, Any]:
        return {
            'match_id': self.id,
            'final_momentum': self.momentum,
            'transcripts': list(self.transcripts),
            'mode': self.mode,
            'difficulty': self.difficulty,
            'left_player_id': self.left_player.id if self.left_player else None,
            'right_player_id': self.right_player.id if self.right_player else None,
            'input_mode': self.input_mode,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'momentum': self.momentum,
            'phase': self.phase.value,
            'timeLeft': self.time_left,
            'mode': self.mode,
            'difficulty': self.difficulty,
            'inputMode': self.input_mode,
            'transcripts': list(self.transcripts),
            'topic': dict(self.topic),
            'leftPlayer': self.left_player.to_dict() if self.left_player else None,
            'rightPlayer': self.right_player.to_dict() if self.right_player else None,
        }

    def summary(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'phase': self.phase.value,
            'timeLeft': self.time_left,
            'momentum': self.momentum,
            'mode': self.mode,
            'topic': dict(self.topic),
        }
