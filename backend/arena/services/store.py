"""Database-backed collaborators of the match core.

Writes are best-effort: failures are rolled back and logged, never raised
into the match flow. Calls may come from background tasks, so each one
makes sure an application context is active.
"""

import json
import logging
import random
from contextlib import contextmanager
from typing import Dict, List, Optional

from flask import has_app_context
from sqlalchemy import func

from arena import db
from arena.models import MatchMessage, MatchResult, Topic, User

logger = logging.getLogger(__name__)

FALLBACK_TOPICS = [
    {'title': 'AI vs HUMANITY', 'description': 'Will artificial intelligence eventually replace all human creativity?'},
    {'title': 'COLONIZING MARS', 'description': 'Is spending billions on Mars better than fixing Earth?'},
    {'title': 'NICKNAME: CRYPTO', 'description': 'Is decentralization a true revolution or a speculative bubble?'},
]


def winner_for(final_momentum: int) -> str:
    return 'RIGHT' if final_momentum > 50 else 'LEFT'


class _AppBound:
    def __init__(self, app):
        self.app = app

    @contextmanager
    def _app_context(self):
        if has_app_context():
            yield
        else:
            with self.app.app_context():
                yield


class ResultStore(_AppBound):

    def save_match_result(self, match_id: str, final_momentum: int, transcripts: List[str], mode: str,
                          difficulty: Optional[str], left_player_id: Optional[str],
                          right_player_id: Optional[str], input_mode: str) -> bool:
        with self._app_context():
            try:
                if db.session.get(MatchResult, match_id) is not None:
                    logger.warning(f"[store-skip] match={match_id} result already saved")
                    return False
                winner = winner_for(final_momentum)
                db.session.add(MatchResult(
                    id=match_id,
                    final_momentum=final_momentum,
                    winner=winner,
                    transcript_count=len(transcripts),
                    transcript=json.dumps(transcripts),
                    mode=mode,
                    difficulty=difficulty,
                    left_player_id=left_player_id,
                    right_player_id=right_player_id,
                    input_mode=input_mode,
                ))
                self._record_outcome(left_player_id, winner == 'LEFT')
                self._record_outcome(right_player_id, winner == 'RIGHT')
                db.session.commit()
            except Exception:
                db.session.rollback()
                logger.exception(f"[store-fail] match={match_id} save_match_result")
                return False
        logger.info(f"[result] match={match_id} momentum={final_momentum} winner={winner}")
        return True

    def save_match_message(self, match_id: str, user_id: Optional[str], text: str, phase: str, delta: int) -> bool:
        with self._app_context():
            try:
                db.session.add(MatchMessage(match_id=match_id, user_id=user_id, text=text, phase=phase, delta=delta))
                db.session.commit()
            except Exception:
                db.session.rollback()
                logger.exception(f"[store-fail] match={match_id} save_match_message")
                return False
        return True

    def rating_for(self, user_id) -> Optional[int]:
        with self._app_context():
            user = self._stored_user(user_id)
            return user.mmr if user else None

    def _record_outcome(self, player_id: Optional[str], won: bool) -> None:
        user = self._stored_user(player_id)
        if user is None:
            return
        if won:
            user.wins = (user.wins or 0) + 1
        else:
            user.losses = (user.losses or 0) + 1
        db.session.add(user)

    @staticmethod
    def _stored_user(player_id) -> Optional[User]:
        # Guests and the bot play under non-numeric ids
        if player_id is None or not str(player_id).isdigit():
            return None
        return db.session.get(User, int(player_id))


class TopicProvider(_AppBound):

    def get_random_topic(self) -> Dict[str, str]:
        with self._app_context():
            try:
                topic = Topic.query.order_by(func.random()).first()
            except Exception:
                db.session.rollback()
                logger.exception("[store-fail] topic lookup, using fallback")
                topic = None
            if topic is not None:
                return {'title': topic.title, 'description': topic.description}
        return dict(random.choice(FALLBACK_TOPICS))
