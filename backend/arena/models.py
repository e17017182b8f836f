from arena import db, bcrypt
from flask_login import UserMixin
from datetime import datetime, timezone
import json


def _utcnow():
    return datetime.now(timezone.utc)


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    mmr = db.Column(db.Integer, default=1000, nullable=False)
    wins = db.Column(db.Integer, default=0, nullable=False)
    losses = db.Column(db.Integer, default=0, nullable=False)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'mmr': self.mmr,
            'wins': self.wins,
            'losses': self.losses,
        }


class Topic(db.Model):
    __tablename__ = 'topic'
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(128), nullable=False)
    description = db.Column(db.Text, nullable=False, default='')
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
        }


class MatchResult(db.Model):
    __tablename__ = 'match_result'
    id = db.Column(db.String(64), primary_key=True)  # match / room id
    final_momentum = db.Column(db.Integer, nullable=False)
    winner = db.Column(db.String(8), nullable=False)  # LEFT, RIGHT
    transcript_count = db.Column(db.Integer, default=0, nullable=False)
    transcript = db.Column(db.Text, nullable=True)  # JSON-encoded list of utterances
    mode = db.Column(db.String(16), nullable=False, default='casual')
    difficulty = db.Column(db.String(16), nullable=True)
    left_player_id = db.Column(db.String(64), nullable=True)
    right_player_id = db.Column(db.String(64), nullable=True)
    input_mode = db.Column(db.String(16), nullable=False, default='voice')
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'final_momentum': self.final_momentum,
            'winner': self.winner,
            'transcript_count': self.transcript_count,
            'transcript': json.loads(self.transcript) if self.transcript else [],
            'mode': self.mode,
            'difficulty': self.difficulty,
            'left_player_id': self.left_player_id,
            'right_player_id': self.right_player_id,
            'input_mode': self.input_mode,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class MatchMessage(db.Model):
    __tablename__ = 'match_message'
    id = db.Column(db.Integer, primary_key=True)
    match_id = db.Column(db.String(64), nullable=False, index=True)
    user_id = db.Column(db.String(64), nullable=True)
    text = db.Column(db.Text, nullable=False)
    phase = db.Column(db.String(32), nullable=False)
    delta = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'match_id': self.match_id,
            'user_id': self.user_id,
            'text': self.text,
            'phase': self.phase,
            'delta': self.delta,
        }
