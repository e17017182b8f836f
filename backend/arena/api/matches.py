from flask import Blueprint, jsonify, request
from flask_login import login_required
from arena import db, get_arena
from arena.models import User, Topic, MatchResult, MatchMessage
from arena.services.matches.phases import PHASE_DURATIONS


matches = Blueprint('matches', __name__)


@matches.route('/leaderboard', methods=['GET'])
def leaderboard():
    try:
        limit = max(1, min(100, int(request.args.get('limit', 20))))
    except (TypeError, ValueError):
        limit = 20
    users = User.query.order_by(User.mmr.desc(), User.wins.desc()).limit(limit).all()
    return jsonify([u.to_dict() for u in users])


@matches.route('/topics', methods=['GET'])
def list_topics():
    topics = Topic.query.order_by(Topic.created_at.desc()).all()
    return jsonify([t.to_dict() for t in topics])


@matches.route('/topics', methods=['POST'])
@login_required
def create_topic():
    data = request.get_json(silent=True) or {}
    title = (data.get('title') or '').strip()
    description = (data.get('description') or '').strip()
    if not title:
        return jsonify({'error': 'Topic title is required'}), 400
    topic = Topic(title=title, description=description)
    db.session.add(topic)
    db.session.commit()
    return jsonify(topic.to_dict()), 201


@matches.route('/topics/random', methods=['GET'])
def random_topic():
    return jsonify(get_arena().topics.get_random_topic())


@matches.route('/matches', methods=['GET'])
def list_matches():
    live = get_arena().registry.live_matches()
    return jsonify([m.summary() for m in live])


@matches.route('/matches/<string:match_id>', methods=['GET'])
def get_match_state(match_id):
    state = get_arena().get_state(match_id)
    if state is None:
        return jsonify({'error': 'Match not found'}), 404
    # Include phase durations so clients can show countdowns
    state['durations'] = {phase.value: seconds for phase, seconds in PHASE_DURATIONS.items()}
    return jsonify(state)


@matches.route('/matches/<string:match_id>/result', methods=['GET'])
def get_match_result(match_id):
    result = db.session.get(MatchResult, match_id)
    if result is None:
        return jsonify({'error': 'No result recorded for this match'}), 404
    return jsonify(result.to_dict())


@matches.route('/matches/<string:match_id>/messages', methods=['GET'])
def get_match_messages(match_id):
    messages = MatchMessage.query.filter_by(match_id=match_id).order_by(MatchMessage.id).all()
    return jsonify([m.to_dict() for m in messages])
