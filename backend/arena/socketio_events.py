from flask_socketio import join_room, emit
from flask import current_app, request
from arena import get_arena, socketio
from arena.services.matches.broadcast import WS_NAMESPACE, match_room
from typing import Any, Dict, Optional


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _match_id(data: Any) -> Optional[str]:
    # Older clients send the bare match id; newer ones send a dict
    if isinstance(data, str):
        return data or None
    if isinstance(data, dict):
        value = data.get('match_id') or data.get('matchId')
        return str(value) if value else None
    return None


def _payload(data: Any) -> Dict[str, Any]:
    return data if isinstance(data, dict) else {}


def _ensure_clock() -> None:
    app = current_app._get_current_object()
    if app.config.get('TESTING') and not app.config.get('ENABLE_CLOCK_IN_TESTS'):
        return
    get_arena().clock.start(socketio.start_background_task)


def handle_connect():
    _ensure_clock()
    emit('connected', {'message': f'Connected to {WS_NAMESPACE}'})


def handle_disconnect(*_args):
    get_arena().disconnect(_get_sid())


def handle_join_match(data):
    match_id = _match_id(data)
    if not match_id:
        emit('error', {'message': 'match_id is required'})
        return
    payload = _payload(data)
    join_room(match_room(match_id))
    get_arena().join(
        _get_sid(),
        match_id,
        mode=payload.get('mode'),
        difficulty=payload.get('difficulty'),
        input_mode=payload.get('input_mode') or payload.get('inputMode'),
        user_id=payload.get('user_id') or payload.get('userId'),
        username=payload.get('username'),
    )


def handle_utterance(data):
    match_id = _match_id(data)
    payload = _payload(data)
    if not match_id or not isinstance(payload.get('text'), str):
        return
    get_arena().submit_utterance(_get_sid(), match_id, payload['text'], side=payload.get('side'))


def handle_crowd_vote(data):
    match_id = _match_id(data)
    if not match_id:
        return
    get_arena().crowd_vote(match_id, _payload(data).get('side'))


def handle_audio_chunk(data):
    match_id = _match_id(data)
    if not match_id:
        return
    payload = _payload(data)
    try:
        volume = float(payload.get('volume') or 0)
    except (TypeError, ValueError):
        volume = 0.0
    get_arena().audio_chunk(_get_sid(), match_id, payload.get('chunk'), volume)


def handle_join_ranked_queue(data):
    payload = _payload(data)
    user_id = payload.get('user_id') or payload.get('userId')
    if not user_id:
        emit('error', {'message': 'user_id is required'})
        return
    get_arena().queue_join(
        _get_sid(),
        user_id,
        username=payload.get('username'),
        input_mode=payload.get('input_mode') or payload.get('inputMode'),
    )


def handle_leave_ranked_queue(*_args):
    get_arena().queue_leave(_get_sid())


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on the '/ws' namespace."""
    socketio.on_event('connect', handle_connect, namespace=WS_NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=WS_NAMESPACE)
    socketio.on_event('join_match', handle_join_match, namespace=WS_NAMESPACE)
    socketio.on_event('transcript_data', handle_utterance, namespace=WS_NAMESPACE)
    socketio.on_event('chat_message', handle_utterance, namespace=WS_NAMESPACE)
    socketio.on_event('crowd_vote', handle_crowd_vote, namespace=WS_NAMESPACE)
    socketio.on_event('audio_chunk', handle_audio_chunk, namespace=WS_NAMESPACE)
    socketio.on_event('join_ranked_queue', handle_join_ranked_queue, namespace=WS_NAMESPACE)
    socketio.on_event('leave_ranked_queue', handle_leave_ranked_queue, namespace=WS_NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=WS_NAMESPACE)
