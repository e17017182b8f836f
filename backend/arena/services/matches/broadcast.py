"""Outbound event fan-out.

The core only talks to a ``Broadcaster``; the Socket.IO implementation maps
matches onto rooms on the ``/ws`` namespace.
"""

from typing import Any, Dict

WS_NAMESPACE = '/ws'

# Outbound event names
GAME_INIT = 'game_init'
GAME_UPDATE = 'game_update'
PHASE_TRANSITION = 'phase_transition'
VOICE_ACTIVITY = 'voice_activity'
QUEUE_JOINED = 'queue_joined'
QUEUE_LEFT = 'queue_left'
MATCH_FOUND = 'match_found'


def match_room(match_id: str) -> str:
    return f"match:{match_id}"


class Broadcaster:
    def emit_to_match(self, match_id: str, event: str, payload: Dict[str, Any]) -> None:
        raise NotImplementedError

    def emit_to_connection(self, sid: str, event: str, payload: Dict[str, Any]) -> None:
        raise NotImplementedError


class SocketIOBroadcaster(Broadcaster):
    def __init__(self, socketio, namespace: str = WS_NAMESPACE):
        self.socketio = socketio
        self.namespace = namespace

    def emit_to_match(self, match_id, event, payload):
        self.socketio.emit(event, payload, to=match_room(match_id), namespace=self.namespace)

    def emit_to_connection(self, sid, event, payload):
        # Every Socket.IO connection sits in a room named after its sid
        self.socketio.emit(event, payload, to=sid, namespace=self.namespace)
