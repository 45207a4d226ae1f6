from flask_socketio import join_room, leave_room, emit
from basecontrol import socketio
from flask import current_app, request
from basecontrol.api.match import parse_interaction
from basecontrol.services.match import get_session
from basecontrol.services.match.controller import START, ABORT
from basecontrol.services.match.scheduler import start_frame_ticker, stop_frame_ticker
from typing import Dict, Set, Tuple
import threading


MATCH_ROOM = 'match'

# Holds started from each socket, so a dropped station releases its bases
_sid_holds: Dict[str, Set[Tuple[str, str]]] = {}
# Sockets currently in the match room; the frame ticker stops when it empties
_room_members: Set[str] = set()
_sid_lock = threading.Lock()


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def broadcast_state(state: dict) -> None:
    """Store observer: push the authoritative match state to every client."""
    socketio.emit('match_state', state, to=MATCH_ROOM, namespace='/ws')


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def _leave_room(sid: str) -> None:
    with _sid_lock:
        was_member = sid in _room_members
        _room_members.discard(sid)
        empty = not _room_members
    if was_member and empty:
        current_app.logger.info("[ticker-idle] match room is empty")
        stop_frame_ticker()


def handle_disconnect(reason=None):
    sid = _get_sid()
    _leave_room(sid)
    with _sid_lock:
        holds = _sid_holds.pop(sid, set())
    if not holds:
        return
    session = get_session()
    for base_id, team in holds:
        # Abort is a no-op if another team has taken the base since
        current_app.logger.info(f"[disconnect-abort] base={base_id} team={team}")
        session.signal_interaction(base_id, ABORT, team)


def handle_join_match(data=None):
    join_room(MATCH_ROOM)
    with _sid_lock:
        _room_members.add(_get_sid())
    session = get_session()
    emit('joined', {'room': MATCH_ROOM})
    emit('match_state', session.raw_state)
    start_frame_ticker(current_app._get_current_object(), session)


def handle_leave_match(data=None):
    leave_room(MATCH_ROOM)
    _leave_room(_get_sid())
    emit('left', {'room': MATCH_ROOM})


def handle_interaction(data):
    data = data or {}
    if not isinstance(data, dict):
        emit('error', {'message': 'payload must be an object'})
        return
    base_id = data.get('base_id')
    if not base_id:
        emit('error', {'message': 'base_id is required'})
        return
    action, team, error = parse_interaction(data)
    if error:
        emit('error', {'message': error})
        return
    session = get_session()
    if not session.has_base(base_id):
        emit('error', {'message': 'Base not found'})
        return
    with _sid_lock:
        holds = _sid_holds.setdefault(_get_sid(), set())
        if action == START:
            holds.add((base_id, team))
        else:
            holds.discard((base_id, team))
    session.signal_interaction(base_id, action, team)


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    handlers = [
        ('connect', handle_connect),
        ('disconnect', handle_disconnect),
        ('join_match', handle_join_match),
        ('leave_match', handle_leave_match),
        ('interaction', handle_interaction),
        ('ping', handle_ping),
    ]
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        for event, handler in handlers:
            socketio.on_event(event, handler, namespace=namespace)
