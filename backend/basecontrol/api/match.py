from flask import Blueprint, jsonify, request
from basecontrol.services.match import get_session
from basecontrol.services.match.clock import now_ms, remaining_ms, format_clock, timer_progress
from basecontrol.services.match.controller import ACTIONS
from basecontrol.services.match.scoring import TEAMS, normalize_scores, base_status


match = Blueprint('match', __name__)


def parse_interaction(data):
    """Validate an interaction payload. Returns (action, team, error)."""
    if not isinstance(data, dict):
        return None, None, 'payload must be a JSON object'
    action = str(data.get('action') or '').upper()
    team = str(data.get('team') or '').lower()
    if action not in ACTIONS:
        return None, None, f"action must be one of {', '.join(ACTIONS)}"
    if team not in TEAMS:
        return None, None, f"team must be one of {', '.join(TEAMS)}"
    return action, team, None


def parse_duration(data):
    """Returns (minutes or None, error)."""
    if not isinstance(data, dict):
        return None, 'payload must be a JSON object'
    value = data.get('duration_minutes')
    if value is None:
        return None, None
    try:
        minutes = float(value)
    except (TypeError, ValueError):
        return None, 'duration_minutes must be a number'
    if minutes <= 0:
        return None, 'duration_minutes must be positive'
    return minutes, None


def state_payload(session, now=None):
    """Interpolated match state with clock readout and per-base summaries."""
    now = now_ms() if now is None else now
    payload = session.display_state(now)
    left = remaining_ms(payload, now, session.default_minutes)
    payload['remaining_ms'] = left
    payload['clock'] = format_clock(left)
    payload['progress'] = timer_progress(left, session.default_minutes)
    for base in payload['bases'].values():
        base['percentages'] = normalize_scores(base['scores'])
        base['status'] = base_status(base)
    return payload


def _accepted():
    return jsonify({'message': 'accepted'}), 202


@match.route('/state', methods=['GET'])
def get_match_state():
    return jsonify(state_payload(get_session()))


@match.route('/bases/<string:base_id>/interaction', methods=['POST'])
def signal_interaction(base_id):
    data = request.get_json(silent=True) or {}
    action, team, error = parse_interaction(data)
    if error:
        return jsonify({'error': error}), 400
    session = get_session()
    if not session.has_base(base_id):
        return jsonify({'error': 'Base not found'}), 404
    session.signal_interaction(base_id, action, team)
    return _accepted()


@match.route('/reset', methods=['POST'])
def reset_match():
    minutes, error = parse_duration(request.get_json(silent=True) or {})
    if error:
        return jsonify({'error': error}), 400
    get_session().reset_game(minutes)
    return _accepted()


@match.route('/start', methods=['POST'])
def start_match():
    minutes, error = parse_duration(request.get_json(silent=True) or {})
    if error:
        return jsonify({'error': error}), 400
    get_session().start_game(minutes)
    return _accepted()


@match.route('/pause', methods=['POST'])
def pause_match():
    get_session().pause_game()
    return _accepted()


@match.route('/stop', methods=['POST'])
def stop_match():
    get_session().stop_game()
    return _accepted()
