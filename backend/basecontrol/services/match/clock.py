import time
from typing import Dict, Iterable

from .controller import new_base

IDLE = 'idle'
PLAYING = 'playing'
PAUSED = 'paused'
ENDED = 'ended'
STATUSES = (IDLE, PLAYING, PAUSED, ENDED)

DEFAULT_MATCH_MINUTES = 15
MS_PER_MINUTE = 60 * 1000


def now_ms() -> int:
    return int(time.time() * 1000)


def default_base_ids(count: int = 4) -> list:
    return [f"base_{i}" for i in range(1, count + 1)]


def reset_state(now: int, duration_minutes: float = DEFAULT_MATCH_MINUTES,
                base_ids: Iterable[str] = None) -> Dict:
    """Fresh idle match. ``end_time`` is a placeholder until the next start."""
    ids = list(base_ids) if base_ids is not None else default_base_ids()
    return {
        'status': IDLE,
        'end_time': now + int(duration_minutes * MS_PER_MINUTE),
        'bases': {base_id: new_base(base_id) for base_id in ids},
    }


def start_updates(state: Dict, now: int, duration_minutes: float = DEFAULT_MATCH_MINUTES) -> Dict:
    """Resume a paused match, or start a fresh one from idle/ended."""
    if state.get('status') == PAUSED and state.get('remaining_time'):
        return {
            'status': PLAYING,
            'end_time': now + int(state['remaining_time']),
            'remaining_time': None,
        }
    return {
        'status': PLAYING,
        'end_time': now + int(duration_minutes * MS_PER_MINUTE),
        'remaining_time': None,
    }


def pause_updates(state: Dict, now: int) -> Dict:
    if state.get('status') != PLAYING:
        return {}
    return {
        'status': PAUSED,
        'remaining_time': max(0, int(state.get('end_time') or 0) - now),
    }


def stop_updates(state: Dict) -> Dict:
    # remaining_time only lives alongside the paused status
    return {'status': ENDED, 'remaining_time': None}


def remaining_ms(state: Dict, now: int, default_minutes: float = DEFAULT_MATCH_MINUTES) -> int:
    """Time left on the match clock as shown to players.

    The clock never ends the match on its own; this just bottoms out at 0.
    """
    status = state.get('status')
    if status == PLAYING:
        return max(0, int(state.get('end_time') or 0) - now)
    if status == PAUSED and state.get('remaining_time') is not None:
        return int(state['remaining_time'])
    return int(default_minutes * MS_PER_MINUTE)


def format_clock(ms: int) -> str:
    ms = max(0, int(ms))
    minutes = ms // MS_PER_MINUTE
    seconds = (ms % MS_PER_MINUTE) // 1000
    return f"{minutes:02d}:{seconds:02d}"


def timer_progress(ms: int, reference_minutes: float = DEFAULT_MATCH_MINUTES) -> float:
    reference = reference_minutes * MS_PER_MINUTE
    if reference <= 0:
        return 0.0
    return max(0.0, min(100.0, ms / reference * 100.0))
