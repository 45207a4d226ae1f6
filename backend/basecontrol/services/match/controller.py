"""Hold / abort / capture transitions for a single base.

Every transition settles the drain accumulated so far before touching the
hold or owner fields, so the stored scores are always correct as of the
stored ``last_interaction``.
"""

from typing import Dict

from .scoring import TEAMS, NEUTRAL, initial_scores, settle

START = 'START'
ABORT = 'ABORT'
CAPTURE = 'CAPTURE'
ACTIONS = (START, ABORT, CAPTURE)


def new_base(base_id: str) -> dict:
    return {
        'id': base_id,
        'owner': NEUTRAL,
        'held_by': None,
        'last_interaction': 0,
        'scores': initial_scores(),
    }


def interaction_updates(base: dict, action: str, team: str, now: int) -> Dict:
    """Field updates produced by ``action`` from ``team`` at ``now``.

    Returns an empty dict when the action is a no-op (an abort from a team
    that is not holding the base).
    """
    if action not in ACTIONS:
        raise ValueError(f"unknown action: {action!r}")
    if team not in TEAMS:
        raise ValueError(f"unknown team: {team!r}")

    if action == ABORT and base.get('held_by') != team:
        return {}

    updates = {
        'scores': settle(base, now),
        'last_interaction': max(now, base.get('last_interaction') or 0),
    }
    if action == START:
        updates['held_by'] = team
    elif action == ABORT:
        updates['held_by'] = None
    else:
        updates['owner'] = team
        updates['held_by'] = None
    return updates


def apply_interaction(base: dict, action: str, team: str, now: int) -> dict:
    updated = dict(base)
    updated.update(interaction_updates(base, action, team, now))
    return updated


def start(base: dict, team: str, now: int) -> dict:
    return apply_interaction(base, START, team, now)


def abort(base: dict, team: str, now: int) -> dict:
    return apply_interaction(base, ABORT, team, now)


def capture(base: dict, team: str, now: int) -> dict:
    return apply_interaction(base, CAPTURE, team, now)
