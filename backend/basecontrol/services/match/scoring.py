import math
from typing import Dict

TEAMS = ('red', 'green', 'blue', 'yellow')
NEUTRAL = 'neutral'

# Points per second a holder drains from the other teams
DRAIN_RATE = 10.0

# Non-holders at or below this are treated as exhausted
_ALIVE_EPSILON = 0.001
_LOSS_EPSILON = 0.0001

# Minimum leader score for a base to count as led by someone
LEADING_THRESHOLD = 25.1


def initial_scores() -> Dict[str, float]:
    return {team: 100.0 / len(TEAMS) for team in TEAMS}


def settle(base: dict, now: int) -> Dict[str, float]:
    """Return the base's score split as of ``now`` (epoch ms).

    Folds the drain accumulated since ``last_interaction`` into the stored
    scores. Bases without a holder, or already owned by a team, keep their
    stored split. The holder gains exactly what the others lose, so the
    total is preserved even when several non-holders bottom out at 0.
    """
    scores = dict(base.get('scores') or {})
    holder = base.get('held_by')
    if not holder or holder not in scores or base.get('owner') != NEUTRAL:
        return scores

    elapsed = (now - (base.get('last_interaction') or 0)) / 1000.0
    if elapsed <= 0:
        return scores

    others = [team for team in TEAMS if team != holder and team in scores]
    capacity = sum(scores[team] for team in others)
    gain = min(elapsed * DRAIN_RATE, 100.0 - scores[holder], capacity)
    if gain <= 0:
        return scores

    # Water-filling: spread the loss evenly, carry any shortfall from teams
    # that hit zero over to the ones still standing.
    remaining = gain
    for _ in range(len(others)):
        losers = [team for team in others if scores[team] > _ALIVE_EPSILON]
        if not losers:
            break
        share = remaining / len(losers)
        consumed = 0.0
        for team in losers:
            if scores[team] >= share:
                scores[team] -= share
                consumed += share
            else:
                consumed += scores[team]
                scores[team] = 0.0
        remaining -= consumed
        if remaining < _LOSS_EPSILON:
            break

    scores[holder] += gain - remaining
    return scores


def holder_saturated(scores: Dict[str, float], holder: str) -> bool:
    """True once the holder has nothing left to drain from the other teams."""
    return all(scores.get(team, 0.0) <= _ALIVE_EPSILON for team in TEAMS if team != holder)


def normalize_scores(scores: Dict[str, float]) -> Dict[str, int]:
    """Round a split to whole percentages that add up to exactly 100.

    Largest-remainder method; ties go to the team listed first in TEAMS.
    """
    parts = []
    for team in TEAMS:
        value = float(scores.get(team, 0.0))
        floor = math.floor(value)
        parts.append((team, int(floor), value - floor))

    result = {team: floor for team, floor, _ in parts}
    deficit = 100 - sum(result.values())
    by_remainder = sorted(parts, key=lambda part: part[2], reverse=True)
    for team, _, _ in by_remainder[:max(0, deficit)]:
        result[team] += 1
    return result


def base_status(base: dict) -> dict:
    """Summarise who leads a base and how it should be labelled."""
    scores = base.get('scores') or {}
    leader = max(TEAMS, key=lambda team: scores.get(team, 0.0))
    leader_score = scores.get(leader, 0.0)
    owner = base.get('owner') or NEUTRAL

    if base.get('held_by'):
        state = 'contested'
        label = f"CONTESTED BY {base['held_by'].upper()}"
    elif leader_score >= 100 and owner != NEUTRAL:
        state = 'secured'
        label = f"{owner.upper()} SECURED"
    elif leader_score > LEADING_THRESHOLD:
        state = 'leading'
        label = f"{leader.upper()} TEAM"
    else:
        state = 'neutral'
        label = 'NEUTRAL ZONE'

    return {
        'leader': leader if leader_score > LEADING_THRESHOLD else None,
        'leader_score': leader_score,
        'state': state,
        'label': label,
    }
