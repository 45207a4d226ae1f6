"""Client-side view of the match: snapshots in, actions out.

A ``MatchSession`` keeps the last authoritative snapshot pushed by its
store plus a pending overlay of locally predicted changes, and exposes the
action and admin calls used by the transports. Every call is
fire-and-forget: store failures are logged and never reach the caller.
"""

import copy
import logging
import threading
from typing import Callable, Dict, Iterable, List, Optional

from . import clock as game_clock
from .clock import STATUSES, now_ms, reset_state, default_base_ids
from .controller import CAPTURE, interaction_updates
from .reconciliation import PendingOverlay, display_state
from .scoring import NEUTRAL, holder_saturated, settle
from .store import MatchStore


def is_valid_snapshot(payload) -> bool:
    if not isinstance(payload, dict):
        return False
    if payload.get('status') not in STATUSES:
        return False
    bases = payload.get('bases')
    if not isinstance(bases, dict):
        return False
    for base in bases.values():
        if not isinstance(base, dict) or not isinstance(base.get('scores'), dict):
            return False
    return True


class MatchSession:
    def __init__(self, store: MatchStore, clock: Callable[[], int] = now_ms, base_ids: Optional[Iterable[str]] = None,
                 default_minutes: float = game_clock.DEFAULT_MATCH_MINUTES,
                 logger: Optional[logging.Logger] = None):
        self.store = store
        self.base_ids: List[str] = list(base_ids) if base_ids else default_base_ids()
        self.default_minutes = default_minutes
        self.logger = logger or logging.getLogger('basecontrol')
        self._clock = clock
        self._lock = threading.RLock()
        # Local stand-in until the store pushes its first snapshot
        self._raw: Dict = reset_state(clock(), default_minutes, self.base_ids)
        self._overlay = PendingOverlay()
        self._unsubscribe = None

    # ---- lifecycle ----

    @property
    def is_open(self) -> bool:
        return self._unsubscribe is not None

    def open(self) -> 'MatchSession':
        """Subscribe to the store, seeding it with a fresh match if empty."""
        with self._lock:
            if self._unsubscribe is not None:
                return self
            self._unsubscribe = self.store.subscribe(self._on_snapshot)
        try:
            snapshot = self.store.snapshot()
        except Exception as exc:
            # Keep the local stand-in; never seed over state we failed to read
            self.logger.warning(f"[snapshot-failed] error={exc}")
            return self
        if snapshot is None:
            self.logger.info(f"[store-seed] bases={len(self.base_ids)}")
            self._replace(reset_state(self._clock(), self.default_minutes, self.base_ids))
        else:
            self._on_snapshot(snapshot)
        return self

    def close(self) -> None:
        with self._lock:
            unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()

    def _on_snapshot(self, payload) -> None:
        if not is_valid_snapshot(payload):
            self.logger.debug(f"[snapshot-ignored] payload={type(payload).__name__}")
            return
        with self._lock:
            self._raw = payload
            self._overlay.clear()

    # ---- views ----

    @property
    def raw_state(self) -> Dict:
        """Last authoritative snapshot, without local predictions."""
        with self._lock:
            return copy.deepcopy(self._raw)

    @property
    def has_pending(self) -> bool:
        with self._lock:
            return bool(self._overlay)

    def view(self) -> Dict:
        """Raw snapshot with pending local predictions merged on top."""
        with self._lock:
            return copy.deepcopy(self._overlay.apply(self._raw))

    def display_state(self, now: Optional[int] = None) -> Dict:
        return display_state(self.view(), self._clock() if now is None else now)

    def has_base(self, base_id: str) -> bool:
        with self._lock:
            return base_id in (self._raw.get('bases') or {})

    # ---- actions ----

    def signal_interaction(self, base_id: str, action: str, team: str) -> None:
        self._interact(base_id, action, team, self._clock())

    def _interact(self, base_id: str, action: str, team: str, now: int) -> bool:
        with self._lock:
            base = (self._overlay.apply(self._raw).get('bases') or {}).get(base_id)
            if base is None:
                self.logger.debug(f"[interaction-skip] base={base_id} unknown")
                return False
            updates = interaction_updates(base, action, team, now)
            if not updates:
                self.logger.debug(f"[interaction-skip] base={base_id} action={action} team={team} held_by={base.get('held_by')}")
                return False
            self._overlay.set(base_id, updates)
        self.logger.info(f"[interaction] base={base_id} action={action} team={team} at={now}")
        self._write({'bases': {base_id: updates}})
        return True

    def check_captures(self, now: Optional[int] = None) -> List[str]:
        """Capture every held neutral base whose holder has drained the others."""
        now = self._clock() if now is None else now
        captured = []
        for base_id, base in (self.view().get('bases') or {}).items():
            holder = base.get('held_by')
            if not holder or base.get('owner') != NEUTRAL:
                continue
            if holder_saturated(settle(base, now), holder):
                if self._interact(base_id, CAPTURE, holder, now):
                    self.logger.info(f"[auto-capture] base={base_id} team={holder}")
                    captured.append(base_id)
        return captured

    # ---- admin ----

    def reset_game(self, duration_minutes: Optional[float] = None) -> None:
        minutes = duration_minutes if duration_minutes is not None else self.default_minutes
        self.logger.info(f"[clock] reset duration={minutes}m")
        self._replace(reset_state(self._clock(), minutes, self.base_ids))

    def start_game(self, duration_minutes: Optional[float] = None) -> None:
        minutes = duration_minutes if duration_minutes is not None else self.default_minutes
        updates = game_clock.start_updates(self.view(), self._clock(), minutes)
        self.logger.info(f"[clock] start end_time={updates['end_time']}")
        self._write(updates)

    def pause_game(self) -> None:
        updates = game_clock.pause_updates(self.view(), self._clock())
        if not updates:
            return
        self.logger.info(f"[clock] pause remaining={updates['remaining_time']}ms")
        self._write(updates)

    def stop_game(self) -> None:
        self.logger.info("[clock] stop")
        self._write(game_clock.stop_updates(self.view()))

    # ---- store access ----

    def _write(self, fields: Dict) -> None:
        try:
            self.store.write(fields)
        except Exception as exc:
            self.logger.warning(f"[store-write-failed] fields={sorted(fields)} error={exc}")

    def _replace(self, state: Dict) -> None:
        try:
            self.store.replace(state)
        except Exception as exc:
            self.logger.warning(f"[store-replace-failed] error={exc}")
