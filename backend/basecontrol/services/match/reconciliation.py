"""Display-side interpolation between authoritative snapshots.

Scores of held bases are recomputed every frame from the last raw
snapshot, never from what was displayed before, so no drift accumulates.
Nothing here writes back to the store.
"""

import copy
import threading
import time
from typing import Callable, Dict, Optional

from .clock import now_ms
from .scoring import settle


def display_state(raw: Optional[Dict], now: int) -> Optional[Dict]:
    if raw is None:
        return None
    state = dict(raw)
    bases = {}
    for base_id, base in (raw.get('bases') or {}).items():
        if base.get('held_by'):
            base = dict(base)
            base['scores'] = settle(base, now)
        bases[base_id] = base
    state['bases'] = bases
    return state


class PendingOverlay:
    """Locally predicted base fields for actions not yet confirmed.

    Entries are set when an action is issued and all of them are dropped
    when the next authoritative snapshot arrives.
    """

    def __init__(self):
        self._bases: Dict[str, Dict] = {}

    def __bool__(self):
        return bool(self._bases)

    def set(self, base_id: str, fields: Dict) -> None:
        current = self._bases.setdefault(base_id, {})
        current.update(copy.deepcopy(fields))

    def clear(self) -> None:
        self._bases.clear()

    def apply(self, raw: Optional[Dict]) -> Optional[Dict]:
        if raw is None or not self._bases:
            return raw
        state = dict(raw)
        bases = dict(raw.get('bases') or {})
        for base_id, fields in self._bases.items():
            if base_id not in bases:
                continue
            merged = dict(bases[base_id])
            merged.update(copy.deepcopy(fields))
            bases[base_id] = merged
        state['bases'] = bases
        return state


class ReconciliationLoop:
    """Per-frame recompute of the display state.

    ``source`` returns the current raw view (snapshot plus pending overlay),
    ``on_frame`` receives the display state. ``sleep`` is the only point
    where the loop yields; ``stop`` takes effect before the next frame.
    """

    def __init__(self, source: Callable[[], Optional[Dict]], on_frame: Callable[[Dict], None],
                 frame_interval: float = 1.0 / 60.0, sleep: Callable[[float], None] = time.sleep,
                 clock: Callable[[], int] = now_ms):
        self.source = source
        self.on_frame = on_frame
        self.frame_interval = frame_interval
        self._sleep = sleep
        self._clock = clock
        self._stopped = threading.Event()
        self.frames = 0

    @property
    def running(self) -> bool:
        return not self._stopped.is_set()

    def tick(self) -> Optional[Dict]:
        state = display_state(self.source(), self._clock())
        if state is not None:
            self.on_frame(state)
        self.frames += 1
        return state

    def run(self) -> None:
        while not self._stopped.is_set():
            self.tick()
            self._sleep(self.frame_interval)

    def stop(self) -> None:
        self._stopped.set()
