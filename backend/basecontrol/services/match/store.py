"""Match state stores.

Both backends share one contract (``MatchStore``): push-based
``subscribe``, merging ``write`` and overwriting ``replace``. Observers
always receive the full match state after a change.
"""

import copy
import logging
import threading
from typing import Callable, Dict, List, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError

from basecontrol import db
from basecontrol.models import Match

Observer = Callable[[Dict], None]


class MatchStore(Protocol):
    def snapshot(self) -> Optional[Dict]: ...

    def subscribe(self, on_change: Observer) -> Callable[[], None]: ...

    def write(self, fields: Dict) -> None: ...

    def replace(self, state: Dict) -> None: ...

    def close(self) -> None: ...


def merge_fields(state: Optional[Dict], fields: Dict) -> Dict:
    """Merge a partial update into a full state.

    ``bases`` merges per base; a top-level ``None`` drops the key.
    """
    merged = copy.deepcopy(state) if state else {}
    for key, value in fields.items():
        if key == 'bases':
            bases = merged.setdefault('bases', {})
            for base_id, base_fields in (value or {}).items():
                current = dict(bases.get(base_id) or {'id': base_id})
                current.update(copy.deepcopy(base_fields))
                bases[base_id] = current
        elif value is None:
            merged.pop(key, None)
        else:
            merged[key] = value
    return merged


class _Observers:
    def __init__(self, logger: logging.Logger):
        self._logger = logger
        self._lock = threading.Lock()
        self._observers: List[Observer] = []

    def add(self, on_change: Observer) -> Callable[[], None]:
        with self._lock:
            self._observers.append(on_change)

        def unsubscribe():
            with self._lock:
                if on_change in self._observers:
                    self._observers.remove(on_change)
        return unsubscribe

    def notify(self, state: Dict) -> None:
        with self._lock:
            observers = list(self._observers)
        for on_change in observers:
            try:
                on_change(copy.deepcopy(state))
            except Exception:
                self._logger.exception("[observer-failed] %r", on_change)

    def clear(self) -> None:
        with self._lock:
            self._observers.clear()


class MemoryMatchStore:
    """Single-process store; observers are notified synchronously."""

    def __init__(self, initial: Optional[Dict] = None, logger: Optional[logging.Logger] = None):
        self._lock = threading.RLock()
        self._state = copy.deepcopy(initial) if initial else None
        self._observers = _Observers(logger or logging.getLogger('basecontrol'))

    def snapshot(self) -> Optional[Dict]:
        with self._lock:
            return copy.deepcopy(self._state)

    def subscribe(self, on_change: Observer) -> Callable[[], None]:
        return self._observers.add(on_change)

    def write(self, fields: Dict) -> None:
        with self._lock:
            self._state = merge_fields(self._state, fields)
            state = copy.deepcopy(self._state)
        self._observers.notify(state)

    def replace(self, state: Dict) -> None:
        with self._lock:
            self._state = copy.deepcopy(state)
            state = copy.deepcopy(self._state)
        self._observers.notify(state)

    def close(self) -> None:
        self._observers.clear()


class SqlMatchStore:
    """Durable store backed by the ``match`` / ``base`` tables.

    Commits first, then notifies observers with the committed state. Failed
    commits are rolled back and logged; callers are not told.
    """

    def __init__(self, app, match_id: int = 1):
        self._app = app
        self._match_id = match_id
        self._observers = _Observers(app.logger)

    def _load_or_create(self) -> Match:
        match = Match.query.filter_by(id=self._match_id).first()
        if match is None:
            match = Match(id=self._match_id)
            db.session.add(match)
        return match

    def snapshot(self) -> Optional[Dict]:
        with self._app.app_context():
            match = Match.query.filter_by(id=self._match_id).first()
            return match.to_dict() if match else None

    def subscribe(self, on_change: Observer) -> Callable[[], None]:
        return self._observers.add(on_change)

    def write(self, fields: Dict) -> None:
        with self._app.app_context():
            try:
                match = self._load_or_create()
                match.apply_fields(fields)
                db.session.commit()
                state = match.to_dict()
            except SQLAlchemyError as exc:
                db.session.rollback()
                self._app.logger.warning(f"[store-write-failed] match={self._match_id} fields={sorted(fields)} error={exc}")
                return
        self._observers.notify(state)

    def replace(self, state: Dict) -> None:
        with self._app.app_context():
            try:
                match = self._load_or_create()
                # Drop old bases before inserting new ones with the same ids
                match.bases = []
                match.remaining_time = None
                db.session.flush()
                match.apply_fields(state)
                db.session.commit()
                committed = match.to_dict()
            except SQLAlchemyError as exc:
                db.session.rollback()
                self._app.logger.warning(f"[store-replace-failed] match={self._match_id} error={exc}")
                return
        self._observers.notify(committed)

    def close(self) -> None:
        self._observers.clear()
