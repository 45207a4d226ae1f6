from typing import Optional

from basecontrol import socketio
from .reconciliation import ReconciliationLoop
from .scoring import normalize_scores


_frame_loop: Optional[ReconciliationLoop] = None


def frame_payload(state: dict) -> dict:
    """Display state plus whole-number percentages per base."""
    payload = dict(state)
    payload['percentages'] = {
        base_id: normalize_scores(base.get('scores') or {})
        for base_id, base in (state.get('bases') or {}).items()
    }
    return payload


def start_frame_ticker(app, session) -> Optional[ReconciliationLoop]:
    """Run the reconciliation loop as a Socket.IO background task.

    - No-ops in TESTING mode unless ENABLE_TICKER_IN_TESTS is set
    - Broadcasts a ``match_frame`` while at least one base is held
    - Fires automatic captures when AUTO_CAPTURE is enabled
    - Only one ticker runs per process
    """
    global _frame_loop
    if app.config.get('TESTING') and not app.config.get('ENABLE_TICKER_IN_TESTS'):
        return None
    if _frame_loop is not None and _frame_loop.running:
        app.logger.info("[ticker-skip] already running")
        return _frame_loop

    auto_capture = bool(app.config.get('AUTO_CAPTURE', False))

    def _on_frame(state: dict):
        if not any(base.get('held_by') for base in state['bases'].values()):
            return
        if auto_capture:
            session.check_captures()
        socketio.emit('match_frame', frame_payload(state), to='match', namespace='/ws')

    interval = float(app.config.get('FRAME_INTERVAL_SEC', 0.1))
    _frame_loop = ReconciliationLoop(session.view, _on_frame, frame_interval=interval, sleep=socketio.sleep)
    app.logger.info(f"[ticker-start] interval={interval}s auto_capture={auto_capture}")

    def _worker(loop: ReconciliationLoop):
        with app.app_context():
            loop.run()
        app.logger.info(f"[ticker-stop] frames={loop.frames}")

    socketio.start_background_task(_worker, _frame_loop)
    return _frame_loop


def stop_frame_ticker() -> None:
    global _frame_loop
    if _frame_loop is not None:
        _frame_loop.stop()
        _frame_loop = None
