"""Match domain services: score settlement, base actions, match clock,
state stores and display reconciliation.

Everything under here is transport-agnostic; HTTP routes and socket
handlers reach the running match through ``get_session``.
"""

from flask import current_app


def get_session(app=None):
    """Return the app's match session, opening it on first use."""
    app = app or current_app._get_current_object()
    session = app.extensions['match_session']
    if not session.is_open:
        session.open()
    return session
