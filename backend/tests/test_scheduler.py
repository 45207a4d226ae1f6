import pytest

from basecontrol import socketio, socketio_events
from basecontrol.services.match import get_session
from basecontrol.services.match.clock import reset_state
from basecontrol.services.match.controller import START
from basecontrol.services.match import scheduler
from basecontrol.services.match.scheduler import frame_payload, start_frame_ticker, stop_frame_ticker


@pytest.fixture()
def ticker_app(flask_app, monkeypatch):
    flask_app.config['ENABLE_TICKER_IN_TESTS'] = True
    flask_app.config['AUTO_CAPTURE'] = True
    emitted, tasks = [], []
    monkeypatch.setattr(socketio, 'emit', lambda event, data, **kw: emitted.append((event, data, kw)))
    monkeypatch.setattr(socketio, 'start_background_task', lambda fn, *args: tasks.append((fn, args)))
    yield flask_app, emitted, tasks
    stop_frame_ticker()


def test_frame_payload_adds_percentages():
    state = reset_state(0, 15, ['base_1'])
    payload = frame_payload(state)
    assert payload['percentages'] == {'base_1': {'red': 25, 'green': 25, 'blue': 25, 'yellow': 25}}
    assert 'percentages' not in state


def test_ticker_is_off_in_tests(flask_app):
    assert start_frame_ticker(flask_app, get_session(flask_app)) is None


def test_ticker_broadcasts_only_while_a_base_is_held(ticker_app):
    app, emitted, tasks = ticker_app
    session = get_session(app)
    loop = start_frame_ticker(app, session)
    assert loop is not None and len(tasks) == 1
    assert start_frame_ticker(app, session) is loop

    loop.tick()
    assert not [e for e in emitted if e[0] == 'match_frame']

    session.signal_interaction('base_1', START, 'red')
    loop.tick()
    frames = [e for e in emitted if e[0] == 'match_frame']
    assert frames and frames[-1][2]['to'] == 'match'
    assert frames[-1][1]['bases']['base_1']['held_by'] == 'red'


def test_ticker_auto_captures_full_bases(ticker_app):
    app, emitted, tasks = ticker_app
    session = get_session(app)
    session.store.write({'bases': {'base_2': {'held_by': 'blue', 'last_interaction': 0}}})

    loop = start_frame_ticker(app, session)
    loop.tick()

    base = session.raw_state['bases']['base_2']
    assert base['owner'] == 'blue'
    assert base['held_by'] is None


@pytest.fixture()
def room_app(flask_app, monkeypatch):
    flask_app.config['ENABLE_TICKER_IN_TESTS'] = True
    monkeypatch.setattr(socketio, 'start_background_task', lambda fn, *args: None)
    monkeypatch.setattr(socketio_events, '_room_members', set())
    yield flask_app
    stop_frame_ticker()


def test_ticker_stops_when_the_match_room_empties(room_app):
    first = socketio.test_client(room_app, namespace='/ws')
    second = socketio.test_client(room_app, namespace='/ws')
    first.emit('join_match', {}, namespace='/ws')
    second.emit('join_match', {}, namespace='/ws')
    loop = scheduler._frame_loop
    assert loop is not None and loop.running

    first.emit('leave_match', {}, namespace='/ws')
    assert loop.running

    second.disconnect(namespace='/ws')
    assert not loop.running
    assert scheduler._frame_loop is None
    first.disconnect(namespace='/ws')


def test_rejoining_restarts_the_ticker(room_app):
    station = socketio.test_client(room_app, namespace='/ws')
    station.emit('join_match', {}, namespace='/ws')
    first_loop = scheduler._frame_loop
    station.emit('leave_match', {}, namespace='/ws')
    assert not first_loop.running

    station.emit('join_match', {}, namespace='/ws')
    assert scheduler._frame_loop is not None and scheduler._frame_loop is not first_loop
    assert scheduler._frame_loop.running
    station.disconnect(namespace='/ws')
