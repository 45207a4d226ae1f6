import pytest

from basecontrol.services.match.clock import reset_state
from basecontrol.services.match.store import MemoryMatchStore, SqlMatchStore, merge_fields


def test_merge_updates_one_base_without_touching_others():
    state = reset_state(0, 15, ['base_1', 'base_2'])
    merged = merge_fields(state, {'bases': {'base_1': {'held_by': 'red', 'last_interaction': 10}}})
    assert merged['bases']['base_1']['held_by'] == 'red'
    assert merged['bases']['base_1']['scores'] == state['bases']['base_1']['scores']
    assert merged['bases']['base_2'] == state['bases']['base_2']
    assert state['bases']['base_1']['held_by'] is None


def test_merge_drops_top_level_none():
    state = {'status': 'paused', 'end_time': 0, 'remaining_time': 500, 'bases': {}}
    merged = merge_fields(state, {'status': 'playing', 'remaining_time': None})
    assert merged == {'status': 'playing', 'end_time': 0, 'bases': {}}


def test_memory_store_pushes_full_state_to_observers():
    store = MemoryMatchStore(reset_state(0))
    seen = []
    store.subscribe(seen.append)

    store.write({'bases': {'base_2': {'held_by': 'green'}}})

    assert len(seen) == 1
    assert seen[0]['bases']['base_2']['held_by'] == 'green'
    assert set(seen[0]['bases']) == {'base_1', 'base_2', 'base_3', 'base_4'}


def test_memory_store_observers_get_copies():
    store = MemoryMatchStore(reset_state(0))
    store.subscribe(lambda state: state['bases'].clear())
    store.write({'status': 'playing'})
    assert len(store.snapshot()['bases']) == 4


def test_memory_store_unsubscribe_and_close():
    store = MemoryMatchStore()
    first, second = [], []
    unsubscribe = store.subscribe(first.append)
    store.subscribe(second.append)

    unsubscribe()
    store.replace(reset_state(0))
    assert first == [] and len(second) == 1

    store.close()
    store.write({'status': 'ended'})
    assert len(second) == 1


def test_failing_observer_does_not_block_the_rest():
    store = MemoryMatchStore(reset_state(0))
    seen = []

    def broken(state):
        raise RuntimeError('boom')

    store.subscribe(broken)
    store.subscribe(seen.append)
    store.write({'status': 'playing'})
    assert len(seen) == 1


def test_memory_store_starts_empty():
    assert MemoryMatchStore().snapshot() is None


def test_sql_store_round_trip(flask_app):
    store = SqlMatchStore(flask_app)
    assert store.snapshot() is None

    state = reset_state(1_000, 15, ['base_1', 'base_2'])
    store.replace(state)
    assert store.snapshot() == state


def test_sql_store_merges_writes(flask_app):
    store = SqlMatchStore(flask_app)
    store.replace(reset_state(1_000, 15, ['base_1', 'base_2']))
    seen = []
    store.subscribe(seen.append)

    scores = {'red': 40.0, 'green': 20.0, 'blue': 20.0, 'yellow': 20.0}
    store.write({'bases': {'base_1': {'held_by': 'red', 'last_interaction': 2_000, 'scores': scores}}})
    store.write({'status': 'paused', 'remaining_time': 90_000})

    snapshot = store.snapshot()
    assert snapshot['status'] == 'paused'
    assert snapshot['remaining_time'] == 90_000
    assert snapshot['bases']['base_1']['scores'] == scores
    assert snapshot['bases']['base_1']['held_by'] == 'red'
    assert snapshot['bases']['base_2']['held_by'] is None
    assert len(seen) == 2 and seen[-1] == snapshot

    store.write({'status': 'playing', 'remaining_time': None})
    assert 'remaining_time' not in store.snapshot()


def test_sql_store_replace_drops_old_bases(flask_app):
    store = SqlMatchStore(flask_app)
    store.replace(reset_state(0, 15, ['base_1', 'base_2', 'base_3']))
    store.replace(reset_state(0, 15, ['base_9']))
    assert list(store.snapshot()['bases']) == ['base_9']


def test_sql_store_rolls_back_failed_write(flask_app, caplog):
    store = SqlMatchStore(flask_app)
    store.replace(reset_state(0, 15, ['base_1']))
    seen = []
    store.subscribe(seen.append)

    # status is NOT NULL
    store.write({'status': None, 'bases': {'base_1': {'owner': None}}})

    assert seen == []
    assert store.snapshot()['bases']['base_1']['owner'] == 'neutral'
    assert 'store-write-failed' in caplog.text
