"""
Demonstration recorder tests: rate limit, commit/discard, export and import
"""
import json
import numpy as np
import pytest
from automata_ai.core.actions import Action
from automata_ai.learning.human_recorder import (
    EXPORT_FORMAT, DemonstrationExample, DemonstrationRecorder, DemonstrationStore, import_examples
)
from automata_ai.utils.time_utils import GameTimeThrottle

STATE = np.full(21, 0.5, dtype=np.float32)

@pytest.fixture
def recorder(cfg):
    return DemonstrationRecorder(DemonstrationStore(), cfg=cfg)

def test_not_recording_records_nothing(recorder):
    assert not recorder.record(STATE, Action.UP, 0.0)
    assert recorder.session_examples == []

def test_rate_limited_on_game_time(recorder):
    recorder.start_recording("run")
    assert recorder.record(STATE, Action.UP, 0.0)
    assert not recorder.record(STATE, Action.UP, 0.1)
    assert recorder.record(STATE, Action.LEFT, 0.2)
    assert not recorder.record(STATE, Action.LEFT, 0.25)
    assert recorder.record(STATE, Action.LEFT, 0.4)
    assert len(recorder.session_examples) == 3
    assert recorder.rate_limited == 2

def test_new_run_resets_rate_limit(recorder):
    recorder.start_recording()
    assert recorder.record(STATE, Action.UP, 10.0)
    assert recorder.record(STATE, Action.UP, 0.0)

def test_unknown_source_rejected(recorder):
    recorder.start_recording()
    with pytest.raises(ValueError):
        recorder.record(STATE, Action.UP, 0.0, source='bot')

def test_recording_follows_the_game_time_throttle(recorder, cfg):
    assert isinstance(recorder.throttle, GameTimeThrottle)
    assert recorder.throttle.interval == cfg.RECORDING_INTERVAL
    recorder.start_recording()
    assert recorder.record(STATE, Action.UP, 3.0)
    for _ in range(10):
        assert not recorder.record(STATE, Action.UP, 3.0)
    assert recorder.throttle.time_until_next(3.0) == pytest.approx(cfg.RECORDING_INTERVAL)

def test_invalid_action_does_not_consume_a_slot(recorder):
    recorder.start_recording()
    with pytest.raises(ValueError):
        recorder.record(STATE, 42, 0.0)
    assert recorder.record(STATE, Action.UP, 0.0)
    assert recorder.rate_limited == 0

def test_import_rejects_unknown_source():
    store = DemonstrationStore()
    with pytest.raises(ValueError):
        store.import_document({'states': [[0.5] * 21], 'actions': [1]}, source='bot')
    assert len(store) == 0

def test_recorded_state_is_copied(recorder):
    state = STATE.copy()
    recorder.start_recording()
    recorder.record(state, Action.UP, 0.0)
    state[:] = 0.0
    assert recorder.session_examples[0].state[0] == pytest.approx(0.5)

def test_commit_moves_session_into_store(recorder):
    recorder.start_recording()
    recorder.record(STATE, Action.UP, 0.0)
    recorder.record(STATE, Action.DOWN, 0.2)
    recorder.record_level_up(["speed", "armor"], "speed", 0.3)
    assert len(recorder.store) == 0
    assert recorder.stop_recording(commit=True) == 2
    assert not recorder.recording
    assert recorder.store.actions() == [Action.UP, Action.DOWN]
    assert recorder.store.level_ups[0].choice == "speed"

def test_discard_drops_session(recorder):
    recorder.start_recording()
    recorder.record(STATE, Action.UP, 0.0)
    assert recorder.stop_recording(commit=False) == 0
    assert len(recorder.store) == 0
    assert recorder.session_examples == []

def test_export_document(recorder):
    recorder.start_recording("run-1")
    recorder.record(STATE, Action.STAY, 1.0)
    recorder.record(STATE, Action.RIGHT, 1.5)
    recorder.record_level_up(["a", "b", "c"], "b", 1.2)
    document = recorder.export_session()
    assert document['format'] == EXPORT_FORMAT
    assert document['session'] == "run-1"
    assert document['summary']['total_examples'] == 2
    assert document['summary']['movement_examples'] == 1
    assert document['summary']['level_up_examples'] == 1
    assert document['summary']['duration'] == pytest.approx(0.5)
    assert document['actions'] == [0, 3]
    assert len(document['states'][0]) == 21
    assert document['level_ups'] == [{'options': ["a", "b", "c"], 'choice': "b", 'timestamp': 1.2}]
    json.dumps(document)

def test_export_falls_back_to_corpus_when_idle(recorder):
    recorder.start_recording()
    recorder.record(STATE, Action.UP, 0.0)
    recorder.stop_recording()
    assert recorder.export_session()['actions'] == [Action.UP]

def test_save_export_writes_file(recorder, cfg):
    recorder.start_recording("saved")
    recorder.record(STATE, Action.UP, 0.0)
    path = recorder.save_export()
    assert path.startswith(cfg.EXPORT_PATH)
    with open(path) as f:
        assert json.load(f)['actions'] == [1]

def test_import_compact_layout():
    states, actions = import_examples({'states': [[0.1, 0.2], [0.3, 0.4]], 'actions': [1, 8]})
    assert actions == [1, 8]
    assert states[1].dtype == np.float32

def test_import_per_example_layout():
    document = {'examples': [{'state': [0.1], 'action': 2}, {'s': [0.2], 'a': 0}]}
    states, actions = import_examples(document)
    assert actions == [2, 0]
    assert len(states) == 2

@pytest.mark.parametrize("document", [
    [],
    {'states': [[0.1]], 'actions': [1, 2]},
    {'states': [[0.1]], 'actions': [9]},
    {'examples': [{'state': [0.1]}]},
    {'rows': []},
])
def test_import_rejects_malformed_documents(document):
    with pytest.raises(ValueError):
        import_examples(document)

def test_exported_session_can_be_imported(recorder):
    recorder.start_recording()
    recorder.record(STATE, Action.LEFT, 0.0)
    store = DemonstrationStore()
    assert store.import_document(recorder.export_session()) == 1
    assert store.actions() == [Action.LEFT]
    assert store.examples[0].metadata == {'imported': True}

def test_action_statistics(recorder):
    recorder.start_recording()
    recorder.record(STATE, Action.STAY, 0.0)
    recorder.record(STATE, Action.UP, 0.2)
    stats = recorder.get_action_statistics()
    assert stats['total'] == 2
    assert stats['counts']['Up'] == 1
    assert stats['stay_fraction'] == pytest.approx(0.5)

def test_snapshot_filters_by_source_and_removal_is_by_identity():
    store = DemonstrationStore()
    human = DemonstrationExample(state=STATE.copy(), action=1, timestamp=0.0)
    twin = DemonstrationExample(state=STATE.copy(), action=1, timestamp=0.0)
    ai = DemonstrationExample(state=STATE.copy(), action=2, timestamp=0.0, source='ai')
    store.add_examples([human, twin, ai])
    snapshot = store.snapshot(('human',))
    assert [id(e) for e in snapshot] == [id(human), id(twin)]
    assert len(store.snapshot()) == 3
    assert store.remove_examples([human]) == 1
    assert len(store) == 2
    assert store.examples[0] is twin
