"""Tests for save slots, autosave and storage backends."""

import json

import pytest

from chess_session.errors import NotFound, ValidationError
from chess_session.models import Color, GameStatus, Move, Snapshot
from chess_session.storage import AUTOSAVE_KEY, FileBackend, MemoryBackend, SnapshotStore, slot_key


def _snapshot(*tokens, **fields):
    return Snapshot(move_history=[Move.from_coordinate(t) for t in tokens], **fields)


class FixedClock:
    def __init__(self, *values):
        self.values = list(values)

    def __call__(self) -> int:
        return self.values.pop(0) if len(self.values) > 1 else self.values[0]


class TestSlotKey:
    def test_valid_slots(self) -> None:
        assert slot_key(1) == 'slot-1'
        assert slot_key(3) == 'slot-3'

    @pytest.mark.parametrize('slot', [0, 4, -1, '1', True, None, 1.0])
    def test_invalid_slots(self, slot) -> None:
        with pytest.raises(ValidationError):
            slot_key(slot)


class TestSnapshotStore:
    def test_save_then_load(self, store) -> None:
        snap = _snapshot('e2e4', 'e7e5', game_id='g1', status=GameStatus.CHECK,
                         white_time_seconds=30, black_time_seconds=12.5,
                         orientation=Color.BLACK)
        saved = store.save(2, snap)
        loaded = store.load(2)
        assert loaded == saved
        assert loaded.move_history == snap.move_history
        assert loaded.orientation is Color.BLACK
        assert saved.saved_at > 0

    def test_save_overwrites(self, store) -> None:
        store.save(1, _snapshot('e2e4'))
        store.save(1, _snapshot('d2d4', 'd7d5'))
        assert [m.coordinate() for m in store.load(1).move_history] == ['d2d4', 'd7d5']

    def test_load_empty_slot(self, store) -> None:
        with pytest.raises(NotFound):
            store.load(3)
        assert store.peek(3) is None

    def test_out_of_range_slot(self, store) -> None:
        with pytest.raises(ValidationError):
            store.save(4, _snapshot('e2e4'))
        with pytest.raises(ValidationError):
            store.load(0)

    def test_delete(self, store) -> None:
        store.save(1, _snapshot('e2e4'))
        store.delete(1)
        assert store.peek(1) is None
        store.delete(1)

    def test_list_slots(self, store) -> None:
        store.save(2, _snapshot('e2e4'))
        slots = store.list_slots()
        assert list(slots) == [1, 2, 3]
        assert slots[1] is None
        assert slots[2].move_history == [Move('e2', 'e4')]

    def test_corrupt_record_is_discarded(self, backend, store) -> None:
        backend.set('test', 'slot-1', {'version': 1, 'move_history': 'garbage'})
        assert store.peek(1) is None
        assert backend.get('test', 'slot-1') is None

    def test_wrong_version_is_discarded(self, backend, store) -> None:
        backend.set('test', 'slot-2', {'version': 99, 'move_history': []})
        with pytest.raises(NotFound):
            store.load(2)

    def test_saved_at_never_decreases(self, backend) -> None:
        store = SnapshotStore(backend, namespace='clock', clock=FixedClock(5000, 4000, 3000))
        first = store.save(1, _snapshot('e2e4'))
        second = store.save(1, _snapshot('d2d4'))
        third = store.save(2, _snapshot('c2c4'))
        assert first.saved_at == 5000
        assert second.saved_at == 5000
        assert third.saved_at == 5000

    def test_saved_at_respects_stored_value(self, backend) -> None:
        SnapshotStore(backend, namespace='shared', clock=lambda: 9000).save(1, _snapshot('e2e4'))
        later = SnapshotStore(backend, namespace='shared', clock=lambda: 100)
        assert later.save(1, _snapshot('d2d4')).saved_at == 9000

    def test_saved_at_respects_fractional_stored_value(self, backend) -> None:
        record = _snapshot('e2e4').stamped(0).to_dict()
        record['saved_at'] = 9000.5
        backend.set('shared', 'slot-1', record)
        later = SnapshotStore(backend, namespace='shared', clock=lambda: 100)
        assert later.save(1, _snapshot('d2d4')).saved_at == 9001

    def test_saved_at_ignores_non_finite_stored_value(self, backend) -> None:
        record = _snapshot('e2e4').stamped(0).to_dict()
        record['saved_at'] = float('inf')
        backend.set('shared', 'slot-1', record)
        later = SnapshotStore(backend, namespace='shared', clock=lambda: 100)
        assert later.save(1, _snapshot('d2d4')).saved_at == 100

    def test_namespaces_are_isolated(self, backend) -> None:
        SnapshotStore(backend, namespace='alice').save(1, _snapshot('e2e4'))
        assert SnapshotStore(backend, namespace='bob').peek(1) is None


class TestAutosave:
    def test_restore_returns_autosave(self, store) -> None:
        store.autosave(_snapshot('e2e4'))
        restored = store.try_restore_autosave()
        assert restored.move_history == [Move('e2', 'e4')]

    def test_empty_autosave_is_ignored(self, store) -> None:
        store.autosave(_snapshot())
        assert store.try_restore_autosave() is None

    def test_missing_autosave(self, store) -> None:
        assert store.try_restore_autosave() is None

    def test_corrupt_autosave_is_discarded(self, backend, store) -> None:
        backend.set('test', AUTOSAVE_KEY, ['not', 'a', 'snapshot'])
        assert store.try_restore_autosave() is None
        assert backend.get('test', AUTOSAVE_KEY) is None

    def test_clear_autosave(self, store) -> None:
        store.autosave(_snapshot('e2e4'))
        store.clear_autosave()
        assert store.try_restore_autosave() is None

    def test_autosave_does_not_touch_slots(self, store) -> None:
        store.autosave(_snapshot('e2e4'))
        assert all(snap is None for snap in store.list_slots().values())


class TestMemoryBackend:
    def test_values_are_copied(self) -> None:
        backend = MemoryBackend()
        value = {'a': [1, 2]}
        backend.set('ns', 'k', value)
        value['a'].append(3)
        assert backend.get('ns', 'k') == {'a': [1, 2]}

    def test_missing_key(self) -> None:
        assert MemoryBackend().get('ns', 'nope') is None


class TestFileBackend:
    def test_persists_across_instances(self, tmp_path) -> None:
        SnapshotStore(FileBackend(tmp_path), namespace='p1').save(1, _snapshot('e2e4', 'e7e5'))
        reopened = SnapshotStore(FileBackend(tmp_path), namespace='p1')
        assert [m.coordinate() for m in reopened.load(1).move_history] == ['e2e4', 'e7e5']

    def test_one_file_per_namespace(self, tmp_path) -> None:
        backend = FileBackend(tmp_path)
        backend.set('a/b', 'k', 1)
        files = [path.name for path in tmp_path.iterdir()]
        assert files == ['a_b.json']
        assert json.loads((tmp_path / 'a_b.json').read_text()) == {'k': 1}

    def test_unreadable_file_is_treated_as_empty(self, tmp_path) -> None:
        (tmp_path / 'broken.json').write_text('{not json')
        backend = FileBackend(tmp_path)
        assert backend.get('broken', 'slot-1') is None
        backend.set('broken', 'slot-1', {'x': 1})
        assert backend.get('broken', 'slot-1') == {'x': 1}

    def test_delete(self, tmp_path) -> None:
        backend = FileBackend(tmp_path)
        backend.set('ns', 'k', 1)
        backend.delete('ns', 'k')
        assert backend.get('ns', 'k') is None
