import json

import pytest

from puzzlemaster.game.errors import RoomFull, RoomNotFound, ValidationError
from puzzlemaster.game.models import Guess
from puzzlemaster.game.store import INDEX_KEY, RoomStore, room_key
from puzzlemaster.storage.backends import MemoryBackend, SqliteBackend


def test_create_room_has_host_as_sole_player(store):
    room = store.create_room('  Alice ')
    assert room.players == ['Alice']
    assert room.phase == 'setup'
    assert room.max_players == 4
    assert room.created_at_ms > 0
    assert room.code.startswith('GAME-')
    assert len(room.code) == len('GAME-') + 4
    assert store.get_room(room.code) == room
    assert room.code in store.room_codes()


def test_create_room_rejects_blank_or_unsafe_names(store):
    for bad in ('', '   ', '<script>', 'x' * 17, 'bad\x01name'):
        with pytest.raises(ValidationError) as exc:
            store.create_room(bad)
        assert exc.value.error == 'invalid_name'
    assert store.room_codes() == []


def test_codes_are_unique(store):
    codes = {store.create_room(f'host{i}').code for i in range(30)}
    assert len(codes) == 30


def test_join_until_full(store):
    room = store.create_room('A')
    for name in ('B', 'C', 'D'):
        room = store.join_room(room.code, name)
    assert room.players == ['A', 'B', 'C', 'D']

    with pytest.raises(RoomFull):
        store.join_room(room.code, 'E')
    assert store.get_room(room.code).players == ['A', 'B', 'C', 'D']


def test_join_is_idempotent_and_case_insensitive_on_code(store):
    room = store.create_room('A')
    store.join_room(room.code.lower(), 'B')
    again = store.join_room(f' {room.code} ', 'B')
    assert again.players == ['A', 'B']


def test_join_existing_name_in_full_room_is_not_an_error(store):
    room = store.create_room('A')
    for name in ('B', 'C', 'D'):
        store.join_room(room.code, name)
    assert store.join_room(room.code, 'C').players == ['A', 'B', 'C', 'D']


def test_join_unknown_room(store):
    with pytest.raises(RoomNotFound) as exc:
        store.join_room('GAME-NOPE', 'A')
    assert exc.value.error == 'room_not_found'
    assert exc.value.status == 404


def test_leave_last_player_deletes_room(store):
    room = store.create_room('A')
    store.join_room(room.code, 'B')

    remaining = store.leave_room(room.code, 'A')
    assert remaining.players == ['B']

    assert store.leave_room(room.code, 'B') is None
    assert store.get_room(room.code) is None
    assert room.code not in store.room_codes()
    with pytest.raises(RoomNotFound):
        store.join_room(room.code, 'C')


def test_leave_unknown_player_changes_nothing(store):
    room = store.create_room('A')
    assert store.leave_room(room.code, 'Zed').players == ['A']


def test_update_room_merges_fields(store):
    room = store.create_room('A')
    store.join_room(room.code, 'B')
    updated = store.update_room(room.code, phase='word-input', puzzle_master=1, current_guesser=0)
    assert updated.phase == 'word-input'
    assert store.get_room(room.code).puzzle_master == 1


def test_update_room_is_all_or_nothing(store):
    room = store.create_room('A')
    store.join_room(room.code, 'B')
    before = store.get_room(room.code)

    with pytest.raises(ValidationError):
        store.update_room(room.code, phase='guessing', puzzle_master=1, current_guesser=1)
    with pytest.raises(ValidationError):
        store.update_room(room.code, players=['A', 'A'])
    with pytest.raises(ValidationError):
        store.update_room(room.code, players=['A', 'B', 'C', 'D', 'E'])
    with pytest.raises(ValidationError) as exc:
        store.update_room(room.code, colour='red')
    assert exc.value.error == 'invalid_field'
    with pytest.raises(ValidationError) as exc:
        store.update_room(room.code, code='GAME-XXXX')
    assert exc.value.error == 'invalid_field'

    assert store.get_room(room.code) == before


def test_guesses_survive_serialization(store):
    room = store.create_room('A')
    store.update_room(room.code, guesses=[Guess('A', 'cat', False)])
    loaded = store.get_room(room.code)
    assert loaded.guesses == [Guess(player='A', guess='cat', correct=False)]


def test_records_and_index_are_persisted_in_backend():
    backend = MemoryBackend()
    store = RoomStore(backend)
    room = store.create_room('A')

    record = json.loads(backend.get(room_key(room.code)))
    assert record['players'] == ['A']
    assert json.loads(backend.get(INDEX_KEY)) == [room.code]


def test_recover_rebuilds_index():
    backend = MemoryBackend()
    store = RoomStore(backend)
    kept = store.create_room('A')
    gone = store.create_room('B')
    backend.delete(room_key(gone.code))
    backend.delete(INDEX_KEY)
    backend.put(INDEX_KEY, json.dumps([gone.code]))

    reloaded = RoomStore(backend)
    assert reloaded.room_codes() == [kept.code]
    assert [r.code for r in reloaded.list_rooms()] == [kept.code]


def test_sqlite_backend_survives_reload(tmp_path):
    path = str(tmp_path / 'rooms.db')
    first = SqliteBackend(path)
    room = RoomStore(first).create_room('A')
    first.close()

    second = SqliteBackend(path)
    store = RoomStore(second)
    assert store.get_room(room.code).players == ['A']
    store.join_room(room.code, 'B')
    assert store.leave_room(room.code, 'A').players == ['B']
    assert store.leave_room(room.code, 'B') is None
    assert second.keys('room_') == [INDEX_KEY]
    second.close()


def test_apply_runs_rule_atomically(store):
    room = store.create_room('A')

    def rule(current):
        assert current.players == ['A']
        return {'hint': 'a clue'}

    assert store.apply(room.code, rule).hint == 'a clue'

    def failing(current):
        raise ValidationError('nope')

    with pytest.raises(ValidationError):
        store.apply(room.code, failing)
    assert store.get_room(room.code).hint == 'a clue'


def test_update_room_rejects_unreadable_guesses(store):
    room = store.create_room('A')
    before = store.get_room(room.code)

    with pytest.raises(ValidationError) as exc:
        store.update_room(room.code, guesses=['cat'])
    assert exc.value.error == 'invalid_guess'
    with pytest.raises(ValidationError):
        store.update_room(room.code, players=['A', 7])

    assert store.get_room(room.code) == before


def test_join_rejected_once_round_started(store):
    room = store.create_room('A')
    store.join_room(room.code, 'B')
    store.update_room(room.code, phase='guessing', puzzle_master=0, current_guesser=1)

    with pytest.raises(ValidationError) as exc:
        store.join_room(room.code, 'C')
    assert exc.value.error == 'game_in_progress'
    assert store.join_room(room.code, 'B').players == ['A', 'B']
    assert store.get_room(room.code).players == ['A', 'B']

    store.update_room(room.code, phase='results')
    assert store.join_room(room.code, 'C').players == ['A', 'B', 'C']
