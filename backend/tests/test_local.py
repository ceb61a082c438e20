import pytest

from puzzlemaster.game.errors import ValidationError
from puzzlemaster.game.local import LocalGame
from puzzlemaster.game.turns import QUIT


def test_blank_seats_are_ignored():
    game = LocalGame(['Ann', '  ', 'Ben'])
    assert game.room.players == ['Ann', 'Ben']
    assert game.room.phase == 'setup'


def test_duplicate_and_too_many_players():
    with pytest.raises(ValidationError):
        LocalGame(['Ann', 'Ann'])
    with pytest.raises(ValidationError):
        LocalGame(['A', 'B', 'C', 'D', 'E'])


def test_needs_two_players_to_start():
    game = LocalGame(['Ann', ''])
    with pytest.raises(ValidationError):
        game.start_game()
    assert game.room.phase == 'setup'


def test_full_round_with_winner(rng):
    game = LocalGame(['A', 'B', 'C'])
    room = game.start_game(master_index=0)
    assert room.phase == 'word-input'

    game.submit_word('RAINBOW', 'Colours after rain')
    room = game.publish_clue()
    assert room.phase == 'guessing'
    assert room.hint == 'Colours after rain'

    room = game.submit_guess('rainbow')
    assert room.phase == 'results'
    assert room.winner == 'B'
    assert [g.player for g in room.guesses] == ['B']


def test_quit_round_then_play_again():
    game = LocalGame(['A', 'B'])
    game.start_game(master_index=0)
    game.submit_word('answer', 'a question')
    game.publish_clue()
    room = game.submit_guess(QUIT)
    assert room.phase == 'results'
    assert room.winner is None

    room = game.play_again()
    assert room.phase == 'setup'
    assert room.players == ['A', 'B']
    room = game.start_game(master_index=1)
    assert room.current_guesser == 0


def test_random_master(rng):
    game = LocalGame(['A', 'B', 'C'])
    room = game.start_game(rng=rng)
    assert 0 <= room.puzzle_master < 3
    assert room.current_guesser != room.puzzle_master


def test_failed_command_leaves_room_unchanged():
    game = LocalGame(['A', 'B'])
    game.start_game(master_index=0)
    before = game.room
    with pytest.raises(ValidationError):
        game.submit_word('', 'hint')
    assert game.room is before
