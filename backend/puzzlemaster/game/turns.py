"""Turn rotation and win resolution for a single round.

Every rule here is a pure function of a :class:`Room`: it validates the
command against the room's phase and returns the partial field updates the
command produces. Callers decide where the updates go; ``LocalGame`` merges
them into an in-memory room, ``RoomSession`` persists them through the
room store.
"""

from __future__ import annotations

import random
from dataclasses import replace
from typing import Any, Iterable

from ..config import Config
from ..utils.text import clean_text
from .errors import ValidationError
from .models import Guess, Room


QUIT = "__QUIT__"
SHOW_ANSWER = "__SHOW_ANSWER__"

IN_ROUND_PHASES = ("word-input", "puzzle-creation", "guessing")

Updates = dict[str, Any]


def apply_updates(room: Room, updates: Updates) -> Room:
    return replace(room, **updates)


def _normalize_guess(text: str) -> str:
    return clean_text(text).lower()


def matches_secret(guess: str, secret_word: str) -> bool:
    secret = _normalize_guess(secret_word)
    if not secret:
        return False
    return _normalize_guess(guess) == secret


def find_winner(guesses: Iterable[Guess]) -> str | None:
    for g in guesses:
        if g.correct:
            return g.player
    return None


def _require_phase(room: Room, phase: str) -> None:
    if room.phase != phase:
        raise ValidationError("invalid_phase")


def _first_guesser(puzzle_master: int) -> int:
    return 1 if puzzle_master == 0 else 0


def _round_reset() -> Updates:
    return {
        "secret_word": "",
        "hint": "",
        "guesses": [],
        "quit_players": [],
        "winner": None,
    }


def eligible_guessers(room: Room, quit_players: Iterable[str] | None = None) -> list[int]:
    """Indices of players that may still guess, in player order."""
    quitted = set(room.quit_players if quit_players is None else quit_players)
    return [
        i for i, name in enumerate(room.players)
        if i != room.puzzle_master and name not in quitted
    ]


def next_guesser(room: Room, quit_players: Iterable[str] | None = None) -> int | None:
    # Single pass: only players after the current one, never wrapping around.
    for idx in eligible_guessers(room, quit_players):
        if idx > room.current_guesser:
            return idx
    return None


def start_game(room: Room, rng: random.Random | None = None, master_index: int | None = None) -> Updates:
    _require_phase(room, "setup")
    if len(room.players) < Config.MIN_PLAYERS:
        raise ValidationError("not_enough_players")

    if master_index is None:
        master_index = (rng or random).randrange(len(room.players))
    elif not isinstance(master_index, int) or not 0 <= master_index < len(room.players):
        raise ValidationError("invalid_player_index")

    updates = _round_reset()
    updates.update(
        phase="word-input",
        puzzle_master=master_index,
        current_guesser=_first_guesser(master_index),
    )
    return updates


def submit_word(room: Room, secret_word: str, hint: str) -> Updates:
    _require_phase(room, "word-input")
    word = clean_text(secret_word)
    clue = clean_text(hint)
    if not word or not clue:
        raise ValidationError("invalid_word")
    return {"secret_word": word, "hint": clue, "phase": "puzzle-creation"}


def publish_clue(room: Room) -> Updates:
    _require_phase(room, "puzzle-creation")
    return {"phase": "guessing"}


def reveal_answer(room: Room) -> Updates:
    _require_phase(room, "guessing")
    return {"phase": "results", "winner": None}


def quit_turn(room: Room) -> Updates:
    _require_phase(room, "guessing")
    player = room.current_guesser_name
    quit_players = list(room.quit_players)
    if player is not None and player not in quit_players:
        quit_players.append(player)

    updates: Updates = {"quit_players": quit_players}

    non_masters = [n for i, n in enumerate(room.players) if i != room.puzzle_master]
    if all(n in quit_players for n in non_masters):
        updates.update(phase="results", winner=None)
        return updates

    nxt = next_guesser(room, quit_players)
    if nxt is None:
        updates.update(phase="results", winner=None)
    else:
        updates["current_guesser"] = nxt
    return updates


def submit_guess(room: Room, text: str) -> Updates:
    _require_phase(room, "guessing")
    if text == QUIT:
        return quit_turn(room)
    if text == SHOW_ANSWER:
        return reveal_answer(room)

    guess = clean_text(text)
    if not guess:
        raise ValidationError("empty_guess")

    player = room.current_guesser_name
    correct = matches_secret(guess, room.secret_word)
    updates: Updates = {"guesses": [*room.guesses, Guess(player=player, guess=guess, correct=correct)]}

    if correct:
        updates.update(phase="results", winner=player)
        return updates

    nxt = next_guesser(room)
    if nxt is None:
        # Nobody left to guess: the puzzle master wins by default.
        updates.update(phase="results", winner=None)
    else:
        updates["current_guesser"] = nxt
    return updates


def play_again(room: Room) -> Updates:
    _require_phase(room, "results")
    updates = _round_reset()
    updates.update(phase="setup", puzzle_master=0, current_guesser=0)
    return updates


def drop_player(room: Room, name: str) -> Updates:
    """Updates that remove ``name`` from the roster without breaking the round."""
    if name not in room.players:
        return {}

    idx = room.players.index(name)
    players = [p for p in room.players if p != name]
    updates: Updates = {"players": players}
    if not players:
        return updates

    def shift(i: int) -> int:
        return i - 1 if i > idx else i

    in_round = room.phase in IN_ROUND_PHASES
    # Results without their puzzle master are discarded as well.
    master_left = idx == room.puzzle_master and room.phase != "setup"
    if master_left or (in_round and len(players) < Config.MIN_PLAYERS):
        updates.update(_round_reset())
        updates.update(phase="setup", puzzle_master=0, current_guesser=0)
        return updates

    if not in_round:
        updates["puzzle_master"] = 0 if idx == room.puzzle_master else shift(room.puzzle_master)
        updates["current_guesser"] = 0 if idx == room.current_guesser else shift(room.current_guesser)
        return updates

    master = shift(room.puzzle_master)
    updates["puzzle_master"] = master

    if room.phase != "guessing":
        updates["current_guesser"] = _first_guesser(master)
    elif idx == room.current_guesser:
        # A departing guesser forfeits the turn.
        forfeit = quit_turn(room)
        updates.update(forfeit)
        if "current_guesser" in forfeit:
            updates["current_guesser"] = shift(forfeit["current_guesser"])
        else:
            updates["current_guesser"] = _first_guesser(master)
    else:
        updates["current_guesser"] = shift(room.current_guesser)
    return updates


def round_outcome(room: Room) -> dict[str, Any]:
    winner = room.winner or find_winner(room.guesses)
    return {
        "winner": winner,
        "puzzle_master": room.puzzle_master_name,
        "puzzle_master_wins": winner is None,
        "secret_word": room.secret_word,
    }


class TurnActions:
    """Round commands for anything that can read and update one room.

    Subclasses provide ``_current_room`` and ``_apply``; ``_run`` may be
    overridden to evaluate a rule and persist its result in one step, and
    ``_check_actor`` to enforce who is allowed to issue a command.
    """

    def _current_room(self) -> Room:
        raise NotImplementedError

    def _apply(self, updates: Updates) -> Room:
        raise NotImplementedError

    def _check_actor(self, room: Room, role: str) -> None:
        return None

    def _run(self, role: str, rule, *args, **kwargs) -> Room:
        room = self._current_room()
        self._check_actor(room, role)
        return self._apply(rule(room, *args, **kwargs))

    def start_game(self, rng: random.Random | None = None, master_index: int | None = None) -> Room:
        return self._run("member", start_game, rng=rng, master_index=master_index)

    def submit_word(self, secret_word: str, hint: str) -> Room:
        return self._run("master", submit_word, secret_word, hint)

    def publish_clue(self) -> Room:
        return self._run("master", publish_clue)

    def submit_guess(self, text: str) -> Room:
        return self._run("guesser", submit_guess, text)

    def quit_turn(self) -> Room:
        return self._run("guesser", quit_turn)

    def reveal_answer(self) -> Room:
        return self._run("guesser", reveal_answer)

    def play_again(self) -> Room:
        return self._run("member", play_again)
