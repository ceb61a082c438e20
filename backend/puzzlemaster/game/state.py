from __future__ import annotations

from dataclasses import asdict

from .models import Room
from .turns import round_outcome


def room_public_state(room: Room, viewer: str | None = None) -> dict:
    """Wire form of a room as seen by ``viewer``.

    The secret word is only sent to the puzzle master until the round is over.
    """
    payload = {
        "code": room.code,
        "players": list(room.players),
        "puzzleMaster": room.puzzle_master,
        "puzzleMasterName": room.puzzle_master_name,
        "hint": room.hint if room.phase in ("guessing", "results") else "",
        "phase": room.phase,
        "currentGuesser": room.current_guesser,
        "currentGuesserName": room.current_guesser_name,
        "guesses": [asdict(g) for g in room.guesses],
        "quitPlayers": list(room.quit_players),
        "winner": room.winner,
        "createdAt": room.created_at_ms,
        "maxPlayers": room.max_players,
    }

    if room.phase == "results":
        payload["secretWord"] = room.secret_word
        outcome = round_outcome(room)
        payload["outcome"] = {
            "winner": outcome["winner"],
            "puzzleMaster": outcome["puzzle_master"],
            "puzzleMasterWins": outcome["puzzle_master_wins"],
            "secretWord": outcome["secret_word"],
        }
    elif viewer and viewer == room.puzzle_master_name and room.phase != "setup":
        payload["secretWord"] = room.secret_word
        payload["hint"] = room.hint

    return payload
