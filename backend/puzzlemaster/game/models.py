from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Literal

from .errors import ValidationError


Phase = Literal["setup", "word-input", "puzzle-creation", "guessing", "results"]

PHASES: tuple[str, ...] = ("setup", "word-input", "puzzle-creation", "guessing", "results")


@dataclass(frozen=True)
class Guess:
    player: str
    guess: str
    correct: bool = False


@dataclass
class Room:
    code: str
    players: list[str] = field(default_factory=list)
    puzzle_master: int = 0
    secret_word: str = ""
    hint: str = ""
    phase: Phase = "setup"
    current_guesser: int = 0
    guesses: list[Guess] = field(default_factory=list)
    quit_players: list[str] = field(default_factory=list)
    winner: str | None = None
    created_at_ms: int = 0
    max_players: int = 4

    @classmethod
    def field_names(cls) -> set[str]:
        return {f.name for f in fields(cls)}

    def to_record(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "Room":
        known = cls.field_names()
        values = {k: v for k, v in data.items() if k in known}
        values["players"] = list(values.get("players") or [])
        values["quit_players"] = list(values.get("quit_players") or [])
        values["guesses"] = [
            g if isinstance(g, Guess) else Guess(**g) for g in values.get("guesses") or []
        ]
        return cls(**values)

    def check_invariants(self) -> None:
        if self.phase not in PHASES:
            raise ValidationError("invalid_phase")
        if not all(isinstance(p, str) for p in [*self.players, *self.quit_players]):
            raise ValidationError("invalid_player")
        if not all(isinstance(g, Guess) for g in self.guesses):
            raise ValidationError("invalid_guess")
        if len(self.players) > self.max_players:
            raise ValidationError("room_over_capacity")
        if len(set(self.players)) != len(self.players):
            raise ValidationError("duplicate_player")
        if not self.players:
            return
        for idx in (self.puzzle_master, self.current_guesser):
            if not isinstance(idx, int) or not 0 <= idx < len(self.players):
                raise ValidationError("invalid_player_index")
        if self.phase == "guessing" and self.current_guesser == self.puzzle_master:
            raise ValidationError("invalid_player_index")

    @property
    def puzzle_master_name(self) -> str | None:
        if 0 <= self.puzzle_master < len(self.players):
            return self.players[self.puzzle_master]
        return None

    @property
    def current_guesser_name(self) -> str | None:
        if 0 <= self.current_guesser < len(self.players):
            return self.players[self.current_guesser]
        return None
