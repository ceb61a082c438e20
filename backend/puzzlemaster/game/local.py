from __future__ import annotations

from typing import Iterable

from ..config import Config
from ..utils.text import clean_text, validate_name
from .errors import ValidationError
from .models import Room
from .store import now_ms
from .turns import TurnActions, Updates, apply_updates


LOCAL_CODE = "LOCAL"


class LocalGame(TurnActions):
    """Pass-and-play game on a single device; no room store involved."""

    def __init__(self, players: Iterable[str], max_players: int | None = None) -> None:
        capacity = max_players or Config.ROOM_CAPACITY
        names: list[str] = []
        for raw in players:
            name = clean_text(raw)
            if not name:
                # Blank seats in the setup form are ignored.
                continue
            if not validate_name(name):
                raise ValidationError("invalid_name")
            if name in names:
                raise ValidationError("duplicate_player")
            names.append(name)

        if len(names) > capacity:
            raise ValidationError("room_over_capacity")

        self.room = Room(
            code=LOCAL_CODE,
            players=names,
            created_at_ms=now_ms(),
            max_players=capacity,
        )

    def _current_room(self) -> Room:
        return self.room

    def _apply(self, updates: Updates) -> Room:
        room = apply_updates(self.room, updates)
        room.check_invariants()
        self.room = room
        return room
