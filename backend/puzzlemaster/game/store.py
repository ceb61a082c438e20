from __future__ import annotations

import json
import logging
import random
import string
import time
from threading import RLock
from typing import Callable

from ..config import Config
from ..storage.backends import KeyValueBackend, MemoryBackend
from ..utils.text import clean_text, normalize_code, validate_name
from .errors import RoomFull, RoomNotFound, ValidationError
from .models import Room
from .turns import apply_updates, drop_player


logger = logging.getLogger(__name__)

ROOM_KEY_PREFIX = "room_"
INDEX_KEY = "room_index"
CODE_ALPHABET = string.ascii_uppercase + string.digits

# The roster is fixed once a round starts.
JOINABLE_PHASES = ("setup", "results")


def now_ms() -> int:
    return int(time.time() * 1000)


def room_key(code: str) -> str:
    return f"{ROOM_KEY_PREFIX}{code}"


class RoomStore:
    """Room records kept in a key-value backend, keyed by room code.

    Every public method runs under one re-entrant lock and validates the
    resulting room before writing, so a failing call leaves the backend as
    it was.
    """

    def __init__(self, backend: KeyValueBackend | None = None, config=Config) -> None:
        self.backend = backend if backend is not None else MemoryBackend()
        self.capacity = int(getattr(config, "ROOM_CAPACITY", Config.ROOM_CAPACITY))
        self.code_prefix = getattr(config, "ROOM_CODE_PREFIX", Config.ROOM_CODE_PREFIX)
        self.code_length = int(getattr(config, "ROOM_CODE_LENGTH", Config.ROOM_CODE_LENGTH))
        self.max_name_length = int(getattr(config, "MAX_NAME_LENGTH", Config.MAX_NAME_LENGTH))
        self._lock = RLock()
        self.recover()

    # -- index -----------------------------------------------------------

    def room_codes(self) -> list[str]:
        with self._lock:
            raw = self.backend.get(INDEX_KEY)
            if not raw:
                return []
            return list(json.loads(raw))

    def _write_index(self, codes: list[str]) -> None:
        self.backend.put(INDEX_KEY, json.dumps(codes))

    def recover(self) -> list[str]:
        """Reconcile the code index with the records actually stored."""
        with self._lock:
            stored = [
                k[len(ROOM_KEY_PREFIX):]
                for k in self.backend.keys(ROOM_KEY_PREFIX)
                if k != INDEX_KEY
            ]
            indexed = self.room_codes()
            codes = [c for c in indexed if c in stored]
            codes.extend(c for c in stored if c not in codes)
            if codes != indexed:
                logger.info("room index recovered: %d room(s)", len(codes))
                self._write_index(codes)
            return codes

    # -- records ---------------------------------------------------------

    def _load(self, code: str) -> Room | None:
        raw = self.backend.get(room_key(code))
        if raw is None:
            return None
        return Room.from_record(json.loads(raw))

    def _save(self, room: Room) -> Room:
        room.check_invariants()
        record = room.to_record()
        saved = Room.from_record(record)
        self.backend.put(room_key(room.code), json.dumps(record))
        codes = self.room_codes()
        if room.code not in codes:
            codes.append(room.code)
            self._write_index(codes)
        return saved

    def _require(self, code: str) -> Room:
        room = self._load(normalize_code(code))
        if room is None:
            raise RoomNotFound()
        return room

    def _clean_name(self, name: str) -> str:
        n = clean_text(name)
        if not validate_name(n, max_length=self.max_name_length):
            raise ValidationError("invalid_name")
        return n

    def generate_code(self) -> str:
        with self._lock:
            while True:
                code = self.code_prefix + "".join(random.choices(CODE_ALPHABET, k=self.code_length))
                if self.backend.get(room_key(code)) is None:
                    return code

    def get_room(self, code: str) -> Room | None:
        with self._lock:
            return self._load(normalize_code(code))

    def list_rooms(self) -> list[Room]:
        with self._lock:
            rooms = []
            for code in self.room_codes():
                room = self._load(code)
                if room is not None:
                    rooms.append(room)
            return rooms

    def create_room(self, host_name: str) -> Room:
        with self._lock:
            host = self._clean_name(host_name)
            room = Room(
                code=self.generate_code(),
                players=[host],
                phase="setup",
                created_at_ms=now_ms(),
                max_players=self.capacity,
            )
            self._save(room)
            logger.info("room %s created by %s", room.code, host)
            return room

    def join_room(self, code: str, player_name: str) -> Room:
        with self._lock:
            name = self._clean_name(player_name)
            room = self._require(code)
            if name in room.players:
                return room
            if room.phase not in JOINABLE_PHASES:
                raise ValidationError("game_in_progress")
            if len(room.players) >= room.max_players:
                raise RoomFull()

            room = apply_updates(room, {"players": [*room.players, name]})
            self._save(room)
            logger.info("%s joined room %s (%d/%d)", name, room.code, len(room.players), room.max_players)
            return room

    def leave_room(self, code: str, player_name: str) -> Room | None:
        """Remove a player; returns the updated room, or None once it is deleted."""
        with self._lock:
            name = clean_text(player_name)
            room = self._require(code)
            updates = drop_player(room, name)
            if not updates:
                return room

            room = apply_updates(room, updates)
            if not room.players:
                self.delete_room(room.code)
                return None

            self._save(room)
            logger.info("%s left room %s", name, room.code)
            return room

    def update_room(self, code: str, /, **fields) -> Room:
        with self._lock:
            room = self._require(code)
            if not fields:
                return room
            unknown = set(fields) - Room.field_names()
            if unknown or "code" in fields:
                raise ValidationError("invalid_field")

            room = apply_updates(room, fields)
            return self._save(room)

    def apply(self, code: str, rule: Callable[[Room], dict]) -> Room:
        """Evaluate ``rule`` against the stored room and persist its updates atomically."""
        with self._lock:
            room = self._require(code)
            updates = rule(room)
            if not updates:
                return room
            return self._save(apply_updates(room, updates))

    def delete_room(self, code: str) -> bool:
        with self._lock:
            code = normalize_code(code)
            deleted = self.backend.delete(room_key(code))
            codes = self.room_codes()
            if code in codes:
                codes.remove(code)
                self._write_index(codes)
            if deleted:
                logger.info("room %s deleted", code)
            return deleted
