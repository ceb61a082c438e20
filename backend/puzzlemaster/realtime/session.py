from __future__ import annotations

import logging
from typing import Callable
from urllib.parse import urlencode

from ..config import Config
from ..game.errors import RoomNotFound, ValidationError
from ..game.models import Room
from ..game.store import RoomStore
from ..game.turns import TurnActions, Updates
from ..utils.text import clean_text, normalize_code
from .notifier import ROOM_UPDATE, RoomCallback, RoomNotifier


logger = logging.getLogger(__name__)


def share_link(base_url: str, code: str) -> str:
    return f"{base_url.rstrip('/')}/?{urlencode({'room': code})}"


class RoomSession(TurnActions):
    """One client's handle on the room it has created or joined.

    Mutations go straight to the shared store and are pushed to this
    session's observers at once; other sessions pick them up on their next
    poll tick.
    """

    def __init__(
        self,
        store: RoomStore,
        poll_interval: float | None = None,
        start_task: Callable[..., object] | None = None,
        sleep: Callable[[float], None] | None = None,
        polling: bool = True,
        base_url: str = "",
    ) -> None:
        self.store = store
        self.polling = polling
        self.base_url = base_url or Config.PUBLIC_BASE_URL
        self.room_code: str | None = None
        self.player_name: str | None = None
        self.notifier = RoomNotifier(
            self.get_current_room,
            interval=poll_interval if poll_interval is not None else Config.POLL_INTERVAL_SEC,
            start_task=start_task,
            sleep=sleep,
        )

    # -- observers -------------------------------------------------------

    def on(self, event: str, callback: RoomCallback) -> None:
        self.notifier.on(event, callback)

    def off(self, event: str, callback: RoomCallback | None = None) -> None:
        self.notifier.off(event, callback)

    def _notify(self, room: Room) -> None:
        self.notifier.emit(ROOM_UPDATE, room)

    # -- membership ------------------------------------------------------

    def _attach(self, code: str, player_name: str) -> None:
        previous = (self.room_code, self.player_name)
        if previous[0] and previous != (code, player_name):
            self._leave_previous(*previous)
        self.room_code = code
        self.player_name = player_name
        if self.polling:
            self.notifier.start()

    def _leave_previous(self, code: str, player_name: str) -> None:
        try:
            self.store.leave_room(code, player_name)
        except RoomNotFound:
            # Deleted once its last player left.
            logger.info("room %s was already gone when %s moved on", code, player_name)

    def create_room(self, host_name: str) -> Room:
        room = self.store.create_room(host_name)
        self._attach(room.code, room.players[0])
        self._notify(room)
        return room

    def join_room(self, code: str, player_name: str) -> Room:
        room = self.store.join_room(code, player_name)
        self._attach(room.code, clean_text(player_name))
        # Re-read in case the previous name was just removed from this room.
        room = self.get_current_room() or room
        self._notify(room)
        return room

    def leave_room(self, code: str | None = None, player_name: str | None = None) -> Room | None:
        code = normalize_code(code) if code else self.room_code
        name = clean_text(player_name) if player_name else self.player_name
        if not code or not name:
            raise ValidationError("not_in_room")

        try:
            room = self.store.leave_room(code, name)
        except RoomNotFound:
            if code == self.room_code:
                self.disconnect()
            raise

        if room is not None:
            self._notify(room)
        if code == self.room_code:
            self.disconnect()
        return room

    def update_room(self, **fields) -> Room:
        code = self._require_code()
        room = self.store.update_room(code, **fields)
        self._notify(room)
        return room

    def get_current_room(self) -> Room | None:
        if not self.room_code:
            return None
        return self.store.get_room(self.room_code)

    def disconnect(self) -> None:
        self.notifier.cancel()
        self.notifier.clear()
        self.room_code = None
        self.player_name = None

    def share_link(self, code: str | None = None) -> str:
        return share_link(self.base_url, code or self.room_code or "")

    # -- round commands --------------------------------------------------

    def _require_code(self) -> str:
        if not self.room_code:
            raise ValidationError("not_in_room")
        return self.room_code

    def _current_room(self) -> Room:
        room = self.get_current_room()
        if room is None:
            raise RoomNotFound()
        return room

    def _apply(self, updates: Updates) -> Room:
        return self.update_room(**updates)

    def _check_actor(self, room: Room, role: str) -> None:
        if self.player_name not in room.players:
            raise ValidationError("not_in_room")
        if role == "master" and self.player_name != room.puzzle_master_name:
            raise ValidationError("only_puzzle_master")
        if role == "guesser" and self.player_name != room.current_guesser_name:
            raise ValidationError("not_your_turn")

    def _run(self, role: str, rule, *args, **kwargs) -> Room:
        code = self._require_code()

        def _checked(room: Room) -> Updates:
            self._check_actor(room, role)
            return rule(room, *args, **kwargs)

        room = self.store.apply(code, _checked)
        logger.debug("%s ran %s in %s -> %s", self.player_name, rule.__name__, code, room.phase)
        self._notify(room)
        return room
