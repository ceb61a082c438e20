from __future__ import annotations

import logging
from typing import Any

from flask import current_app, request
from flask_socketio import SocketIO, emit, join_room, leave_room

from ..game.errors import GameError
from ..game.models import Room
from ..game.state import room_public_state
from ..game.store import RoomStore
from .notifier import ROOM_UPDATE
from .session import RoomSession


logger = logging.getLogger(__name__)


def register_socketio_handlers(socketio: SocketIO, store: RoomStore) -> None:
    sessions: dict[str, RoomSession] = {}

    def _session() -> RoomSession:
        sid = request.sid
        session = sessions.get(sid)
        if session is None:
            cfg = current_app.config
            session = RoomSession(
                store,
                poll_interval=cfg.get("POLL_INTERVAL_SEC", 1.0),
                start_task=socketio.start_background_task,
                sleep=socketio.sleep,
                polling=cfg.get("POLLING_ENABLED", True),
                base_url=cfg.get("PUBLIC_BASE_URL") or request.host_url,
            )
            sessions[sid] = session
        return session

    def _watch(sid: str, session: RoomSession) -> None:
        # Leaving clears observers, so register again before every create/join.
        session.off(ROOM_UPDATE)

        def _push(room: Room) -> None:
            socketio.emit("room:state", room_public_state(room, viewer=session.player_name), to=sid)

        session.on(ROOM_UPDATE, _push)

    def _payload(data) -> dict[str, Any]:
        return data if isinstance(data, dict) else {}

    def _fail(event: str, exc: GameError) -> dict:
        logger.warning("%s rejected for %s: %s", event, request.sid, exc.error)
        emit("room:error", {"error": exc.error})
        return {"ok": False, "error": exc.error}

    def _ok(session: RoomSession, room: Room | None, **extra) -> dict:
        # room:state itself is pushed by the session observer.
        state = room_public_state(room, viewer=session.player_name) if room else None
        return {"ok": True, "room": state, **extra}

    def _round_command(event: str, action) -> dict:
        session = _session()
        try:
            room = action(session)
        except GameError as exc:
            return _fail(event, exc)
        return _ok(session, room)

    @socketio.on("room:create")
    def room_create(data=None):
        payload = _payload(data)
        session = _session()
        previous = session.room_code
        _watch(request.sid, session)
        try:
            room = session.create_room(str(payload.get("name", "")))
        except GameError as exc:
            return _fail("room:create", exc)

        if previous:
            leave_room(previous)
        join_room(room.code)
        return _ok(session, room, roomCode=room.code, shareUrl=session.share_link(room.code))

    @socketio.on("room:join")
    def room_join(data=None):
        payload = _payload(data)
        session = _session()
        previous = session.room_code
        _watch(request.sid, session)
        try:
            room = session.join_room(str(payload.get("roomCode", "")), str(payload.get("name", "")))
        except GameError as exc:
            return _fail("room:join", exc)

        if previous and previous != room.code:
            leave_room(previous)
        join_room(room.code)
        return _ok(session, room, roomCode=room.code)

    @socketio.on("room:leave")
    def room_leave(data=None):
        session = _session()
        code = session.room_code
        try:
            room = session.leave_room()
        except GameError as exc:
            return _fail("room:leave", exc)

        if code:
            leave_room(code)
        return {"ok": True, "deleted": room is None}

    @socketio.on("game:start")
    def game_start(data=None):
        return _round_command("game:start", lambda s: s.start_game())

    @socketio.on("game:submit_word")
    def game_submit_word(data=None):
        payload = _payload(data)
        secret_word = str(payload.get("secretWord", ""))
        hint = str(payload.get("hint", ""))
        return _round_command("game:submit_word", lambda s: s.submit_word(secret_word, hint))

    @socketio.on("game:publish_clue")
    def game_publish_clue(data=None):
        return _round_command("game:publish_clue", lambda s: s.publish_clue())

    @socketio.on("guess:submit")
    def guess_submit(data=None):
        text = str(_payload(data).get("text", ""))
        return _round_command("guess:submit", lambda s: s.submit_guess(text))

    @socketio.on("guess:quit")
    def guess_quit(data=None):
        return _round_command("guess:quit", lambda s: s.quit_turn())

    @socketio.on("game:reveal")
    def game_reveal(data=None):
        return _round_command("game:reveal", lambda s: s.reveal_answer())

    @socketio.on("game:play_again")
    def game_play_again(data=None):
        return _round_command("game:play_again", lambda s: s.play_again())

    @socketio.on("disconnect")
    def on_disconnect(*args):
        session = sessions.pop(request.sid, None)
        if session is None:
            return
        if session.room_code:
            try:
                session.leave_room()
            except GameError as exc:
                logger.info("cleanup on disconnect for %s: %s", request.sid, exc.error)
        session.disconnect()
