from __future__ import annotations

import logging

from flask import Blueprint, current_app, jsonify, request

from ..game.errors import GameError, RoomNotFound
from ..game.state import room_public_state
from ..game.store import RoomStore
from ..realtime.session import share_link

bp = Blueprint("rooms", __name__)

logger = logging.getLogger(__name__)


def _store() -> RoomStore:
    return current_app.extensions["room_store"]


def _share_url(code: str) -> str:
    return share_link(current_app.config.get("PUBLIC_BASE_URL") or request.host_url, code)


@bp.errorhandler(GameError)
def handle_game_error(exc: GameError):
    logger.warning("%s %s rejected: %s", request.method, request.path, exc.error)
    return jsonify({"error": exc.error}), exc.status


@bp.post("/rooms")
def create_room():
    data = request.get_json(silent=True) or {}
    room = _store().create_room(str(data.get("hostName", "")))
    return jsonify({
        "roomCode": room.code,
        "room": room_public_state(room, viewer=room.players[0]),
        "shareUrl": _share_url(room.code),
    }), 201


@bp.get("/rooms/<code>")
def get_room(code: str):
    room = _store().get_room(code)
    if not room:
        raise RoomNotFound()
    return jsonify(room_public_state(room, viewer=request.args.get("viewer")))


@bp.post("/rooms/<code>/join")
def join_room(code: str):
    data = request.get_json(silent=True) or {}
    name = str(data.get("name", ""))
    room = _store().join_room(code, name)
    return jsonify(room_public_state(room, viewer=name.strip()))


@bp.post("/rooms/<code>/leave")
def leave_room(code: str):
    data = request.get_json(silent=True) or {}
    room = _store().leave_room(code, str(data.get("name", "")))
    return jsonify({"ok": True, "deleted": room is None})
