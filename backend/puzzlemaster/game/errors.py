from __future__ import annotations


class GameError(Exception):
    """Base class for user-correctable game errors.

    ``error`` is the machine-readable code sent to clients, ``status`` the
    HTTP status used by the REST routes.
    """

    error = "game_error"
    status = 400

    def __init__(self, error: str | None = None, message: str | None = None) -> None:
        if error:
            self.error = error
        super().__init__(message or self.error)


class RoomNotFound(GameError):
    error = "room_not_found"
    status = 404


class RoomFull(GameError):
    error = "room_full"
    status = 409


class ValidationError(GameError):
    error = "invalid_payload"
    status = 400
