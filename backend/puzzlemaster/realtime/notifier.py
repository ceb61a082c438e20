from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from ..game.models import Room


logger = logging.getLogger(__name__)

ROOM_UPDATE = "roomUpdate"

RoomCallback = Callable[[Room], None]


def _thread_task(target: Callable[[], None]) -> threading.Thread:
    thread = threading.Thread(target=target, name="room-notifier", daemon=True)
    thread.start()
    return thread


class RoomNotifier:
    """Polls one room on a fixed interval and pushes every snapshot to observers.

    There is no diffing: each tick emits the latest room, changed or not.
    ``start_task`` and ``sleep`` default to a daemon thread and
    ``time.sleep``; the Socket.IO layer passes its own so the loop runs as a
    green thread under eventlet.
    """

    def __init__(
        self,
        read_room: Callable[[], Room | None],
        interval: float = 1.0,
        start_task: Callable[..., object] | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.read_room = read_room
        self.interval = interval
        self._start_task = start_task or _thread_task
        self._sleep = sleep or time.sleep
        self._listeners: dict[str, list[RoomCallback]] = {}
        self._lock = threading.RLock()
        # Bumped on every start/cancel so a stale loop exits on its next check.
        self._generation = 0
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def on(self, event: str, callback: RoomCallback) -> None:
        with self._lock:
            self._listeners.setdefault(event, []).append(callback)

    def off(self, event: str, callback: RoomCallback | None = None) -> None:
        with self._lock:
            callbacks = self._listeners.get(event)
            if not callbacks:
                return
            if callback is None:
                del self._listeners[event]
                return
            if callback in callbacks:
                callbacks.remove(callback)
            if not callbacks:
                del self._listeners[event]

    def clear(self) -> None:
        with self._lock:
            self._listeners.clear()

    def listeners(self, event: str) -> list[RoomCallback]:
        with self._lock:
            return list(self._listeners.get(event, []))

    def emit(self, event: str, room: Room) -> None:
        for callback in self.listeners(event):
            try:
                callback(room)
            except Exception:
                logger.exception("room observer failed for %s on %s", event, room.code)

    def tick(self) -> Room | None:
        room = self.read_room()
        if room is not None:
            self.emit(ROOM_UPDATE, room)
        return room

    def start(self) -> bool:
        with self._lock:
            if self._running:
                return False
            self._running = True
            self._generation += 1
            generation = self._generation

        def _runner() -> None:
            while self._generation == generation:
                try:
                    self.tick()
                except Exception:
                    logger.exception("room poll failed")
                self._sleep(self.interval)

        self._start_task(_runner)
        return True

    def cancel(self) -> None:
        with self._lock:
            self._generation += 1
            self._running = False
