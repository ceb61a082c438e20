import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    # Socket.IO
    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Storage: "memory" or "sqlite"
    ROOM_STORE = os.environ.get("ROOM_STORE", "memory")
    ROOM_DB_PATH = os.environ.get("ROOM_DB_PATH", "rooms.db")

    # Rooms
    ROOM_CAPACITY = int(os.environ.get("ROOM_CAPACITY", "4"))
    ROOM_CODE_PREFIX = os.environ.get("ROOM_CODE_PREFIX", "GAME-")
    ROOM_CODE_LENGTH = int(os.environ.get("ROOM_CODE_LENGTH", "4"))
    MAX_NAME_LENGTH = int(os.environ.get("MAX_NAME_LENGTH", "16"))
    PUBLIC_BASE_URL = os.environ.get("PUBLIC_BASE_URL", "")

    # Game
    MIN_PLAYERS = int(os.environ.get("MIN_PLAYERS", "2"))

    # Room state polling
    POLL_INTERVAL_SEC = float(os.environ.get("POLL_INTERVAL_SEC", "1.0"))
    POLLING_ENABLED = os.environ.get("POLLING_ENABLED", "1") == "1"
