from __future__ import annotations

from ..config import Config


def clean_text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def validate_name(name: str, max_length: int | None = None) -> bool:
    n = clean_text(name)
    if not n:
        return False
    if len(n) > (max_length or Config.MAX_NAME_LENGTH):
        return False
    # Avoid obvious HTML/script injection.
    if "<" in n or ">" in n:
        return False
    # No control characters.
    for ch in n:
        if ord(ch) < 32:
            return False
    return True


def normalize_code(code) -> str:
    return clean_text(code).upper()
