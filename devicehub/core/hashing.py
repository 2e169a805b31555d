# devicehub/core/hashing.py
from __future__ import annotations

from typing import Optional

from passlib.hash import pbkdf2_sha256


class SecretHasher:
    """
    Хеширование секретов устройств (pbkdf2_sha256, соль внутри digest'а).
    Открытый секрет нигде не хранится и не логируется.
    """

    def __init__(self, rounds: Optional[int] = None) -> None:
        self._scheme = pbkdf2_sha256.using(rounds=rounds) if rounds else pbkdf2_sha256

    def hash(self, plaintext: str) -> str:
        return self._scheme.hash(plaintext)

    def verify(self, plaintext: str, digest: Optional[str]) -> bool:
        if not digest:
            return False
        try:
            return bool(self._scheme.verify(plaintext, digest))
        except (ValueError, TypeError):
            # битый digest в БД — для вызывающего это просто «неверный секрет»
            return False
