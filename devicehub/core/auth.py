# devicehub/core/auth.py
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import jwt

USER_ID_CLAIM = "id"


class InvalidToken(Exception):
    """Подпись/срок/формат токена не прошли проверку."""


@dataclass(frozen=True)
class TokenConfig:
    secret: str
    algorithm: str = "HS256"

    def __post_init__(self) -> None:
        if not self.secret or not self.secret.strip():
            raise ValueError("JWT secret is not configured (set JWT_SECRET)")


@dataclass(frozen=True)
class TokenClaims:
    """Проверенные claims; живут только в рамках запроса."""
    user_id: int
    expires_at: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "TokenClaims":
        uid = payload.get(USER_ID_CLAIM)
        # bool — подкласс int, но id пользователя из него не бывает
        if isinstance(uid, bool) or not isinstance(uid, int):
            raise InvalidToken(f"claim '{USER_ID_CLAIM}' must be an integer")
        exp = payload.get("exp")
        return cls(user_id=uid, expires_at=int(exp) if isinstance(exp, (int, float)) else None)


def get_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """'Bearer <token>' -> token; всё остальное -> None."""
    if not authorization:
        return None
    parts = authorization.split(" ")
    if len(parts) < 2 or parts[0] != "Bearer" or not parts[1]:
        return None
    return parts[1]


class TokenVerifier:
    def __init__(self, config: TokenConfig) -> None:
        self._config = config

    def verify(self, token: str) -> TokenClaims:
        try:
            payload = jwt.decode(token, self._config.secret, algorithms=[self._config.algorithm])
        except jwt.PyJWTError as e:
            raise InvalidToken(str(e)) from e
        if not isinstance(payload, dict):
            raise InvalidToken("token payload must be an object")
        return TokenClaims.from_payload(payload)

    def issue(self, user_id: int, expires_in: Optional[int] = 3600, **extra: Any) -> str:
        """Выпустить токен (dev-утилиты и тесты; в проде токены выдаёт сервис аккаунтов)."""
        payload: Dict[str, Any] = dict(extra)
        payload[USER_ID_CLAIM] = user_id
        if expires_in is not None:
            payload["exp"] = int(time.time()) + int(expires_in)
        return jwt.encode(payload, self._config.secret, algorithm=self._config.algorithm)
