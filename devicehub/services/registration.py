# devicehub/services/registration.py
"""
Регистрация устройства от имени пользователя.

Порядок шагов фиксирован:
  1) токен -> user_id;
  2) устройство по внешнему deviceId: нет — создаём, есть — сверяем секрет;
  3) связь user ↔ device (идемпотентно).

Trust-on-first-use: секрет устройства задаёт ПЕРВЫЙ успешный регистратор.
Все последующие (тот же пользователь или другой) обязаны предъявить тот же
секрет. Это известная слабость модели, её не «чиним» без продуктового решения.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from devicehub.core.auth import InvalidToken, TokenClaims, TokenVerifier, get_bearer_token
from devicehub.core.errors import InternalError, Unauthenticated
from devicehub.core.hashing import SecretHasher
from devicehub.db.models import Device
from devicehub.services.device_registry import (
    DeviceAlreadyExists,
    DeviceLocation,
    DeviceRegistry,
    NewDevice,
)
from devicehub.services.ownership import OwnershipLedger

log = logging.getLogger("device.register")

MSG_MISSING_TOKEN = "Missing Authorization header"
MSG_INVALID_TOKEN = "Invalid or expired token"
MSG_INVALID_SECRET = "Invalid device secret"
MSG_REGISTER_FAILED = "Failed to register device"


@dataclass
class RegistrationRequest:
    device_id: str
    device_secret: str
    monitor_item: str
    custom_name: Optional[str] = None
    location: Optional[DeviceLocation] = None


@dataclass
class RegistrationResult:
    device_pk: int
    created_device: bool
    linked_owner: bool
    code: int = 200
    message: str = "ok"

    def to_payload(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


class RegistrationCoordinator:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        verifier: TokenVerifier,
        hasher: SecretHasher,
    ) -> None:
        self._session_factory = session_factory
        self._verifier = verifier
        self._hasher = hasher

    # --------------------------------------------------------------------- #
    # 1. аутентификация
    # --------------------------------------------------------------------- #
    def authenticate(self, authorization: Optional[str]) -> TokenClaims:
        token = get_bearer_token(authorization)
        if not token:
            raise Unauthenticated(MSG_MISSING_TOKEN)
        try:
            return self._verifier.verify(token)
        except InvalidToken as e:
            log.info("token rejected: %s", e)
            raise Unauthenticated(MSG_INVALID_TOKEN)

    # --------------------------------------------------------------------- #
    # публичный метод
    # --------------------------------------------------------------------- #
    def register(self, authorization: Optional[str], req: RegistrationRequest) -> RegistrationResult:
        claims = self.authenticate(authorization)

        with self._session_factory() as db:
            registry = DeviceRegistry(db)
            owners = OwnershipLedger(db)

            device, created = self._resolve_device(registry, req)
            # после commit в link() объект протухнет — pk берём заранее
            device_pk = int(device.id)
            linked = owners.link(claims.user_id, device_pk)

        log.info(
            "device %s registered for user=%s (new_device=%s, new_link=%s, token_exp=%s)",
            req.device_id, claims.user_id, created, linked, claims.expires_at,
        )
        return RegistrationResult(device_pk=device_pk, created_device=created, linked_owner=linked)

    # --------------------------------------------------------------------- #
    # 2. устройство
    # --------------------------------------------------------------------- #
    def _resolve_device(self, registry: DeviceRegistry, req: RegistrationRequest) -> tuple[Device, bool]:
        existing = registry.find(req.device_id)
        if existing is not None:
            self._check_secret(existing, req)
            return existing, False

        new = NewDevice(
            secret_id=req.device_id,
            device_key=self._hasher.hash(req.device_secret),
            monitor_item=req.monitor_item,
            custom_name=req.custom_name,
            location=req.location,
        )
        try:
            registry.create(new)
        except DeviceAlreadyExists:
            # параллельная первая регистрация успела раньше — работаем с её записью
            winner = registry.find(req.device_id)
            if winner is None:
                log.error("device %s: duplicate key but row is not readable", req.device_id)
                raise InternalError(MSG_REGISTER_FAILED)
            self._check_secret(winner, req)
            return winner, False

        created = registry.find(req.device_id)
        if created is None:
            log.error("device %s: inserted row not found on read-back", req.device_id)
            raise InternalError(MSG_REGISTER_FAILED)
        return created, True

    def _check_secret(self, device: Device, req: RegistrationRequest) -> None:
        if not self._hasher.verify(req.device_secret, device.device_key or ""):
            log.warning("device %s: secret mismatch", req.device_id)
            raise Unauthenticated(MSG_INVALID_SECRET)
