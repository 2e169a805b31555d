# devicehub/core/errors.py
from __future__ import annotations

from typing import Any, Dict, Optional


class DeviceApiError(Exception):
    """
    Базовая ошибка уровня запроса.
    На границе HTTP превращается в {"code": ..., "message": ...}.
    """
    code: int = 500
    message: str = "Internal error"

    def __init__(self, message: Optional[str] = None, code: Optional[int] = None) -> None:
        if message is not None:
            self.message = message
        if code is not None:
            self.code = int(code)
        super().__init__(self.message)

    def to_payload(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


class Unauthenticated(DeviceApiError):
    """Нет/битый токен или неверный секрет устройства."""
    code = 401
    message = "Unauthenticated"


class InternalError(DeviceApiError):
    """Несогласованность хранилища (например, запись не читается после вставки)."""
    code = 500
    message = "Internal error"


class Unconfigured(DeviceApiError):
    code = 500
    message = "Telemetry upstream is not configured"


class UpstreamUnavailable(DeviceApiError):
    code = 502
    message = "Telemetry upstream unavailable"

    def __init__(self, status: Optional[int] = None, message: Optional[str] = None) -> None:
        super().__init__(message, status)
        self.status = status
