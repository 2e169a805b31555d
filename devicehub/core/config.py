# devicehub/core/config.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import Field, PrivateAttr
from pydantic_settings import BaseSettings

from devicehub.core.validate_cfg import validate_cfg

DEFAULT_DB_URL = "sqlite:///./data/devices.db"
DEFAULT_TELEMETRY_TIMEOUT_S = 10.0


class Settings(BaseSettings):
    # секрет подписи JWT; пустое значение = приложение не стартует
    jwt_secret: str = Field(default="", validation_alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")

    # адрес upstream-хранилища телеметрии; нет адреса — /latest отключён
    main_stream_url: Optional[str] = Field(default=None, validation_alias="MAIN_STREAM_URL")

    # явный URL БД перекрывает db.url из YAML
    database_url: Optional[str] = Field(default=None, validation_alias="DATABASE_URL")

    # путь к YAML (можно переопределить переменной окружения CONFIG_FILE)
    config_file: str = Field(default="config.yaml", validation_alias="CONFIG_FILE")

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # внутреннее хранилище загруженного YAML
    _cfg: Dict[str, Any] = PrivateAttr(default_factory=dict)
    _config_path: Path | None = PrivateAttr(default=None)

    # ───────── пути ─────────
    @property
    def config_path(self) -> Path:
        if self._config_path is None:
            p = Path(self.config_file)
            if not p.is_absolute():
                p = Path.cwd() / p
            self._config_path = p
        return self._config_path

    # ───────── YAML cfg ─────────
    @property
    def cfg(self) -> Dict[str, Any]:
        return self._cfg

    def load_yaml_config(self) -> None:
        p = self.config_path
        if p.exists():
            with open(p, "r", encoding="utf-8") as f:
                self._cfg = yaml.safe_load(f) or {}
                validate_cfg(self._cfg)  # выбросит ValueError, если что-то не так
        else:
            self._cfg = {}

    # ───────── удобные секции ─────────
    @property
    def telemetry(self) -> Dict[str, Any]:
        return self._cfg.get("telemetry", {}) or {}

    @property
    def security(self) -> Dict[str, Any]:
        return self._cfg.get("security", {}) or {}

    @property
    def db_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (self._cfg.get("db", {}) or {}).get("url", DEFAULT_DB_URL)

    @property
    def telemetry_base_url(self) -> Optional[str]:
        url = self.main_stream_url or self.telemetry.get("base_url") or None
        if url is None:
            return None
        url = str(url).strip().rstrip("/")
        return url or None

    @property
    def telemetry_timeout_s(self) -> float:
        return float(self.telemetry.get("timeout_s", DEFAULT_TELEMETRY_TIMEOUT_S))

    @property
    def hash_rounds(self) -> Optional[int]:
        rounds = self.security.get("hash_rounds")
        return int(rounds) if rounds is not None else None


settings = Settings()
