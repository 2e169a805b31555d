# devicehub/core/validate_cfg.py
from __future__ import annotations
from typing import Dict, Any, Optional

ALLOWED_URL_SCHEMES = ("http://", "https://")


def _as_int(v, name, min_: Optional[int] = None, max_: Optional[int] = None) -> int:
    if isinstance(v, bool):
        raise ValueError(f"{name}: ожидается целое, получено {v!r}")
    try:
        iv = int(v)
    except Exception:
        raise ValueError(f"{name}: ожидается целое, получено {v!r}")
    if min_ is not None and iv < min_:
        raise ValueError(f"{name}: должно быть ≥ {min_} (получено {iv})")
    if max_ is not None and iv > max_:
        raise ValueError(f"{name}: должно быть ≤ {max_} (получено {iv})")
    return iv


def _as_float(v, name, min_: Optional[float] = None) -> float:
    if isinstance(v, bool):
        raise ValueError(f"{name}: ожидается число, получено {v!r}")
    try:
        fv = float(v)
    except Exception:
        raise ValueError(f"{name}: ожидается число, получено {v!r}")
    if min_ is not None and fv < min_:
        raise ValueError(f"{name}: должно быть ≥ {min_} (получено {fv})")
    return fv


def _section(cfg: Dict[str, Any], name: str) -> Dict[str, Any]:
    sec = cfg.get(name, {})
    if sec is None:
        return {}
    if not isinstance(sec, dict):
        raise ValueError(f"{name}: должен быть объектом")
    return sec


def validate_cfg(cfg: Dict[str, Any]) -> None:
    """Бросает ValueError с понятным текстом, если конфиг некорректен."""
    if not isinstance(cfg, dict):
        raise ValueError("корневой YAML должен быть объектом")

    # ─── db ───
    db = _section(cfg, "db")
    if "url" in db:
        url = str(db.get("url") or "").strip()
        if not url:
            raise ValueError("db.url: не должен быть пустым (например sqlite:///./data/devices.db)")

    # ─── telemetry ───
    tel = _section(cfg, "telemetry")
    base_url = tel.get("base_url")
    if base_url:
        s = str(base_url).strip()
        if not s.startswith(ALLOWED_URL_SCHEMES):
            raise ValueError(f"telemetry.base_url: ожидается http(s)://..., получено {s!r}")
    if "timeout_s" in tel:
        timeout = _as_float(tel["timeout_s"], "telemetry.timeout_s", 0.0)
        if timeout <= 0:
            raise ValueError("telemetry.timeout_s: должно быть > 0")

    # ─── security ───
    sec = _section(cfg, "security")
    if "hash_rounds" in sec:
        _as_int(sec["hash_rounds"], "security.hash_rounds", 1000)
