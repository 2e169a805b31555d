# devicehub/services/telemetry_gateway.py
"""
Read-through шлюз к upstream-хранилищу телеметрии (операция "latest").

Вызывающий ВСЕГДА получает корректный LatestReading: ошибки upstream
превращаются в пустое чтение с кодом, а не в исключение.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from devicehub.core.errors import DeviceApiError, Unconfigured, UpstreamUnavailable

log = logging.getLogger("device.gateway")

TRANSPORT_FAILURE_CODE = 502


@dataclass
class LatestReading:
    code: int
    monitor_value: str = ""
    monitor_time: str = ""

    @classmethod
    def empty(cls, code: int) -> "LatestReading":
        return cls(code=int(code))

    def to_payload(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "monitorValue": self.monitor_value,
            "monitorTime": self.monitor_time,
        }


def first_populated_sample(entries: Any) -> Optional[Dict[str, Any]]:
    """
    Правило выбора: первая запись, у которой data — непустой список,
    и из неё первый сэмпл. Остальные устройства/сэмплы отбрасываются
    (ответ upstream с несколькими устройствами сводится к одному значению).
    """
    if not isinstance(entries, list):
        return None
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        samples = entry.get("data")
        if isinstance(samples, list) and samples:
            first = samples[0]
            return first if isinstance(first, dict) else {}
    return None


def _as_text(v: Any) -> str:
    return "" if v is None else str(v)


class TelemetryGateway:
    def __init__(
        self,
        base_url: Optional[str],
        timeout: float = 10.0,
        http: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/") if base_url else None
        self.timeout = timeout
        self._http = http or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    def latest(self, body: Dict[str, Any]) -> LatestReading:
        try:
            payload, status = self._fetch_latest(body)
        except DeviceApiError as e:
            return LatestReading.empty(e.code)
        return self._project(payload, status)

    # --------------------------------------------------------------------- #

    def _fetch_latest(self, body: Dict[str, Any]) -> tuple[Dict[str, Any], int]:
        if not self.configured:
            log.warning("latest: telemetry upstream is not configured (MAIN_STREAM_URL)")
            raise Unconfigured()

        url = f"{self.base_url}/latest"
        try:
            r = self._http.post(url, json=body, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            log.error("latest: upstream timeout after %ss: %s", self.timeout, e)
            raise UpstreamUnavailable(TRANSPORT_FAILURE_CODE, "upstream timeout")
        except requests.exceptions.RequestException as e:
            log.error("latest: upstream transport error: %s", e)
            raise UpstreamUnavailable(TRANSPORT_FAILURE_CODE)

        if not 200 <= r.status_code < 300:
            log.error("latest: upstream HTTP %s: %s", r.status_code, (r.text or "")[:500])
            raise UpstreamUnavailable(r.status_code)

        try:
            payload = r.json()
        except ValueError:
            log.error("latest: upstream returned non-JSON body (HTTP %s)", r.status_code)
            raise UpstreamUnavailable(TRANSPORT_FAILURE_CODE, "upstream returned invalid JSON")
        if not isinstance(payload, dict):
            log.error("latest: upstream JSON is not an object: %r", type(payload).__name__)
            raise UpstreamUnavailable(TRANSPORT_FAILURE_CODE, "upstream returned invalid JSON")
        return payload, r.status_code

    @staticmethod
    def _project(payload: Dict[str, Any], status: int) -> LatestReading:
        code = payload.get("code")
        if isinstance(code, bool) or not isinstance(code, int):
            code = status
        sample = first_populated_sample(payload.get("data"))
        if sample is None:
            return LatestReading.empty(code)
        return LatestReading(
            code=code,
            monitor_value=_as_text(sample.get("monitorValue")),
            monitor_time=_as_text(sample.get("monitorTime")),
        )
