from __future__ import annotations

from typing import Any, List, Optional

import pytest
from fastapi.testclient import TestClient

from devicehub.core.auth import TokenConfig, TokenVerifier
from devicehub.core.config import Settings
from devicehub.core.hashing import SecretHasher
from devicehub.db.session import create_db_engine, init_db, make_session_factory
from devicehub.main import create_app
from devicehub.services.registration import RegistrationCoordinator
from devicehub.services.telemetry_gateway import TelemetryGateway

JWT_SECRET = "test-signing-secret-0123456789abcdef-0123456789abcdef-0123456789"

_NO_JSON = object()


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self) -> Any:
        if self._payload is _NO_JSON:
            raise ValueError("not json")
        return self._payload


class FakeHttp:
    """Подмена requests.Session: запоминает вызовы, отдаёт заготовленный ответ."""

    def __init__(self, response: Optional[FakeResponse] = None, exc: Optional[Exception] = None) -> None:
        self.response = response or FakeResponse(200, {"code": 200, "data": []})
        self.exc = exc
        self.calls: List[dict] = []

    def post(self, url: str, json: Any = None, timeout: Any = None) -> FakeResponse:
        self.calls.append({"url": url, "json": json, "timeout": timeout})
        if self.exc is not None:
            raise self.exc
        return self.response


@pytest.fixture()
def db_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'devices.db'}"


@pytest.fixture()
def settings(tmp_path, db_url) -> Settings:
    return Settings(
        JWT_SECRET=JWT_SECRET,
        DATABASE_URL=db_url,
        CONFIG_FILE=str(tmp_path / "absent.yaml"),
        MAIN_STREAM_URL=None,
    )


@pytest.fixture()
def verifier() -> TokenVerifier:
    return TokenVerifier(TokenConfig(secret=JWT_SECRET))


@pytest.fixture()
def session_factory(db_url):
    engine = create_db_engine(db_url)
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture()
def coordinator(session_factory, verifier) -> RegistrationCoordinator:
    return RegistrationCoordinator(session_factory, verifier, SecretHasher(rounds=1000))


@pytest.fixture()
def fake_http() -> FakeHttp:
    return FakeHttp()


@pytest.fixture()
def client(settings, fake_http):
    gateway = TelemetryGateway("http://upstream.test", timeout=2.0, http=fake_http)
    app = create_app(settings, gateway=gateway)
    with TestClient(app) as c:
        yield c


def bearer(verifier: TokenVerifier, user_id: int) -> str:
    return f"Bearer {verifier.issue(user_id)}"
