# devicehub/main.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from devicehub.core.auth import TokenConfig, TokenVerifier
from devicehub.core.config import Settings, settings as default_settings
from devicehub.core.errors import DeviceApiError, InternalError
from devicehub.core.hashing import SecretHasher
from devicehub.db.session import create_db_engine, init_db, make_session_factory
from devicehub.services.registration import MSG_REGISTER_FAILED, RegistrationCoordinator
from devicehub.services.telemetry_gateway import TelemetryGateway

from devicehub.api.routes.device import router as device_router
from devicehub.api.routes.health import router as health_router

log = logging.getLogger("web")


def create_app(
    settings: Optional[Settings] = None,
    gateway: Optional[TelemetryGateway] = None,
) -> FastAPI:
    """
    Собрать приложение. Без JWT_SECRET не стартуем:
    TokenConfig бросит ValueError ещё до первого запроса.
    """
    s = settings or default_settings

    # 1) грузим YAML
    s.load_yaml_config()

    # 2) БД и таблицы
    engine = create_db_engine(s.db_url)
    init_db(engine)
    session_factory = make_session_factory(engine)

    # 3) сервисы
    verifier = TokenVerifier(TokenConfig(secret=s.jwt_secret, algorithm=s.jwt_algorithm))
    hasher = SecretHasher(rounds=s.hash_rounds)
    if gateway is None:
        gateway = TelemetryGateway(s.telemetry_base_url, timeout=s.telemetry_timeout_s)
    if not gateway.configured:
        log.warning("MAIN_STREAM_URL is not set: /latest will answer with a configuration error")

    app = FastAPI(title="devicehub")
    app.state.settings = s
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.verifier = verifier
    app.state.gateway = gateway
    app.state.registration = RegistrationCoordinator(session_factory, verifier, hasher)

    # ─── роутеры ───
    app.include_router(device_router, tags=["device"])
    app.include_router(health_router, tags=["service"])

    # ─── ошибки: всегда JSON с числовым code ───
    @app.exception_handler(DeviceApiError)
    async def _device_api_error(request: Request, exc: DeviceApiError):
        return JSONResponse(status_code=200, content=exc.to_payload())

    @app.exception_handler(SQLAlchemyError)
    async def _storage_error(request: Request, exc: SQLAlchemyError):
        log.exception("storage failure on %s", request.url.path)
        msg = MSG_REGISTER_FAILED if request.url.path.endswith("/register") else None
        return JSONResponse(status_code=200, content=InternalError(msg).to_payload())

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        msg = f"{where}: {first.get('msg', 'invalid request')}" if where else "invalid request"
        return JSONResponse(status_code=422, content={"code": 422, "message": msg})

    @app.on_event("shutdown")
    def _shutdown():
        engine.dispose()

    log.info("devicehub ready (db=%s)", engine.url.render_as_string(hide_password=True))
    return app
