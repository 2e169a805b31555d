# devicehub/api/routes/device.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Header, Request
from pydantic import BaseModel, ConfigDict, Field

from devicehub.services.device_registry import DeviceLocation
from devicehub.services.registration import RegistrationRequest

router = APIRouter(prefix="/api/v2/device")


# ─────────────────────────────────────────────────────────────────────────────
# Модели запросов/ответов (имена полей — как в wire-формате клиента)
# ─────────────────────────────────────────────────────────────────────────────

class _Wire(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class DeviceLocationDTO(_Wire):
    latitude: Optional[str] = None
    # «longtitude» — так поле называется у существующих клиентов
    longitude: Optional[str] = Field(None, alias="longtitude")


class RegisterDTO(_Wire):
    device_id: str = Field(..., alias="deviceId")
    device_secret_key: str = Field(..., alias="deviceSecretKey")
    monitor_item: str = Field(..., alias="monitorItem")
    custom_name: Optional[str] = Field(None, alias="customName")
    device_location: Optional[DeviceLocationDTO] = Field(None, alias="deviceLocation")


class RegisterResponse(BaseModel):
    code: int
    message: str


class HistoryDTO(_Wire):
    device_id: str = Field(..., alias="deviceId")
    device_secret_key: str = Field(..., alias="deviceSecretKey")
    # опечатка «minitorItem» сохранена: так шлёт фронт
    monitor_item: str = Field(..., alias="minitorItem")
    start: int
    end: int


class BatchDeviceDTO(_Wire):
    device_id: str = Field(..., alias="deviceId")
    device_secret_key: str = Field(..., alias="deviceSecretKey")


class BatchHistoryDTO(_Wire):
    device_list: List[BatchDeviceDTO] = Field(..., alias="deviceList")
    monitor_item: List[str] = Field(..., alias="monitorItem")
    start: int
    end: int


class LatestDTO(_Wire):
    device_id: str = Field(..., alias="deviceId")
    device_secret_key: str = Field(..., alias="deviceSecretKey")
    monitor_item: str = Field(..., alias="monitorItem")


class LatestResponse(BaseModel):
    code: int
    monitorValue: str
    monitorTime: str


class DeviceDataItem(BaseModel):
    monitorItem: str
    monitorTime: str
    monitorValue: str
    nodeId: Optional[str] = None


class DeviceResponseItem(BaseModel):
    data: List[DeviceDataItem]
    dataStatus: int
    deviceId: str
    deviceStatus: int
    id: int
    customname: Optional[str] = None
    name: str
    sensorNumber: int


class DeviceResponse(BaseModel):
    code: int
    data: List[DeviceResponseItem]
    message: str
    status: str


def build_empty_response(device_id: str) -> DeviceResponse:
    """История пока не реализована: отдаём пустой контейнер нужной формы."""
    return DeviceResponse(
        code=0,
        data=[
            DeviceResponseItem(
                data=[],
                dataStatus=0,
                deviceId=device_id,
                deviceStatus=0,
                id=0,
                customname="",
                name="",
                sensorNumber=0,
            )
        ],
        message="ok",
        status="ok",
    )


# ─────────────────────────────────────────────────────────────────────────────
# API
# ─────────────────────────────────────────────────────────────────────────────

@router.post("/register", response_model=RegisterResponse)
def register_device(
    dto: RegisterDTO,
    request: Request,
    authorization: Optional[str] = Header(None),
):
    """
    Регистрация устройства текущим пользователем (Bearer-токен).
    Ошибки (401/500) отдаёт обработчик DeviceApiError в виде {code, message}.
    """
    loc = None
    # координаты сохраняем только парой
    if dto.device_location and dto.device_location.latitude and dto.device_location.longitude:
        loc = DeviceLocation(
            latitude=dto.device_location.latitude,
            longitude=dto.device_location.longitude,
        )
    result = request.app.state.registration.register(
        authorization,
        RegistrationRequest(
            device_id=dto.device_id,
            device_secret=dto.device_secret_key,
            monitor_item=dto.monitor_item,
            custom_name=dto.custom_name,
            location=loc,
        ),
    )
    return result.to_payload()


@router.post("/", response_model=DeviceResponse)
def device_history(dto: HistoryDTO):
    return build_empty_response(dto.device_id)


@router.post("/batch", response_model=DeviceResponse)
def device_history_batch(dto: BatchHistoryDTO):
    first = dto.device_list[0] if dto.device_list else None
    return build_empty_response(first.device_id if first else "")


@router.post("/latest", response_model=LatestResponse)
def device_latest(dto: LatestDTO, request: Request):
    body = dto.model_dump(by_alias=True)
    return request.app.state.gateway.latest(body).to_payload()
