# devicehub/services/device_registry.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from devicehub.db.models import Device

log = logging.getLogger("device.registry")


class DeviceAlreadyExists(Exception):
    """Запись с таким внешним deviceId уже создана (проиграли гонку вставки)."""

    def __init__(self, secret_id: str) -> None:
        super().__init__(secret_id)
        self.secret_id = secret_id


@dataclass
class DeviceLocation:
    latitude: str
    longitude: str


@dataclass
class NewDevice:
    secret_id: str
    device_key: str           # уже захешированный секрет
    monitor_item: str
    custom_name: Optional[str] = None
    device_name: Optional[str] = None
    location: Optional[DeviceLocation] = None


class DeviceRegistry:
    """Устройства, ключ — внешний deviceId (devices.secret_id, UNIQUE)."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def find(self, secret_id: str) -> Optional[Device]:
        return (
            self.db.query(Device)
            .filter(Device.secret_id == secret_id)
            .limit(1)
            .first()
        )

    def create(self, new: NewDevice) -> None:
        """
        Вставка + commit. Уникальность гарантирует БД:
        при нарушении откатываемся и бросаем DeviceAlreadyExists.
        """
        loc = new.location
        row = Device(
            secret_id=new.secret_id,
            device_key=new.device_key,
            monitor_item=new.monitor_item,
            custom_name=new.custom_name,
            device_name=new.device_name,
            latitude=loc.latitude if loc else None,
            longitude=loc.longitude if loc else None,
        )
        self.db.add(row)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            log.info("device %s already created by a concurrent request", new.secret_id)
            raise DeviceAlreadyExists(new.secret_id)
        # дальше работаем только с тем, что прочитаем из БД
        self.db.expunge(row)
