# devicehub/services/ownership.py
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from devicehub.db.models import DeviceOwner

log = logging.getLogger("device.ownership")


class OwnershipLedger:
    """Связи пользователь ↔ устройство; пара (user_id, device_id) уникальна."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def exists(self, user_id: int, device_id: int) -> bool:
        row = (
            self.db.query(DeviceOwner.id)
            .filter(DeviceOwner.user_id == user_id, DeviceOwner.device_id == device_id)
            .limit(1)
            .first()
        )
        return row is not None

    def link(self, user_id: int, device_id: int) -> bool:
        """
        Гарантирует наличие связи. True — создали сейчас, False — уже была
        (в т.ч. параллельный запрос успел вставить её первым).
        """
        if self.exists(user_id, device_id):
            return False
        self.db.add(DeviceOwner(user_id=user_id, device_id=device_id))
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            log.info("owner link user=%s device=%s already exists", user_id, device_id)
            return False
        return True
