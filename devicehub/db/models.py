# devicehub/db/models.py
from sqlalchemy.orm import declarative_base
from sqlalchemy import Column, Integer, String, Text, ForeignKey, UniqueConstraint

Base = declarative_base()


class Device(Base):
    __tablename__ = "devices"
    id = Column(Integer, primary_key=True)
    secret_id = Column(String(128), unique=True, index=True, nullable=False)  # внешний deviceId
    device_key = Column(Text, nullable=False)                                  # pbkdf2-хеш секрета
    monitor_item = Column(String(128), nullable=False)
    custom_name = Column(String(255), nullable=True)
    device_name = Column(String(255), nullable=True)
    # координаты строкой: без округления float по дороге
    latitude = Column(String(32), nullable=True)
    longitude = Column(String(32), nullable=True)


class DeviceOwner(Base):
    __tablename__ = "device_owners"
    __table_args__ = (UniqueConstraint("user_id", "device_id", name="uq_device_owner"),)
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, index=True, nullable=False)
    device_id = Column(Integer, ForeignKey("devices.id"), index=True, nullable=False)
