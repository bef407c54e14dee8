"""Pydantic request/response models for the jump API."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from jump.core.models import Device


class DeviceResponse(BaseModel):
    id: str
    name: str
    mac_address: str
    ip_address: Optional[str]
    port: int
    description: Optional[str]
    created_at: datetime

    @classmethod
    def from_device(cls, device: Device) -> "DeviceResponse":
        return cls(
            id=device.id,
            name=device.name,
            mac_address=device.mac_address,
            ip_address=device.ip_address,
            port=device.port,
            description=device.description,
            created_at=device.created_at,
        )


class CreateDeviceRequest(BaseModel):
    name: str = Field(examples=["Gaming PC"])
    mac_address: str = Field(examples=["00:11:22:33:44:55"])
    ip_address: Optional[str] = Field(default=None, examples=["192.168.1.100"])
    port: Optional[int] = Field(default=None, ge=1, le=65535, examples=[9])
    description: Optional[str] = None


class UpdateDeviceRequest(BaseModel):
    """Partial update: only fields present in the body are changed."""

    name: Optional[str] = None
    mac_address: Optional[str] = None
    ip_address: Optional[str] = None
    port: Optional[int] = Field(default=None, ge=1, le=65535)
    description: Optional[str] = None


class ImportDeviceRequest(CreateDeviceRequest):
    pass


class ExportedDevice(BaseModel):
    name: str
    mac_address: str
    port: int
    ip_address: Optional[str]
    description: Optional[str]


class WakeResponse(BaseModel):
    success: bool
    message: str
    device_name: str


class ArpLookupRequest(BaseModel):
    ip: str = Field(examples=["192.168.1.100"])


class ArpLookupResponse(BaseModel):
    mac: str


class ErrorResponse(BaseModel):
    status: str = "error"
    message: str
