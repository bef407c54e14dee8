"""Device record."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from jump.core.errors import ErrorCategory, JumpError
from jump.core.mac import validate_mac

DEFAULT_WOL_PORT = 9


class InvalidDeviceError(JumpError):
    """Raised when a device record is malformed."""

    category = ErrorCategory.VALIDATION


class InvalidPortError(InvalidDeviceError):
    """Raised when a WoL port is not an integer in 1-65535."""

    def __init__(self, value: Any) -> None:
        self.value = value
        super().__init__(f"Invalid port: {value!r} (expected 1-65535)")


def parse_port(value: Any) -> int:
    """
    Coerce *value* to a UDP port number.

    Integers and decimal strings are accepted; booleans and floats are not.

    Raises:
        InvalidPortError: If *value* is not a port in 1-65535
    """
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise InvalidPortError(value)
    try:
        port = int(value)
    except ValueError as exc:
        raise InvalidPortError(value) from exc
    if not 1 <= port <= 65535:
        raise InvalidPortError(value)
    return port


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: str) -> datetime:
    # Files written by other tools may use a trailing "Z" for UTC.
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    ts = datetime.fromisoformat(value)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


@dataclass
class Device:
    """A host that can be woken with a magic packet."""

    name: str
    mac_address: str
    ip_address: Optional[str] = None
    port: int = DEFAULT_WOL_PORT
    description: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=_utcnow)

    @classmethod
    def create(
        cls,
        name: str,
        mac_address: str,
        ip_address: Optional[str] = None,
        port: int = DEFAULT_WOL_PORT,
        description: Optional[str] = None,
    ) -> "Device":
        """
        Build a new Device with a fresh id and creation timestamp.

        Raises:
            InvalidMacError: If ``mac_address`` is not a valid MAC
            InvalidPortError: If ``port`` is outside 1-65535
        """
        validate_mac(mac_address)
        return cls(
            name=name,
            mac_address=mac_address,
            ip_address=ip_address,
            port=parse_port(port),
            description=description,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "mac_address": self.mac_address,
            "ip_address": self.ip_address,
            "port": self.port,
            "description": self.description,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Device":
        """
        Rebuild a Device from its persisted form.

        Raises:
            KeyError: If a required field is missing
            ValueError: If ``created_at`` cannot be parsed
            InvalidPortError: If ``port`` is not a valid port
        """
        return cls(
            id=str(raw["id"]),
            name=str(raw["name"]),
            mac_address=str(raw["mac_address"]),
            ip_address=raw.get("ip_address"),
            port=parse_port(raw.get("port", DEFAULT_WOL_PORT)),
            description=raw.get("description"),
            created_at=_parse_timestamp(str(raw["created_at"])),
        )
