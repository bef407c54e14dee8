"""Device operations shared by the HTTP API and the CLI."""

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Optional

from jump.core.mac import validate_mac
from jump.core.models import DEFAULT_WOL_PORT, Device, InvalidDeviceError, parse_port
from jump.core.storage import DeviceNotFoundError, DeviceStore
from jump.core.wol import send_wol

logger = logging.getLogger(__name__)

# Fields a caller may replace on an existing device.
_UPDATABLE = ("name", "mac_address", "ip_address", "port", "description")


def list_devices(store: DeviceStore) -> list[Device]:
    return store.get_all()


def get_device(store: DeviceStore, device_id: str) -> Device:
    device = store.get(device_id)
    if device is None:
        raise DeviceNotFoundError(device_id)
    return device


def create_device(
    store: DeviceStore,
    name: str,
    mac_address: str,
    ip_address: Optional[str] = None,
    port: Optional[int] = None,
    description: Optional[str] = None,
    default_port: int = DEFAULT_WOL_PORT,
) -> Device:
    """
    Validate and store a new device.

    Args:
        store: Target device store
        name: Display name
        mac_address: MAC address in any accepted notation
        ip_address: Optional informational IP address
        port: WoL UDP port; ``default_port`` when None
        description: Optional free text
        default_port: Port used when the caller gives none

    Returns:
        The stored Device, with its generated id and timestamp

    Raises:
        InvalidMacError: If the MAC is malformed
        StorageIOError: If persisting fails (the device is still in memory)
    """
    device = Device.create(
        name=name,
        mac_address=mac_address,
        ip_address=ip_address,
        port=port if port is not None else default_port,
        description=description,
    )
    store.add(device)
    logger.info("Device created: %s (%s)", device.name, device.id)
    return device


def update_device(store: DeviceStore, device_id: str, changes: Mapping[str, Any]) -> Device:
    """
    Apply a partial update to a device.

    Keys missing from *changes* keep their current value; an explicit None
    clears ``ip_address`` or ``description``. ``id`` and ``created_at`` are
    never taken from *changes*.

    Raises:
        DeviceNotFoundError: If no device has that id
        InvalidMacError: If a new MAC is malformed
        InvalidPortError: If a new port is out of range
    """
    fields = {k: changes[k] for k in _UPDATABLE if k in changes}
    if fields.get("name") is None:
        fields.pop("name", None)
    if fields.get("port") is None:
        fields.pop("port", None)
    if "mac_address" in fields:
        if fields["mac_address"] is None:
            fields.pop("mac_address")
        else:
            validate_mac(fields["mac_address"])
    if "port" in fields:
        fields["port"] = parse_port(fields["port"])

    updated = store.update_fields(device_id, fields)
    if updated is None:
        raise DeviceNotFoundError(device_id)
    logger.info("Device updated: %s", device_id)
    return updated


def delete_device(store: DeviceStore, device_id: str) -> Device:
    removed = store.remove(device_id)
    if removed is None:
        raise DeviceNotFoundError(device_id)
    logger.info("Device deleted: %s (%s)", removed.name, device_id)
    return removed


def import_devices(
    store: DeviceStore,
    entries: Iterable[Mapping[str, Any]],
    default_port: int = DEFAULT_WOL_PORT,
) -> list[Device]:
    """
    Create devices from portable records (as produced by export_devices).

    Every entry is validated before anything is stored, so one bad MAC
    rejects the whole batch.

    Raises:
        InvalidMacError: If any entry has a malformed MAC
        InvalidDeviceError: If an entry is not an object or lacks ``name`` or
            ``mac_address``
        InvalidPortError: If an entry has a port outside 1-65535
    """
    devices = []
    for i, entry in enumerate(entries):
        if not isinstance(entry, Mapping):
            raise InvalidDeviceError(f"Entry {i} is not an object")
        for key in ("name", "mac_address"):
            if entry.get(key) is None:
                raise InvalidDeviceError(f"Entry {i} missing required field '{key}'")
        port = entry.get("port")
        devices.append(
            Device.create(
                name=str(entry["name"]),
                mac_address=str(entry["mac_address"]),
                ip_address=entry.get("ip_address"),
                port=parse_port(port) if port is not None else default_port,
                description=entry.get("description"),
            )
        )
    store.add_all(devices)
    logger.info("Devices imported: %d", len(devices))
    return devices


def export_devices(store: DeviceStore) -> list[dict[str, Any]]:
    """Return every device in portable form, without ``id`` and ``created_at``."""
    exported = [
        {
            "name": d.name,
            "mac_address": d.mac_address,
            "port": d.port,
            "ip_address": d.ip_address,
            "description": d.description,
        }
        for d in store.get_all()
    ]
    logger.info("Devices exported: %d", len(exported))
    return exported


def wake_device(store: DeviceStore, device_id: str) -> Device:
    """
    Send a magic packet to the device with id *device_id*.

    Delivery is not confirmed; see send_wol.

    Raises:
        DeviceNotFoundError: If no device has that id
        InvalidMacError: If the stored MAC cannot be decoded
        WolNetworkError: If the packet cannot be sent
    """
    device = get_device(store, device_id)
    send_wol(device)
    logger.info("Wake-on-LAN packet sent to %s", device.name)
    return device
