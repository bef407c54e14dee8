"""JSON-backed device store."""

import dataclasses
import json
import logging
import os
import threading
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Optional, Union

from jump.core.errors import ErrorCategory, JumpError
from jump.core.mac import InvalidMacError, validate_mac
from jump.core.models import Device, InvalidDeviceError, parse_port

logger = logging.getLogger(__name__)


class StorageError(JumpError):
    """Base class for device storage failures."""

    category = ErrorCategory.INTERNAL


class StorageIOError(StorageError):
    """Raised when the storage file cannot be read or written."""

    def __init__(self, path: Path, cause: OSError) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Storage I/O error on {path}: {cause}")


class StorageParseError(StorageError):
    """Raised when the storage file holds something other than a device list."""

    def __init__(self, path: Path, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Cannot parse storage file {path}: {detail}")


class DeviceNotFoundError(StorageError):
    """Raised when no device has the requested id."""

    category = ErrorCategory.NOT_FOUND

    def __init__(self, device_id: str) -> None:
        self.device_id = device_id
        super().__init__(f"Device not found: {device_id}")


class _ReadWriteLock:
    """Many concurrent readers or a single writer."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writing:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            while self._writing or self._readers:
                self._cond.wait()
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


def _copy(device: Device) -> Device:
    return dataclasses.replace(device)


def _check(device: Device) -> None:
    validate_mac(device.mac_address)
    parse_port(device.port)


class DeviceStore:
    """
    Ordered device list held in memory and mirrored to a JSON file.

    Every mutation rewrites the whole file while holding the write lock, so
    concurrent mutations cannot interleave their writes. The in-memory list
    is changed *before* the file is written: if the write fails a
    StorageIOError is raised but the in-memory change stays in place, and
    memory and disk disagree until the next successful mutation rewrites the
    file.
    """

    def __init__(self, path: Union[str, Path], devices: Optional[Iterable[Device]] = None) -> None:
        self.path = Path(path)
        self._devices: list[Device] = list(devices or [])
        self._lock = _ReadWriteLock()

    # ── Loading ───────────────────────────────────────────────────────────────

    @classmethod
    def load(cls, path: Union[str, Path]) -> "DeviceStore":
        """
        Load a store from *path*.

        A missing, empty or whitespace-only file yields an empty store.

        Raises:
            StorageIOError: If the file exists but cannot be read
            StorageParseError: If the file is not a valid device list
        """
        path = Path(path)
        if not path.exists():
            logger.info("Storage file %s not found, starting empty", path)
            return cls(path)

        try:
            content = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StorageIOError(path, exc) from exc

        if not content.strip():
            logger.info("Storage file %s is empty, starting empty", path)
            return cls(path)

        try:
            raw = json.loads(content)
        except json.JSONDecodeError as exc:
            raise StorageParseError(path, str(exc)) from exc
        if not isinstance(raw, list):
            raise StorageParseError(path, "top-level value must be a list")

        devices: list[Device] = []
        for i, entry in enumerate(raw):
            if not isinstance(entry, dict):
                raise StorageParseError(path, f"entry {i} is not an object")
            try:
                device = Device.from_dict(entry)
                validate_mac(device.mac_address)
            except (KeyError, TypeError, ValueError, InvalidMacError, InvalidDeviceError) as exc:
                raise StorageParseError(path, f"entry {i}: {exc}") from exc
            devices.append(device)

        logger.info("Loaded %d device(s) from %s", len(devices), path)
        return cls(path, devices)

    def _save(self) -> None:
        """Atomically rewrite the storage file. Caller holds the write lock."""
        payload = json.dumps([d.to_dict() for d in self._devices], indent=2, ensure_ascii=False)
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                f.write(payload)
                f.write("\n")
            os.replace(tmp, self.path)
        except OSError as exc:
            if tmp.exists():
                tmp.unlink(missing_ok=True)
            logger.error("Failed to persist %d device(s) to %s: %s", len(self._devices), self.path, exc)
            raise StorageIOError(self.path, exc) from exc
        logger.debug("Persisted %d device(s) to %s", len(self._devices), self.path)

    # ── Reads ─────────────────────────────────────────────────────────────────

    def get_all(self) -> list[Device]:
        with self._lock.read():
            return [_copy(d) for d in self._devices]

    def get(self, device_id: str) -> Optional[Device]:
        with self._lock.read():
            for d in self._devices:
                if d.id == device_id:
                    return _copy(d)
        return None

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._devices)

    # ── Mutations ─────────────────────────────────────────────────────────────

    def add(self, device: Device) -> None:
        """Append one device and persist."""
        self.add_all([device])

    def add_all(self, devices: Iterable[Device]) -> None:
        """
        Append devices and persist once.

        Raises:
            InvalidMacError: If any device has a malformed MAC (nothing is added)
            InvalidPortError: If any device has an out-of-range port (nothing is added)
            StorageIOError: If the write fails (the devices stay in memory)
        """
        new = [_copy(d) for d in devices]
        for d in new:
            _check(d)
        with self._lock.write():
            self._devices.extend(new)
            self._save()

    def update(self, device_id: str, device: Device) -> Optional[Device]:
        """
        Replace the device with id *device_id*.

        The stored ``id`` and ``created_at`` are kept regardless of what
        *device* carries.

        Returns:
            The updated record, or None if no device has that id
        """
        _check(device)
        with self._lock.write():
            for i, existing in enumerate(self._devices):
                if existing.id == device_id:
                    updated = dataclasses.replace(
                        device, id=existing.id, created_at=existing.created_at
                    )
                    self._devices[i] = updated
                    self._save()
                    return _copy(updated)
        return None

    def update_fields(self, device_id: str, fields: Mapping[str, Any]) -> Optional[Device]:
        """
        Merge *fields* into the device with id *device_id*.

        The read, the merge and the write happen under one write lock, so two
        partial updates to the same device never drop each other's fields.
        ``id`` and ``created_at`` cannot be changed this way.

        Returns:
            The updated record, or None if no device has that id

        Raises:
            InvalidMacError: If the merged MAC is malformed (nothing changes)
            InvalidPortError: If the merged port is out of range (nothing changes)
        """
        fields = {k: v for k, v in fields.items() if k not in ("id", "created_at")}
        with self._lock.write():
            for i, existing in enumerate(self._devices):
                if existing.id == device_id:
                    updated = dataclasses.replace(existing, **fields)
                    _check(updated)
                    self._devices[i] = updated
                    self._save()
                    return _copy(updated)
        return None

    def remove(self, device_id: str) -> Optional[Device]:
        """
        Remove the device with id *device_id*.

        Returns:
            The removed record, or None if no device has that id
        """
        with self._lock.write():
            for i, existing in enumerate(self._devices):
                if existing.id == device_id:
                    removed = self._devices.pop(i)
                    self._save()
                    return removed
        return None
