"""Tests for the jump CLI."""

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import yaml
from click.testing import CliRunner

from jump.cli import main
from jump.core.arp import ArpNotFoundError
from jump.core.models import Device
from jump.core.storage import DeviceStore


# ── Helpers ───────────────────────────────────────────────────────────────────


def _write_config(tmp_path: Path, **wol: object) -> tuple[Path, Path]:
    """Write a config pointing storage at tmp_path; return (config, storage)."""
    storage = tmp_path / "devices.json"
    cfg = tmp_path / "config.yaml"
    cfg.write_text(
        yaml.dump(
            {
                "server": {"static_dir": None},
                "storage": {"file_path": str(storage)},
                "wol": {"default_port": 9, **wol},
            }
        )
    )
    return cfg, storage


def _seed(storage: Path, *devices: Device) -> None:
    DeviceStore(storage).add_all(devices)


def _invoke(cfg: Path, *args: str):
    return CliRunner().invoke(main, ["--config", str(cfg), *args])


# ── Config errors ─────────────────────────────────────────────────────────────


class TestConfigErrors:
    def test_invalid_config_exits_1(self, tmp_path: Path) -> None:
        cfg = tmp_path / "bad.yaml"
        cfg.write_text(yaml.dump({"server": {"port": 0}}))
        result = _invoke(cfg, "devices", "list")
        assert result.exit_code == 1

    def test_corrupt_storage_exits_1(self, tmp_path: Path) -> None:
        cfg, storage = _write_config(tmp_path)
        storage.write_text("[{oops")
        result = _invoke(cfg, "devices", "list")
        assert result.exit_code == 1
        assert "Failed to load storage" in result.output


# ── devices ───────────────────────────────────────────────────────────────────


class TestDevicesList:
    def test_empty(self, tmp_path: Path) -> None:
        cfg, _ = _write_config(tmp_path)
        result = _invoke(cfg, "devices", "list")
        assert result.exit_code == 0
        assert "No devices stored." in result.output

    def test_shows_devices(self, tmp_path: Path) -> None:
        cfg, storage = _write_config(tmp_path)
        _seed(storage, Device.create("Gaming PC", "AA:BB:CC:DD:EE:FF", ip_address="10.0.0.2"))
        result = _invoke(cfg, "devices", "list")
        assert result.exit_code == 0
        assert "Gaming PC" in result.output
        assert "AA:BB:CC:DD:EE:FF" in result.output


class TestDevicesAdd:
    def test_adds_with_default_port(self, tmp_path: Path) -> None:
        cfg, storage = _write_config(tmp_path, default_port=7)
        result = _invoke(cfg, "devices", "add", "NAS", "aa-bb-cc-dd-ee-ff", "--ip", "10.0.0.3")
        assert result.exit_code == 0
        stored = DeviceStore.load(storage).get_all()
        assert len(stored) == 1
        assert stored[0].port == 7
        assert stored[0].ip_address == "10.0.0.3"

    def test_invalid_mac_exits_1(self, tmp_path: Path) -> None:
        cfg, storage = _write_config(tmp_path)
        result = _invoke(cfg, "devices", "add", "NAS", "nope")
        assert result.exit_code == 1
        assert "Invalid MAC" in result.output
        assert not storage.exists()

    def test_out_of_range_port_exits_1(self, tmp_path: Path) -> None:
        cfg, storage = _write_config(tmp_path)
        result = _invoke(cfg, "devices", "add", "NAS", "AA:BB:CC:DD:EE:FF", "--port", "70000")
        assert result.exit_code == 1
        assert "Invalid port" in result.output
        assert not storage.exists()


class TestDevicesRemove:
    def test_removes(self, tmp_path: Path) -> None:
        cfg, storage = _write_config(tmp_path)
        device = Device.create("pc", "AA:BB:CC:DD:EE:FF")
        _seed(storage, device)
        result = _invoke(cfg, "devices", "remove", device.id)
        assert result.exit_code == 0
        assert len(DeviceStore.load(storage)) == 0

    def test_unknown_exits_1(self, tmp_path: Path) -> None:
        cfg, _ = _write_config(tmp_path)
        result = _invoke(cfg, "devices", "remove", "missing")
        assert result.exit_code == 1


class TestExportImport:
    def test_export_to_stdout(self, tmp_path: Path) -> None:
        cfg, storage = _write_config(tmp_path)
        _seed(storage, Device.create("pc", "AA:BB:CC:DD:EE:FF"))
        result = _invoke(cfg, "devices", "export")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data[0]["name"] == "pc"
        assert "id" not in data[0]

    def test_export_file_then_import(self, tmp_path: Path) -> None:
        cfg, storage = _write_config(tmp_path)
        _seed(storage, Device.create("pc", "AA:BB:CC:DD:EE:FF", port=7))
        out = tmp_path / "export.json"
        assert _invoke(cfg, "devices", "export", str(out)).exit_code == 0

        result = _invoke(cfg, "devices", "import", str(out))

        assert result.exit_code == 0
        stored = DeviceStore.load(storage).get_all()
        assert [d.port for d in stored] == [7, 7]
        assert stored[0].id != stored[1].id

    def test_import_non_list_exits_1(self, tmp_path: Path) -> None:
        cfg, _ = _write_config(tmp_path)
        src = tmp_path / "in.json"
        src.write_text('{"name": "pc"}')
        assert _invoke(cfg, "devices", "import", str(src)).exit_code == 1

    def test_import_missing_field_exits_1(self, tmp_path: Path) -> None:
        cfg, _ = _write_config(tmp_path)
        src = tmp_path / "in.json"
        src.write_text('[{"name": "pc"}]')
        result = _invoke(cfg, "devices", "import", str(src))
        assert result.exit_code == 1
        assert "mac_address" in result.output

    def test_import_non_numeric_port_exits_1(self, tmp_path: Path) -> None:
        cfg, storage = _write_config(tmp_path)
        src = tmp_path / "in.json"
        src.write_text('[{"name": "pc", "mac_address": "AA:BB:CC:DD:EE:FF", "port": "abc"}]')
        result = _invoke(cfg, "devices", "import", str(src))
        assert result.exit_code == 1
        assert "Invalid port" in result.output
        assert not storage.exists()

    def test_import_non_object_entry_exits_1(self, tmp_path: Path) -> None:
        cfg, storage = _write_config(tmp_path)
        src = tmp_path / "in.json"
        src.write_text("[1]")
        result = _invoke(cfg, "devices", "import", str(src))
        assert result.exit_code == 1
        assert "not an object" in result.output
        assert not storage.exists()


# ── wake ──────────────────────────────────────────────────────────────────────


class TestWake:
    @patch("jump.core.wol.send_wol")
    def test_wake_by_name(self, mock_send: MagicMock, tmp_path: Path) -> None:
        cfg, storage = _write_config(tmp_path)
        device = Device.create("Gaming PC", "AA:BB:CC:DD:EE:FF")
        _seed(storage, device)

        result = _invoke(cfg, "wake", "Gaming PC")

        assert result.exit_code == 0
        mock_send.assert_called_once_with(device)
        assert "WOL packet sent" in result.output

    @patch("jump.core.wol.send_wol")
    def test_wake_by_id(self, mock_send: MagicMock, tmp_path: Path) -> None:
        cfg, storage = _write_config(tmp_path)
        device = Device.create("pc", "AA:BB:CC:DD:EE:FF")
        _seed(storage, device)

        assert _invoke(cfg, "wake", device.id).exit_code == 0
        mock_send.assert_called_once_with(device)

    def test_wake_unknown_exits_1(self, tmp_path: Path) -> None:
        cfg, _ = _write_config(tmp_path)
        assert _invoke(cfg, "wake", "ghost").exit_code == 1

    @patch("jump.core.wol.send_wol")
    def test_send_failure_exits_2(self, mock_send: MagicMock, tmp_path: Path) -> None:
        from jump.core.wol import WolNetworkError

        cfg, storage = _write_config(tmp_path)
        _seed(storage, Device.create("pc", "AA:BB:CC:DD:EE:FF"))
        mock_send.side_effect = WolNetworkError(OSError("unreachable"))

        assert _invoke(cfg, "wake", "pc").exit_code == 2


# ── arp ───────────────────────────────────────────────────────────────────────


class TestArp:
    @patch("jump.core.arp.lookup_mac", return_value="AA:BB:CC:DD:EE:FF")
    def test_prints_mac(self, mock_lookup: MagicMock, tmp_path: Path) -> None:
        cfg, _ = _write_config(tmp_path)
        result = _invoke(cfg, "arp", "192.168.1.10")
        assert result.exit_code == 0
        assert result.output.strip() == "AA:BB:CC:DD:EE:FF"

    @patch("jump.core.arp.lookup_mac", side_effect=ArpNotFoundError("192.168.1.10"))
    def test_not_found_exits_1(self, mock_lookup: MagicMock, tmp_path: Path) -> None:
        cfg, _ = _write_config(tmp_path)
        result = _invoke(cfg, "arp", "192.168.1.10")
        assert result.exit_code == 1
        assert "not found" in result.output


# ── openapi / serve ───────────────────────────────────────────────────────────


class TestOpenapi:
    def test_prints_document(self, tmp_path: Path) -> None:
        cfg, storage = _write_config(tmp_path)
        result = _invoke(cfg, "openapi")
        assert result.exit_code == 0
        assert "/api/devices" in json.loads(result.output)["paths"]
        assert not storage.exists()

    def test_writes_file(self, tmp_path: Path) -> None:
        cfg, _ = _write_config(tmp_path)
        out = tmp_path / "openapi.json"
        result = _invoke(cfg, "openapi", "--output", str(out))
        assert result.exit_code == 0
        assert json.loads(out.read_text())["info"]["title"] == "jump"


class TestServe:
    @patch("uvicorn.run")
    def test_serve_uses_config_port(self, mock_run: MagicMock, tmp_path: Path) -> None:
        cfg, _ = _write_config(tmp_path)
        result = _invoke(cfg, "serve", "--port", "8123")
        assert result.exit_code == 0
        assert mock_run.call_args.kwargs["port"] == 8123
        assert mock_run.call_args.kwargs["host"] == "0.0.0.0"
