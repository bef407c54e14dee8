"""Wake-on-LAN functionality."""

import logging
import socket

from jump.core.errors import ErrorCategory, JumpError
from jump.core.mac import parse_mac
from jump.core.models import Device

logger = logging.getLogger(__name__)

BROADCAST_IP = "255.255.255.255"


class WolError(JumpError):
    """Base class for Wake-on-LAN send failures."""

    category = ErrorCategory.INTERNAL


class WolNetworkError(WolError):
    """Raised when the UDP socket cannot be opened, configured or written."""

    def __init__(self, cause: Exception) -> None:
        self.cause = cause
        super().__init__(f"Network error: {cause}")


def build_magic_packet(mac: bytes) -> bytes:
    """
    Encode a MAC address as a WoL magic packet.

    Args:
        mac: The 6 raw bytes of the target's hardware address

    Returns:
        Six 0xFF bytes followed by the MAC repeated 16 times
    """
    if len(mac) != 6:
        raise ValueError(f"MAC must be 6 bytes, got {len(mac)}")
    return b"\xff" * 6 + bytes(mac) * 16


def send_wol(device: Device) -> None:
    """
    Broadcast a magic packet for *device* on the local segment.

    The packet goes to 255.255.255.255 on ``device.port`` from an ephemeral
    UDP socket. WoL has no acknowledgement: returning normally only means
    the packet left this host, not that the target woke up.

    Raises:
        InvalidMacError: If the stored MAC cannot be decoded (nothing is sent)
        WolNetworkError: If any socket operation fails or the port is out of range
    """
    packet = build_magic_packet(parse_mac(device.mac_address))

    logger.info(
        "Sending WOL magic packet to %s via %s:%d",
        device.mac_address,
        BROADCAST_IP,
        device.port,
    )
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.bind(("0.0.0.0", 0))
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            sock.sendto(packet, (BROADCAST_IP, device.port))
    except (OSError, OverflowError) as exc:
        raise WolNetworkError(exc) from exc
    logger.debug("WOL packet sent for device %s", device.id)
