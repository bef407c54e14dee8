"""
MAC address lookup through the operating system's ARP table.

The lookup pings the address once so the kernel has a reason to resolve
it, then reads ``arp -a`` and picks out the entry for that address. The
answer is only what the table shows at that moment: the entry may be
stale, or missing if the ping was dropped by a firewall.
"""

import ipaddress
import logging
import re
import subprocess
from typing import Optional, Protocol

from jump.core.errors import ErrorCategory, JumpError

logger = logging.getLogger(__name__)

_MAC_TOKEN = r"((?:[0-9a-f]{2}:){5}[0-9a-f]{2})"


class ArpError(JumpError):
    """Base class for ARP lookup failures."""

    category = ErrorCategory.INTERNAL


class InvalidIpError(ArpError):
    """Raised when the input is not an IPv4 dotted-quad."""

    category = ErrorCategory.VALIDATION

    def __init__(self, ip: str) -> None:
        self.ip = ip
        super().__init__(f"Invalid IP address: {ip}")


class ArpNotFoundError(ArpError):
    """Raised when the ARP table has no entry for the address."""

    category = ErrorCategory.NOT_FOUND

    def __init__(self, ip: str) -> None:
        self.ip = ip
        super().__init__(f"MAC address not found for IP: {ip}")


class ArpQueryError(ArpError):
    """Raised when the ARP table command cannot be run."""

    def __init__(self, cause: Exception) -> None:
        self.cause = cause
        super().__init__(f"ARP query failed: {cause}")


class ArpTableSource(Protocol):
    """Anything that can refresh the ARP cache for an address and dump the table."""

    def refresh_and_dump(self, ip: str) -> str: ...


class SystemArpTable:
    """Refreshes with ``ping`` and dumps with ``arp -a`` on the local host."""

    def __init__(
        self,
        ping_bin: str = "ping",
        arp_bin: str = "arp",
        ping_timeout: int = 1,
        arp_timeout: int = 10,
    ) -> None:
        self.ping_bin = ping_bin
        self.arp_bin = arp_bin
        self.ping_timeout = ping_timeout
        self.arp_timeout = arp_timeout

    def _ping(self, ip: str) -> None:
        # Only the side effect on the kernel's ARP cache matters here.
        cmd = [self.ping_bin, "-c", "1", "-W", str(self.ping_timeout), ip]
        try:
            subprocess.run(
                cmd,
                capture_output=True,
                timeout=self.ping_timeout + 2,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            logger.debug("ping %s did not complete: %s", ip, exc)

    def refresh_and_dump(self, ip: str) -> str:
        """
        Ping *ip* once, then return the output of ``arp -a``.

        Raises:
            ArpQueryError: If ``arp`` cannot be executed or times out
        """
        self._ping(ip)
        try:
            result = subprocess.run(
                [self.arp_bin, "-a"],
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self.arp_timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise ArpQueryError(exc) from exc
        if result.returncode != 0:
            logger.debug("arp -a exited %d: %s", result.returncode, (result.stderr or "").strip())
        return result.stdout or ""


def find_mac_in_table(output: str, ip: str) -> Optional[str]:
    """
    Extract the MAC address listed for *ip* in ``arp -a`` output.

    Matches lines like ``? (192.168.1.10) at aa:bb:cc:dd:ee:ff [ether] on eth0``.

    Returns:
        The MAC upper-cased, or None if no line matches
    """
    pattern = re.compile(r"\(" + re.escape(ip) + r"\) at " + _MAC_TOKEN, re.IGNORECASE)
    match = pattern.search(output)
    if match is None:
        return None
    return match.group(1).upper()


class ArpResolver:
    """Resolves IPv4 addresses to MAC addresses through an ArpTableSource."""

    def __init__(self, source: Optional[ArpTableSource] = None) -> None:
        self.source: ArpTableSource = source or SystemArpTable()

    def lookup_mac(self, ip: str) -> str:
        """
        Return the MAC address the ARP table holds for *ip*.

        Raises:
            InvalidIpError: If *ip* is not an IPv4 address (no command is run)
            ArpQueryError: If the ARP table cannot be read
            ArpNotFoundError: If the table has no entry for *ip*
        """
        try:
            addr = ipaddress.IPv4Address(ip)
        except ValueError as exc:
            raise InvalidIpError(ip) from exc

        normalized = str(addr)
        logger.info("Looking up MAC address for %s", normalized)
        output = self.source.refresh_and_dump(normalized)
        mac = find_mac_in_table(output, normalized)
        if mac is None:
            raise ArpNotFoundError(normalized)
        logger.debug("ARP table maps %s to %s", normalized, mac)
        return mac


def lookup_mac(ip: str, source: Optional[ArpTableSource] = None) -> str:
    """Shorthand for ``ArpResolver(source).lookup_mac(ip)``."""
    return ArpResolver(source).lookup_mac(ip)
