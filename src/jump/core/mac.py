"""MAC address parsing and validation."""

from jump.core.errors import ErrorCategory, JumpError

# Separators users paste in: colon, dash, Cisco-style dot groups and spaces.
_SEPARATORS = (":", "-", ".", " ")


class InvalidMacError(JumpError):
    """Raised when a string cannot be read as a 6-byte MAC address."""

    category = ErrorCategory.VALIDATION

    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"Invalid MAC address format: {value}")


def normalize_mac(value: str) -> str:
    """Strip every separator and lower-case the result."""
    cleaned = value
    for sep in _SEPARATORS:
        cleaned = cleaned.replace(sep, "")
    return cleaned.lower()


def parse_mac(value: str) -> bytes:
    """
    Decode a human-entered MAC address into its 6 raw bytes.

    Colon, dash, dot-grouped, space-separated, unseparated and mixed
    notations are all accepted, case-insensitively.

    Args:
        value: MAC address as typed by a user (e.g. "AA:BB-CC.DD EE:FF")

    Returns:
        The 6-byte address

    Raises:
        InvalidMacError: If the cleaned string is not exactly 12 hex digits
    """
    cleaned = normalize_mac(value)
    if len(cleaned) != 12:
        raise InvalidMacError(value)

    octets = bytearray()
    for i in range(0, 12, 2):
        pair = cleaned[i : i + 2]
        # int() tolerates "+f" and "_"; only plain hex digits are allowed here.
        if not all(c in "0123456789abcdef" for c in pair):
            raise InvalidMacError(value)
        octets.append(int(pair, 16))
    return bytes(octets)


def validate_mac(value: str) -> None:
    """Raise InvalidMacError unless *value* parses as a MAC address."""
    parse_mac(value)


def format_mac(mac: bytes) -> str:
    """Render 6 raw bytes as ``AA:BB:CC:DD:EE:FF``."""
    return ":".join(f"{b:02X}" for b in mac)
