"""jump — Wake-on-LAN device manager."""

__version__ = "0.1.0"
