"""Core WoL, storage and ARP logic."""
