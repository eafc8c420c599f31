"""
Hardware identity helpers.

A device is identified on the broker by its MAC address with separators
stripped and uppercased (``AA:BB:CC:DD:EE:FF`` -> ``AABBCCDDEEFF``).
"""

import re
from typing import Optional

MAC_PATTERN = re.compile(r"^([0-9A-Fa-f]{2}[:-]){5}([0-9A-Fa-f]{2})$")
_BARE_MAC_PATTERN = re.compile(r"^[0-9A-F]{12}$")


class InvalidMacAddress(ValueError):
    pass


def is_valid_mac(mac: Optional[str]) -> bool:
    return bool(mac) and MAC_PATTERN.match(mac) is not None


def mqtt_client_id_from_mac(mac: str) -> str:
    return mac.replace(":", "").replace("-", "").strip().upper()


def canonical_mac(mac: str) -> str:
    """Format any accepted MAC spelling as AA:BB:CC:DD:EE:FF"""
    client_id = mqtt_client_id_from_mac(mac)
    return ":".join(client_id[i : i + 2] for i in range(0, 12, 2))


def parse_mac(mac: Optional[str], allow_bare: bool = False) -> str:
    """
    Validate a MAC and return its MQTT client id.

    Args:
        mac: MAC address as sent by the device
        allow_bare: also accept 12 hex digits without separators

    Raises:
        InvalidMacAddress: if the value is not a MAC address
    """
    if not mac:
        raise InvalidMacAddress("MAC address is required")
    if is_valid_mac(mac):
        return mqtt_client_id_from_mac(mac)
    if allow_bare:
        client_id = mqtt_client_id_from_mac(mac)
        if _BARE_MAC_PATTERN.match(client_id):
            return client_id
    raise InvalidMacAddress(f"Invalid MAC address format: {mac}")
