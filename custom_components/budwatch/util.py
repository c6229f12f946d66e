"""General helper utilities for BudWatch."""

from __future__ import annotations

import hashlib
import re
from functools import lru_cache

from .const import FIND_MY_SUFFIX, GENERIC_NAME_MARKER

MAC_RE = re.compile(r"^([0-9a-f]{2}:){5}[0-9a-f]{2}$")


@lru_cache(1024)
def mac_norm(mac: str) -> str:
    """
    Format the mac address string for entry into dev reg.

    What is returned is always lowercased, regardless of
    detected form.
    If mac is an identifiable MAC-address, it's returned
    in the xx:xx:xx:xx:xx:xx form.
    """
    to_test = mac

    if len(to_test) == 17:
        if to_test.count(":") == 5:
            return to_test.lower()
        if to_test.count("-") == 5:
            return to_test.replace("-", ":").lower()
        if to_test.count("_") == 5:
            return to_test.replace("_", ":").lower()

    elif len(to_test) == 14 and to_test.count(".") == 2:
        to_test = to_test.replace(".", "")

    if len(to_test) == 12:
        # no : included
        return ":".join(to_test.lower()[i : i + 2] for i in range(0, 12, 2))

    # Not sure how formatted, return original
    return mac.lower()


@lru_cache(256)
def address_hash(address: str | None) -> str:
    """
    Return a short, stable hash of an address for log output.

    Enough to tell two advertisers apart in a log, without publishing
    the address itself when users paste their logs into an issue.
    """
    if address is None:
        return "none"
    return hashlib.sha256(mac_norm(address).encode()).hexdigest()[:8]


@lru_cache(256)
def clean_device_name(name: str | None) -> str:
    """
    Tidy up the name a host has given the earbuds.

    Some stacks call them something generic like "Bluetooth Headset" until they
    have read the real name, which is worse than our model label, so those come
    back empty. Find My adds a " - Find My" suffix, which we always strip.
    Leading/trailing whitespace and NULs are trimmed.
    """
    if name is None or GENERIC_NAME_MARKER in name:
        return ""
    return name.replace(FIND_MY_SUFFIX, "").strip(" \t\r\n\x00")


def is_mac_address(address: str) -> bool:
    """True if address normalises to a plain xx:xx:xx:xx:xx:xx MAC."""
    return MAC_RE.match(mac_norm(address)) is not None
