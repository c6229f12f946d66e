"""Constants for BudWatch earbud status."""

# Base component constants
from __future__ import annotations

import logging
from typing import Final

from homeassistant.const import Platform

from .log_spam_less import BudWatchLogSpamLess

NAME = "BudWatch Earbud Status"
DOMAIN = "budwatch"
# Version gets updated by github workflow during release.
# The version in the repository should always be 0.0.0 to reflect
# that the component has been checked out from git, not pulled from
# an officially built release.
VERSION = "0.0.0"

ISSUE_URL = "https://github.com/budwatch/budwatch/issues"

# Platforms
PLATFORMS = [
    Platform.SENSOR,
    Platform.BINARY_SENSOR,
    Platform.NUMBER,
    Platform.SWITCH,
]

# Events we fire on the bus, for automations:
EVENT_LID = f"{DOMAIN}_lid"  # data: opened (bool)
EVENT_DISCONNECTED = f"{DOMAIN}_disconnected"

UPDATE_INTERVAL = 1.05  # Seconds between timer checks on the coordinator.
# Timer deadlines are only evaluated on this tick, so a deadline may fire up to
# one interval late.

LOGSPAM_INTERVAL = 22
# Rejected adverts from a neighbour's earbuds can arrive several times a second.
# Rejection warnings with the same key are emitted at most once per this many
# seconds.

# ##### Protocol constants #####
#
# Apple's company identifier, as used in the manufacturer data of the advert.
VENDOR_ID: Final = 0x004C
PROXIMITY_PAIRING_TYPE: Final = 0x07
PROXIMITY_PAIRING_LENGTH: Final = 0x19
# Type byte + length byte + the length the packet claims to carry.
PROXIMITY_PAIRING_SIZE: Final = PROXIMITY_PAIRING_LENGTH + 2

BATTERY_MAX_RAW: Final = 10  # Battery nibble is 0-10 in 10% steps, 0xF is unavailable.
BATTERY_SCALE: Final = 10

# ##### State manager constants #####
#
LOST_TIMEOUT: Final = 10  # seconds without any accepted advert before the device is lost
STATE_RESET_TIMEOUT: Final = 10  # seconds without an advert from one side before its cache clears

MAX_BATTERY_STEP_DIFF: Final = 1  # Battery drops one step at a time between adverts.
MAX_RSSI_DIFF: Final = 50  # Both pods (and consecutive adverts) sit at about the same range.

# ##### Device naming #####
#
# Some bluetooth stacks report a generic "... Bluetooth ..." name for the earbuds
# until the real name has been read. Those fall back to the model name.
GENERIC_NAME_MARKER: Final = "Bluetooth"
# Names of earbuds registered with Find My carry this suffix.
FIND_MY_SUFFIX: Final = " - Find My"

DOCS = {}

# Config entry DATA entries

CONF_ADDRESS = "address"
DOCS[CONF_ADDRESS] = "Bluetooth address of the earbuds to bind to"

CONF_CONNECTION_ENTITY = "connection_entity"
DOCS[CONF_CONNECTION_ENTITY] = (
    "Entity that reports whether the earbuds are connected to their host. "
    "Leave empty to treat the bound earbuds as always connected."
)

CONF_MEDIA_PLAYER = "media_player"
DOCS[CONF_MEDIA_PLAYER] = "Media player to play/pause from automatic ear detection"

# Runtime settings, exposed as number / switch entities and restored on start.

CONF_RSSI_MIN, DEFAULT_RSSI_MIN = "rssi_min", -80
DOCS[CONF_RSSI_MIN] = "Adverts weaker than this (dBm) are ignored."

CONF_AUTOMATIC_EAR_DETECTION, DEFAULT_AUTOMATIC_EAR_DETECTION = "automatic_ear_detection", True
DOCS[CONF_AUTOMATIC_EAR_DETECTION] = "Play when both earbuds go in, pause when one comes out."

# Connection entity states that mean "connected".
CONNECTED_STATES: Final = frozenset({"on", "home", "connected", "true"})

_LOGGER: logging.Logger = logging.getLogger(__package__)
_LOGGER_SPAM_LESS = BudWatchLogSpamLess(_LOGGER, LOGSPAM_INTERVAL)


STARTUP_MESSAGE = f"""
-------------------------------------------------------------------
{NAME}
Version: {VERSION}
This is a custom integration!
If you have any issues with this you need to open an issue here:
{ISSUE_URL}
-------------------------------------------------------------------
"""
