"""Global fixtures for BudWatch earbud status integration."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from bluetooth_data_tools import monotonic_time_coarse
from homeassistant.components import bluetooth
from homeassistant.components.bluetooth import BaseHaRemoteScanner
from homeassistant.core import HomeAssistant
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.budwatch.const import _LOGGER_SPAM_LESS, DOMAIN, VENDOR_ID

from .const import ADDR_1, MOCK_ADDRESS, MOCK_CONFIG, MOCK_TITLE

pytest_plugins = "pytest_homeassistant_custom_component"


@pytest.fixture(autouse=True)
def mock_bluetooth(enable_bluetooth):
    """Auto mock bluetooth."""


# This fixture enables loading custom integrations in all tests.
# Remove to enable selective use of this fixture
@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(enable_custom_integrations):
    """Enable loading custom integrations."""
    yield


# Rejection warnings are rate-limited per key, which would otherwise leak
# between tests and hide the messages some tests look for.
@pytest.fixture(autouse=True)
def reset_spam_less_logger():
    _LOGGER_SPAM_LESS.reset()
    yield
    _LOGGER_SPAM_LESS.reset()


# This fixture is used to prevent HomeAssistant from
# attempting to create and dismiss persistent
# notifications. These calls would fail without this
# fixture since the persistent_notification
# integration is never loaded during a test.
@pytest.fixture(name="skip_notifications", autouse=True)
def skip_notifications_fixture():
    """Skip notification calls."""
    with (
        patch("homeassistant.components.persistent_notification.async_create"),
        patch("homeassistant.components.persistent_notification.async_dismiss"),
    ):
        yield


# This fixture, when used, will result in calls to
# async_refresh to do nothing, so no timers or scanner checks run.
@pytest.fixture(name="bypass_get_data")
def bypass_get_data_fixture():
    """Skip the coordinator's periodic refresh."""
    with patch("custom_components.budwatch.BudWatchDataUpdateCoordinator.async_refresh"):
        yield


# In this fixture, we are forcing calls to async_refresh to raise
# an Exception. This is useful for exception handling.
@pytest.fixture(name="error_on_get_data")
def error_get_data_fixture():
    """Simulate error when refreshing the coordinator."""
    with patch(
        "custom_components.budwatch.BudWatchDataUpdateCoordinator.async_refresh",
        side_effect=Exception,
    ):
        yield


class EarbudScanner(BaseHaRemoteScanner):
    """A remote scanner we can hand adverts to, as an ESPHome proxy would."""

    def __init__(self) -> None:
        super().__init__("budwatch-test", "budwatch-test", None, False)
        self._stamp = monotonic_time_coarse()

    def inject(self, payload: bytes, address: str = ADDR_1, rssi: int = -50, name: str | None = "AirPods Pro") -> None:
        """Receive a proximity-pairing advert, with no service data, as the earbuds send it."""
        self._stamp += 0.01
        self._async_on_advertisement(
            address.upper(),
            rssi,
            name,
            [],
            {},
            {VENDOR_ID: payload},
            None,
            {},
            self._stamp,
        )


# Feeds adverts through HA's bluetooth stack rather than straight to the coordinator.
@pytest.fixture()
async def earbud_scanner(hass: HomeAssistant):
    """Register a scanner that tests can inject earbud adverts into."""
    scanner = EarbudScanner()
    unsetup = scanner.async_setup()
    cancel = bluetooth.async_register_scanner(hass, scanner)
    yield scanner
    cancel()
    unsetup()


@pytest.fixture()
async def mock_budwatch_entry(hass: HomeAssistant):
    """This creates a mock config entry"""
    config_entry = MockConfigEntry(
        domain=DOMAIN,
        data=MOCK_CONFIG,
        entry_id="test",
        title=MOCK_TITLE,
        unique_id=MOCK_ADDRESS,
    )
    config_entry.add_to_hass(hass)
    await hass.async_block_till_done()
    return config_entry


@pytest.fixture()
async def setup_budwatch_entry(hass: HomeAssistant, mock_budwatch_entry: MockConfigEntry):
    """This sets up an entry so that it can be used."""
    assert await hass.config_entries.async_setup(mock_budwatch_entry.entry_id)
    await hass.async_block_till_done()
    return mock_budwatch_entry
