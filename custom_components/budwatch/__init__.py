"""
Custom integration to track earbud and charging case status from their
Bluetooth LE adverts in Home Assistant.

For more details about this integration, please refer to
https://github.com/budwatch/budwatch
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from homeassistant.exceptions import ConfigEntryNotReady
from homeassistant.helpers import config_validation as cv

from .const import _LOGGER, DOMAIN, PLATFORMS, STARTUP_MESSAGE
from .coordinator import BudWatchDataUpdateCoordinator

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant

type BudWatchConfigEntry = ConfigEntry[BudWatchData]


@dataclass
class BudWatchData:
    """Holds runtime data for a BudWatch config entry."""

    coordinator: BudWatchDataUpdateCoordinator


CONFIG_SCHEMA = cv.config_entry_only_config_schema(DOMAIN)


async def async_setup_entry(hass: HomeAssistant, entry: BudWatchConfigEntry) -> bool:
    """Set up this integration using UI."""
    if DOMAIN not in hass.data:
        _LOGGER.info(STARTUP_MESSAGE)
        hass.data[DOMAIN] = {}

    coordinator = BudWatchDataUpdateCoordinator(hass, entry)
    entry.runtime_data = BudWatchData(coordinator)

    coordinator.async_bind()
    entry.async_on_unload(coordinator.async_unbind)

    try:
        await coordinator.async_refresh()
    except Exception as ex:  # noqa: BLE001
        _LOGGER.exception(ex)
        raise ConfigEntryNotReady from ex
    if not coordinator.last_update_success:
        raise ConfigEntryNotReady

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    entry.async_on_unload(entry.add_update_listener(async_reload_entry))

    return True


async def async_unload_entry(hass: HomeAssistant, entry: BudWatchConfigEntry) -> bool:
    """Handle removal of an entry."""
    if unload_result := await hass.config_entries.async_unload_platforms(entry, PLATFORMS):
        _LOGGER.debug("Unloaded platforms.")
    return unload_result


async def async_reload_entry(hass: HomeAssistant, entry: BudWatchConfigEntry) -> None:
    """Reload config entry."""
    await hass.config_entries.async_reload(entry.entry_id)
