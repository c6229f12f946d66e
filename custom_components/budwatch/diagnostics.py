"""Diagnostics support for BudWatch."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from homeassistant.core import HomeAssistant

if TYPE_CHECKING:
    from . import BudWatchConfigEntry
    from .coordinator import BudWatchDataUpdateCoordinator


async def async_get_config_entry_diagnostics(hass: HomeAssistant, entry: BudWatchConfigEntry) -> dict[str, Any]:
    """
    Return diagnostics for a config entry.

    Addresses are hashed and advert payloads have their sensitive bytes
    zeroed, so the dump is safe to attach to an issue.
    """
    coordinator: BudWatchDataUpdateCoordinator = entry.runtime_data.coordinator
    return coordinator.to_dict()
