"""Switch platform for BudWatch earbud status."""

from __future__ import annotations

from typing import TYPE_CHECKING

from homeassistant.components.switch import SwitchEntity
from homeassistant.const import STATE_OFF, STATE_ON, EntityCategory
from homeassistant.core import HomeAssistant
from homeassistant.helpers.restore_state import RestoreEntity

from .const import CONF_AUTOMATIC_EAR_DETECTION
from .entity import BudWatchEntity

if TYPE_CHECKING:
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

    from . import BudWatchConfigEntry
    from .coordinator import BudWatchDataUpdateCoordinator


async def async_setup_entry(
    hass: HomeAssistant,
    entry: BudWatchConfigEntry,
    async_add_devices: AddEntitiesCallback,
) -> None:
    """Setup switch platform."""
    coordinator: BudWatchDataUpdateCoordinator = entry.runtime_data.coordinator
    async_add_devices([BudWatchEarDetectionSwitch(coordinator, entry)])


class BudWatchEarDetectionSwitch(BudWatchEntity, SwitchEntity, RestoreEntity):
    """
    Automatic ear detection.

    When on, the configured media player is paused when an earbud comes out
    and resumed once both are back in.
    """

    _attr_name = "Automatic ear detection"
    _attr_entity_category = EntityCategory.CONFIG
    _attr_icon = "mdi:ear-hearing"

    async def async_added_to_hass(self) -> None:
        """Restore the last setting on startup."""
        await super().async_added_to_hass()
        last_state = await self.async_get_last_state()
        if last_state is not None and last_state.state in (STATE_ON, STATE_OFF):
            self.coordinator.manager.on_automatic_ear_detection_changed(last_state.state == STATE_ON)

    async def async_turn_on(self, **kwargs):  # pylint: disable=unused-argument
        """Turn on the switch."""
        self.coordinator.manager.on_automatic_ear_detection_changed(True)
        self.async_write_ha_state()

    async def async_turn_off(self, **kwargs):  # pylint: disable=unused-argument
        """Turn off the switch."""
        self.coordinator.manager.on_automatic_ear_detection_changed(False)
        self.async_write_ha_state()

    @property
    def unique_id(self):
        return f"{self.address}_{CONF_AUTOMATIC_EAR_DETECTION}"

    @property
    def is_on(self) -> bool:
        """Return true if the switch is on."""
        return self.coordinator.manager.automatic_ear_detection
