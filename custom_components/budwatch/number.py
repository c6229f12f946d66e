"""Create Number entities - the RSSI floor for accepting adverts."""

from __future__ import annotations

from typing import TYPE_CHECKING

from homeassistant.components.number import (
    NumberDeviceClass,
    NumberExtraStoredData,
    NumberMode,
    RestoreNumber,
)
from homeassistant.const import SIGNAL_STRENGTH_DECIBELS_MILLIWATT, EntityCategory
from homeassistant.core import HomeAssistant

from .const import CONF_RSSI_MIN
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
    """Load Number entities for a config entry."""
    coordinator: BudWatchDataUpdateCoordinator = entry.runtime_data.coordinator
    async_add_devices([BudWatchRssiMinNumber(coordinator, entry)])


class BudWatchRssiMinNumber(BudWatchEntity, RestoreNumber):
    """Adverts weaker than this are ignored. Raise it if neighbours' earbuds get picked up."""

    _attr_name = "Minimum RSSI"
    _attr_device_class = NumberDeviceClass.SIGNAL_STRENGTH
    _attr_entity_category = EntityCategory.CONFIG
    _attr_native_min_value = -127
    _attr_native_max_value = 0
    _attr_native_step = 1
    _attr_native_unit_of_measurement = SIGNAL_STRENGTH_DECIBELS_MILLIWATT
    _attr_mode = NumberMode.BOX

    def __init__(
        self,
        coordinator: BudWatchDataUpdateCoordinator,
        entry: BudWatchConfigEntry,
    ) -> None:
        """Initialise the number entity."""
        self.restored_data: NumberExtraStoredData | None = None
        super().__init__(coordinator, entry)

    async def async_added_to_hass(self) -> None:
        """Restore values from HA storage on startup."""
        await super().async_added_to_hass()
        self.restored_data = await self.async_get_last_number_data()
        if self.restored_data is not None and self.restored_data.native_value is not None:
            self.coordinator.manager.on_rssi_min_changed(int(self.restored_data.native_value))

    @property
    def native_value(self) -> float | None:
        """Return value of number."""
        return self.coordinator.manager.state_manager.rssi_min

    async def async_set_native_value(self, value: float) -> None:
        """Set value."""
        self.coordinator.manager.on_rssi_min_changed(int(value))
        self.async_write_ha_state()
        # restore_state only dumps every 15 minutes, so a value set just
        # before HA is killed may come back as the older one.

    @property
    def unique_id(self):
        return f"{self.address}_{CONF_RSSI_MIN}"
