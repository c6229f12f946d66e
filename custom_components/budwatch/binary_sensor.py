"""Binary sensor platform for BudWatch earbud status."""

from __future__ import annotations

from typing import TYPE_CHECKING

from homeassistant.components.binary_sensor import BinarySensorDeviceClass, BinarySensorEntity
from homeassistant.core import HomeAssistant

from .entity import BudWatchStateEntity

if TYPE_CHECKING:
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

    from . import BudWatchConfigEntry
    from .coordinator import BudWatchDataUpdateCoordinator


async def async_setup_entry(
    hass: HomeAssistant,
    entry: BudWatchConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Setup binary_sensor platform."""
    coordinator: BudWatchDataUpdateCoordinator = entry.runtime_data.coordinator

    async_add_entities(
        (
            BudWatchLidOpenSensor(coordinator, entry),
            BudWatchInEarSensor(coordinator, entry, "left"),
            BudWatchInEarSensor(coordinator, entry, "right"),
            BudWatchBothInCaseSensor(coordinator, entry),
        )
    )


class BudWatchLidOpenSensor(BudWatchStateEntity, BinarySensorEntity):
    """
    On while the case lid is open with both earbuds inside.

    This is the moment a phone pops up its battery card, and it's what
    budwatch_lid events are fired for.
    """

    _attr_name = "Lid open"
    _attr_device_class = BinarySensorDeviceClass.OPENING

    @property
    def unique_id(self):
        return f"{self.address}_lid_open"

    @property
    def is_on(self) -> bool:
        return self.coordinator.popup_visible


class BudWatchInEarSensor(BudWatchStateEntity, BinarySensorEntity):
    """Whether one earbud is in an ear."""

    _attr_device_class = BinarySensorDeviceClass.OCCUPANCY

    def __init__(self, coordinator: BudWatchDataUpdateCoordinator, entry: BudWatchConfigEntry, side: str) -> None:
        super().__init__(coordinator, entry)
        self._side = side
        self._attr_name = f"{side.capitalize()} in ear"

    @property
    def unique_id(self):
        return f"{self.address}_{self._side}_in_ear"

    @property
    def is_on(self) -> bool | None:
        if self.budwatch_state is None:
            return None
        return getattr(self.budwatch_state.pods, self._side).is_in_ear


class BudWatchBothInCaseSensor(BudWatchStateEntity, BinarySensorEntity):
    _attr_name = "Both in case"
    _attr_icon = "mdi:earbuds-outline"

    @property
    def unique_id(self):
        return f"{self.address}_both_in_case"

    @property
    def is_on(self) -> bool | None:
        if self.budwatch_state is None:
            return None
        return self.budwatch_state.case_box.is_both_pods_in_case
