"""Sensor platform for BudWatch earbud status."""

from __future__ import annotations

from typing import TYPE_CHECKING

from homeassistant.components.sensor import SensorEntity
from homeassistant.components.sensor.const import SensorDeviceClass, SensorStateClass
from homeassistant.const import PERCENTAGE, EntityCategory
from homeassistant.core import HomeAssistant

from .entity import BudWatchStateEntity

if TYPE_CHECKING:
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

    from . import BudWatchConfigEntry
    from .coordinator import BudWatchDataUpdateCoordinator
    from .protocol import CaseState, PodState


async def async_setup_entry(
    hass: HomeAssistant,
    entry: BudWatchConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Setup sensor platform."""
    coordinator: BudWatchDataUpdateCoordinator = entry.runtime_data.coordinator

    async_add_entities(
        (
            BudWatchBatterySensor(coordinator, entry, "left"),
            BudWatchBatterySensor(coordinator, entry, "right"),
            BudWatchBatterySensor(coordinator, entry, "case"),
            BudWatchModelSensor(coordinator, entry),
        )
    )


class BudWatchBatterySensor(BudWatchStateEntity, SensorEntity):
    """Battery level of one part of the set. Unknown while that part isn't reporting."""

    _attr_device_class = SensorDeviceClass.BATTERY
    _attr_state_class = SensorStateClass.MEASUREMENT
    _attr_native_unit_of_measurement = PERCENTAGE

    def __init__(self, coordinator: BudWatchDataUpdateCoordinator, entry: BudWatchConfigEntry, part: str) -> None:
        super().__init__(coordinator, entry)
        self._part = part
        self._attr_name = f"{part.capitalize()} battery"

    @property
    def unique_id(self):
        """Uniquely identify this sensor so that it gets stored in the entity_registry."""
        return f"{self.address}_{self._part}_battery"

    def _part_state(self) -> PodState | CaseState | None:
        if self.budwatch_state is None:
            return None
        if self._part == "case":
            return self.budwatch_state.case_box
        return getattr(self.budwatch_state.pods, self._part)

    @property
    def native_value(self) -> int | None:
        part_state = self._part_state()
        return part_state.battery if part_state is not None else None

    @property
    def charging(self) -> bool | None:
        part_state = self._part_state()
        return part_state.is_charging if part_state is not None else None

    @property
    def icon(self) -> str | None:
        if self.charging:
            return "mdi:battery-charging"
        return None

    @property
    def extra_state_attributes(self):
        return {"charging": self.charging}


class BudWatchModelSensor(BudWatchStateEntity, SensorEntity):
    """The model the earbuds say they are."""

    _attr_name = "Model"
    _attr_entity_category = EntityCategory.DIAGNOSTIC
    _attr_icon = "mdi:earbuds"

    @property
    def unique_id(self):
        return f"{self.address}_model"

    @property
    def native_value(self) -> str | None:
        return self.budwatch_state.model.display_label if self.budwatch_state else None
