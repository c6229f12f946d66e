"""BudWatchEntity class."""

from __future__ import annotations

from typing import TYPE_CHECKING

from homeassistant.core import callback
from homeassistant.helpers import device_registry as dr
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DOMAIN

if TYPE_CHECKING:
    from . import BudWatchConfigEntry
    from .coordinator import BudWatchDataUpdateCoordinator
    from .state_manager import State


class BudWatchEntity(CoordinatorEntity):
    """
    Base for all BudWatch entities.

    All entities of a config entry hang off one device, the earbuds. The
    device name follows the name the earbuds are given by their host, or
    their model when the host hasn't named them.
    """

    _attr_should_poll = False
    _attr_has_entity_name = True

    def __init__(
        self,
        coordinator: BudWatchDataUpdateCoordinator,
        config_entry: BudWatchConfigEntry,
    ) -> None:
        super().__init__(coordinator)
        self.coordinator = coordinator
        self.config_entry = config_entry
        self.address = coordinator.address
        self._lastname = coordinator.device_name  # So we can track when we get a new name
        self.devreg = dr.async_get(coordinator.hass)

    @property
    def budwatch_state(self) -> State | None:
        return self.coordinator.state

    @callback
    def _handle_coordinator_update(self) -> None:
        """
        Handle updated data from the co-ordinator.

        Pushes a changed display name through to the device registry, unless
        the user has named the device themselves.
        """
        if self.coordinator.device_name != self._lastname:
            self._lastname = self.coordinator.device_name
            if self.device_entry and not self.device_entry.name_by_user:
                self.devreg.async_update_device(self.device_entry.id, name=self._lastname)
        self.async_write_ha_state()

    @property
    def device_info(self) -> DeviceInfo:
        """
        Implementing this creates an entry in the device registry.

        The bluetooth connection lets our device merge with any other
        integration's entry for the same earbuds.
        """
        return DeviceInfo(
            identifiers={(DOMAIN, self.address)},
            connections={(dr.CONNECTION_BLUETOOTH, self.address.upper())},
            name=self.coordinator.device_name,
            manufacturer="Apple",
            model=self.budwatch_state.model.display_label if self.budwatch_state else None,
        )


class BudWatchStateEntity(BudWatchEntity):
    """An entity that reflects the earbud state, and is unavailable without one."""

    @property
    def available(self) -> bool:
        return super().available and self.coordinator.scanner_available and self.coordinator.state is not None

