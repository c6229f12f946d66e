"""DataUpdateCoordinator for BudWatch earbud status."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from bluetooth_data_tools import monotonic_time_coarse
from homeassistant.components import bluetooth
from homeassistant.components.media_player import DOMAIN as MEDIA_PLAYER_DOMAIN
from homeassistant.const import ATTR_ENTITY_ID, SERVICE_MEDIA_PAUSE, SERVICE_MEDIA_PLAY
from homeassistant.core import Event, EventStateChangedData, HomeAssistant, callback
from homeassistant.helpers import device_registry as dr
from homeassistant.helpers.event import async_track_state_change_event
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator

from .const import (
    _LOGGER,
    CONF_ADDRESS,
    CONF_CONNECTION_ENTITY,
    CONF_MEDIA_PLAYER,
    CONNECTED_STATES,
    DOMAIN,
    EVENT_DISCONNECTED,
    EVENT_LID,
    UPDATE_INTERVAL,
    VENDOR_ID,
)
from .manager import BudWatchManager, Cancellable, WatcherState
from .protocol import Advertisement, Model, ReceivedData
from .util import address_hash, is_mac_address, mac_norm

if TYPE_CHECKING:
    from homeassistant.components.bluetooth import BaseHaScanner, BluetoothChange, BluetoothServiceInfoBleak

    from . import BudWatchConfigEntry
    from .state_manager import State


def scanner_stamps(scanner: BaseHaScanner) -> dict[str, float] | None:
    """The scanner's last-seen stamp per address, if it keeps them."""
    # discovered_device_timestamps became public in later habluetooth releases.
    if hasattr(scanner, "discovered_device_timestamps"):
        return scanner.discovered_device_timestamps  # type: ignore
    if hasattr(scanner, "_discovered_device_timestamps"):
        return scanner._discovered_device_timestamps  # type: ignore # noqa: SLF001
    return None


def async_scanner_adverts(hass: HomeAssistant):
    """
    Yield (scanner, stamp, name, ReceivedData) for every Apple advert the scanners hold.

    The bluetooth manager drops most Apple adverts before any registered
    callback sees them, proximity pairing included, and only calls back when
    an advert changes. Each scanner's own history keeps the latest advert per
    address regardless, so that is where we read them from.
    """
    for scanner in bluetooth.async_current_scanners(hass):
        stamps = scanner_stamps(scanner)
        for address, (device, advertisement_data) in scanner.discovered_devices_and_advertisement_data.items():
            if VENDOR_ID not in advertisement_data.manufacturer_data:
                continue
            if advertisement_data.rssi == -127:
                # BlueZ is pushing bogus adverts for paired but absent devices.
                continue
            stamp = stamps.get(address) if stamps is not None else None
            yield (
                scanner,
                stamp,
                advertisement_data.local_name or device.name,
                ReceivedData(
                    address=device.address,
                    rssi=advertisement_data.rssi,
                    timestamp=stamp if stamp is not None else monotonic_time_coarse(),
                    manufacturer_data=advertisement_data.manufacturer_data,
                ),
            )


@dataclass
class HassPairedDevice:
    """An earbud advertiser Home Assistant has heard, for the config flow."""

    address: str
    name: str | None
    vendor_id: int | None
    product_id: int | None


class HassBoundDevice:
    """
    The earbuds we are bound to.

    HA doesn't know whether earbuds are connected to their host (phone, PC),
    so the user can point us at an entity that does, like a companion app's
    bluetooth connection sensor. Without one, the earbuds are always connected.
    """

    def __init__(self, hass: HomeAssistant, address: str, name: str | None, connection_entity: str | None) -> None:
        self.hass = hass
        self._address = address
        self._name = name
        self.connection_entity = connection_entity

    @property
    def address(self) -> str:
        return self._address

    @property
    def name(self) -> str | None:
        return self._name

    def is_connected(self) -> bool:
        if not self.connection_entity:
            return True
        state = self.hass.states.get(self.connection_entity)
        return state is not None and state.state.lower() in CONNECTED_STATES

    def subscribe_connection_state(self, callback_fn: Callable[[bool], None]) -> Cancellable:
        if not self.connection_entity:
            return lambda: None

        @callback
        def _state_changed(event: Event[EventStateChangedData]) -> None:
            new_state = event.data["new_state"]
            callback_fn(new_state is not None and new_state.state.lower() in CONNECTED_STATES)

        return async_track_state_change_event(self.hass, [self.connection_entity], _state_changed)


class HassDeviceDirectory:
    """Resolves earbud addresses using the device registry and the bluetooth history."""

    def __init__(self, hass: HomeAssistant, connection_entity: str | None) -> None:
        self.hass = hass
        self.connection_entity = connection_entity
        self.dr = dr.async_get(hass)

    def find_device(self, address: str) -> HassBoundDevice | None:
        """
        Look up the earbuds at address.

        HA keeps no list of what a phone has paired with, so any well-formed
        address is accepted. The name comes from whichever integration has
        registered the address, or from the last advert heard from it.
        """
        address = mac_norm(address)
        if not is_mac_address(address):
            return None
        for connection_address in (address.upper(), address):
            if device_entry := self.dr.async_get_device(connections={(dr.CONNECTION_BLUETOOTH, connection_address)}):
                return HassBoundDevice(
                    self.hass,
                    address,
                    device_entry.name_by_user or device_entry.name,
                    self.connection_entity,
                )
        service_info = bluetooth.async_last_service_info(self.hass, address, connectable=False)
        return HassBoundDevice(
            self.hass,
            address,
            service_info.name if service_info is not None else None,
            self.connection_entity,
        )

    def paired_devices(self) -> list[HassPairedDevice]:
        """
        List the advertisers that look like earbuds.

        BLE adverts don't carry PnP ids, so the product id is the model id
        from the advert itself.
        """
        devices: dict[str, HassPairedDevice] = {}
        for _scanner, _stamp, name, data in async_scanner_adverts(self.hass):
            address = mac_norm(data.address)
            if address in devices or not Advertisement.is_desired_adv(data):
                continue
            model = Advertisement(data).adv_state.model
            devices[address] = HassPairedDevice(
                address=address,
                name=name,
                vendor_id=VENDOR_ID,
                product_id=int(model) if model is not Model.UNKNOWN else None,
            )
        return list(devices.values())


class BudWatchDataUpdateCoordinator(DataUpdateCoordinator):
    """
    Connects the BudWatchManager to Home Assistant.

    Each refresh reads the adverts the bluetooth scanners have heard since the
    last one, then does the things that need a clock: checking the manager's
    timers and whether any scanner is still running.

    The coordinator is also the manager's StatusListener and MediaTransport.
    Entities read the state straight off the coordinator.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        entry: BudWatchConfigEntry,
    ) -> None:
        """Initialize."""
        super().__init__(
            hass,
            _LOGGER,
            config_entry=entry,
            name=DOMAIN,
            update_interval=timedelta(seconds=UPDATE_INTERVAL),
        )

        options = {**entry.data, **entry.options}
        self.address: str = mac_norm(entry.data[CONF_ADDRESS])
        self.media_player: str | None = options.get(CONF_MEDIA_PLAYER) or None
        self.directory = HassDeviceDirectory(hass, options.get(CONF_CONNECTION_ENTITY) or None)
        self.manager = BudWatchManager(self, self, self.directory)

        # What our StatusListener side has been told.
        self.state: State | None = None
        self.popup_visible: bool = False
        self.scanner_available: bool = False

        self._watcher_state: WatcherState | None = None
        self.stamp_last_gather: float = 0
        # Last advert stamp fed to the manager, per (scanner source, address).
        self._advert_stamps: dict[tuple[str, str], float] = {}

        self.config_entry.async_on_unload(
            bluetooth.async_register_callback(
                self.hass,
                self.async_handle_advert,
                bluetooth.BluetoothCallbackMatcher(manufacturer_id=VENDOR_ID, connectable=False),
                bluetooth.BluetoothScanningMode.PASSIVE,
            )
        )

    @property
    def device_name(self) -> str:
        if self.state is not None and self.state.display_name:
            return self.state.display_name
        return self.config_entry.title

    @callback
    def async_bind(self) -> None:
        """Bind the manager to the configured earbuds."""
        self.manager.on_bound_device_address_changed(self.address)

    @callback
    def async_unbind(self) -> None:
        self.manager.on_bound_device_address_changed(None)

    @callback
    def async_handle_advert(
        self,
        service_info: BluetoothServiceInfoBleak,
        change: BluetoothChange,
    ) -> None:
        """
        Handle an incoming advert callback from the bluetooth integration.

        Earbud adverts mostly never make it here, and the ones that do only come
        when they change, so this is no good for tracking the earbuds. It *is*
        good for gathering sooner if our refreshes have stalled.
        """
        if self.stamp_last_gather < monotonic_time_coarse() - (UPDATE_INTERVAL * 2):
            self.async_gather_adverts()

    @callback
    def async_gather_adverts(self) -> None:
        """Feed the manager every advert the scanners have heard since the last gather."""
        self.stamp_last_gather = monotonic_time_coarse()
        advert_stamps: dict[tuple[str, str], float] = {}
        for scanner, stamp, _name, data in async_scanner_adverts(self.hass):
            key = (scanner.source, data.address)
            last_stamp = self._advert_stamps.get(key)
            if last_stamp is not None and (stamp is None or stamp <= last_stamp):
                # Already processed. Scanners that keep no stamps get one go per address.
                advert_stamps[key] = last_stamp
                continue
            advert_stamps[key] = stamp if stamp is not None else data.timestamp
            self.manager.on_advertisement_received(data)
        # Addresses the scanners have forgotten are dropped here.
        self._advert_stamps = advert_stamps

    async def _async_update_data(self):
        """Implementation of DataUpdateCoordinator update_data function."""
        self._async_check_scanners()
        self.async_gather_adverts()
        self.manager.tick()
        return self.state

    @callback
    def _async_check_scanners(self) -> None:
        """Report scanner availability changes to the manager."""
        if bluetooth.async_scanner_count(self.hass, connectable=False) > 0:
            watcher_state = WatcherState.STARTED
        else:
            watcher_state = WatcherState.STOPPED
        if watcher_state is not self._watcher_state:
            self._watcher_state = watcher_state
            error = None if watcher_state is WatcherState.STARTED else "no bluetooth scanners available"
            self.manager.on_adv_watcher_state_changed(watcher_state, error)

    # StatusListener

    def notify_state(self, state: State) -> None:
        self.state = state
        self.async_update_listeners()

    def show(self) -> None:
        self.popup_visible = True
        self.hass.bus.async_fire(EVENT_LID, {CONF_ADDRESS: self.address, "opened": True})
        self.async_update_listeners()

    def hide(self) -> None:
        self.popup_visible = False
        self.hass.bus.async_fire(EVENT_LID, {CONF_ADDRESS: self.address, "opened": False})
        self.async_update_listeners()

    def set_available(self) -> None:
        self.scanner_available = True
        self.async_update_listeners()

    def set_unavailable(self) -> None:
        self.scanner_available = False
        self.async_update_listeners()

    def notify_disconnected(self) -> None:
        self.state = None
        self.popup_visible = False
        self.hass.bus.async_fire(EVENT_DISCONNECTED, {CONF_ADDRESS: self.address})
        self.async_update_listeners()

    # MediaTransport

    def play(self) -> None:
        self._async_call_media_service(SERVICE_MEDIA_PLAY)

    def pause(self) -> None:
        self._async_call_media_service(SERVICE_MEDIA_PAUSE)

    @callback
    def _async_call_media_service(self, service: str) -> None:
        if self.media_player is None:
            _LOGGER.debug("No media player configured, not sending %s", service)
            return
        _LOGGER.debug("Sending %s to %s", service, self.media_player)
        self.config_entry.async_create_background_task(
            self.hass,
            self.hass.services.async_call(
                MEDIA_PLAYER_DOMAIN,
                service,
                {ATTR_ENTITY_ID: self.media_player},
                blocking=False,
            ),
            f"{DOMAIN} {service}",
        )

    def to_dict(self) -> dict:
        """Dump our state for diagnostics."""
        return {
            "address": address_hash(self.address),
            "media_player": self.media_player,
            "connection_entity": self.directory.connection_entity,
            "scanner_available": self.scanner_available,
            "popup_visible": self.popup_visible,
            "state": repr(self.state),
            "manager": self.manager.to_dict(),
        }
