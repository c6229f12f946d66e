"""
BudWatchManager: glue between the advert stream, the bound earbuds and whoever
wants to know about their state.

The manager does not import Home Assistant. Everything it talks to is
injected through the small protocols below, which the coordinator
implements on top of HA (entities, media_player services, the device and
entity registries).
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

from .const import _LOGGER, DEFAULT_AUTOMATIC_EAR_DETECTION
from .exceptions import BudWatchContractError
from .protocol import Advertisement, Model, model_from_product_id
from .state_manager import StateManager, UpdateEvent
from .util import address_hash, clean_device_name

if TYPE_CHECKING:
    from .protocol import ReceivedData
    from .state_manager import State

type Cancellable = Callable[[], None]


class WatcherState(Enum):
    """State of the advert scanner feeding us."""

    STARTED = "started"
    STOPPED = "stopped"


class StatusListener(Protocol):
    """Receives the earbud state, and is told when to show/hide the popup."""

    def notify_state(self, state: State) -> None: ...

    def show(self) -> None: ...

    def hide(self) -> None: ...

    def set_available(self) -> None: ...

    def set_unavailable(self) -> None: ...

    def notify_disconnected(self) -> None: ...


class MediaTransport(Protocol):
    """Somewhere to send play/pause. Calls are fire-and-forget."""

    def play(self) -> None: ...

    def pause(self) -> None: ...


class BoundDevice(Protocol):
    """A paired device we have resolved from an address."""

    @property
    def name(self) -> str | None: ...

    @property
    def address(self) -> str: ...

    def is_connected(self) -> bool: ...

    def subscribe_connection_state(self, callback: Callable[[bool], None]) -> Cancellable: ...


class PairedDevice(Protocol):
    address: str
    name: str | None
    vendor_id: int | None
    product_id: int | None


class DeviceDirectory(Protocol):
    """Looks up paired devices by address."""

    def find_device(self, address: str) -> BoundDevice | None: ...

    def paired_devices(self) -> list[PairedDevice]: ...


def get_devices(directory: DeviceDirectory) -> list[PairedDevice]:
    """Return the paired devices that are earbuds we know how to read."""
    devices = directory.paired_devices()
    _LOGGER.info("Paired devices count: %d", len(devices))

    result = []
    for device in devices:
        model = model_from_product_id(device.vendor_id, device.product_id)
        _LOGGER.debug(
            "Device VendorId: %s, ProductId: %s, model: %s",
            device.vendor_id,
            device.product_id,
            model.name,
        )
        if model is not Model.UNKNOWN:
            result.append(device)

    _LOGGER.info("Earbud devices count: %d (filtered)", len(result))
    return result


class BudWatchManager:
    """
    Tracks one bound pair of earbuds.

    Every public method runs under one re-entrant lock, which is shared with
    the StateManager, so adverts, binding changes, connection changes, setting
    changes and timer ticks never interleave.
    """

    def __init__(
        self,
        status: StatusListener,
        media: MediaTransport,
        directory: DeviceDirectory,
        state_manager: StateManager | None = None,
    ) -> None:
        if state_manager is None:
            state_manager = StateManager()
        self._state_mgr = state_manager
        self._lock = state_manager.lock
        self._status = status
        self._media = media
        self._directory = directory
        self._bound_device: BoundDevice | None = None
        self._connection_unsub: Cancellable | None = None
        self._device_connected = False
        self._device_name = ""
        self._automatic_ear_detection = DEFAULT_AUTOMATIC_EAR_DETECTION

    @property
    def state_manager(self) -> StateManager:
        return self._state_mgr

    @property
    def bound_device(self) -> BoundDevice | None:
        return self._bound_device

    @property
    def device_connected(self) -> bool:
        return self._device_connected

    @property
    def automatic_ear_detection(self) -> bool:
        return self._automatic_ear_detection

    def on_rssi_min_changed(self, rssi_min: int) -> None:
        with self._lock:
            self._state_mgr.on_rssi_min_changed(rssi_min)

    def on_automatic_ear_detection_changed(self, enable: bool) -> None:
        with self._lock:
            self._automatic_ear_detection = enable

    def on_bound_device_address_changed(self, address: str | None) -> None:
        """Bind to the earbuds at address, or unbind if address is empty."""
        with self._lock:
            self._unbind()
            if self._state_mgr.disconnect():
                self._status.notify_disconnected()

            if not address:
                _LOGGER.info("Unbind device.")
                return

            _LOGGER.info("Bind a new device.")

            device = self._directory.find_device(address)
            if device is None:
                _LOGGER.error("Find device by address failed: %s", address_hash(address))
                return

            self._bound_device = device
            self._device_name = clean_device_name(device.name)
            self._connection_unsub = device.subscribe_connection_state(self.on_bound_device_connection_state_changed)
            self.on_bound_device_connection_state_changed(device.is_connected())

            _LOGGER.info("Bound device name: %s", device.name)

    def _unbind(self) -> None:
        if self._connection_unsub is not None:
            self._connection_unsub()
            self._connection_unsub = None
        self._bound_device = None
        self._device_connected = False
        self._device_name = ""

    def on_bound_device_connection_state_changed(self, connected: bool) -> None:
        with self._lock:
            do_disconnect = self._device_connected and not connected
            _LOGGER.info(
                "The device we bound is updated. current: %s, new: %s",
                self._device_connected,
                connected,
            )
            self._device_connected = connected

            if do_disconnect:
                _LOGGER.info("Bound device disconnected, resetting state.")
                if self._state_mgr.disconnect():
                    self._status.notify_disconnected()

    def on_advertisement_received(self, data: ReceivedData) -> bool:
        """
        Feed in an advert from the scanner.

        Returns True if the advert was one of ours to look at (even if the
        earbuds are currently disconnected and it was ignored), False otherwise.
        """
        with self._lock:
            if not Advertisement.is_desired_adv(data):
                return False

            adv = Advertisement(data)

            _LOGGER.debug(
                "Earbud advertisement received. Data: %s, Address Hash: %s, RSSI: %d",
                adv.desensitized_data().hex(),
                address_hash(data.address),
                data.rssi,
            )

            if not self._device_connected:
                _LOGGER.debug("Earbud advertisement received, but device disconnected.")
                return True

            if (event := self._state_mgr.on_adv_received(adv)) is not None:
                self._on_state_changed(event)
            return True

    def on_adv_watcher_state_changed(self, state: WatcherState, error: str | None = None) -> None:
        with self._lock:
            if state is WatcherState.STARTED:
                self._status.set_available()
                _LOGGER.info("Bluetooth advert watcher started.")
            elif state is WatcherState.STOPPED:
                self._status.set_unavailable()
                _LOGGER.warning("Bluetooth advert watcher stopped. Error: '%s'.", error)
            else:
                raise BudWatchContractError(f"Unhandled advert watcher state: '{state}'")

    def tick(self, now: float | None = None) -> None:
        """Run the state manager's timers. Call this periodically."""
        with self._lock:
            result = self._state_mgr.check_timers(now)
            if result.lost:
                self._status.notify_disconnected()
            if result.event is not None:
                self._on_state_changed(result.event)

    def _on_state_changed(self, event: UpdateEvent) -> None:
        old_state = event.previous
        new_state = dataclasses.replace(
            event.current,
            display_name=self._device_name or event.current.model.display_label,
        )

        self._status.notify_state(new_state)

        # Lid opened
        new_lid_opened = new_state.is_lid_opened
        old_lid_opened = old_state.is_lid_opened if old_state is not None else False
        if old_lid_opened != new_lid_opened:
            self._on_lid_opened(new_lid_opened)

        # Both in ear
        if old_state is not None:
            new_both_in_ear = new_state.is_both_in_ear
            if old_state.is_both_in_ear != new_both_in_ear:
                self._on_both_in_ear(new_both_in_ear)

    def _on_lid_opened(self, opened: bool) -> None:
        if opened:
            self._status.show()
        else:
            self._status.hide()

    def _on_both_in_ear(self, is_both_in_ear: bool) -> None:
        if not self._automatic_ear_detection:
            _LOGGER.info("automatic_ear_detection: Do nothing because it is disabled. (%s)", is_both_in_ear)
            return

        if is_both_in_ear:
            self._media.play()
        else:
            self._media.pause()

    def to_dict(self) -> dict[str, Any]:
        """Summarise for diagnostics."""
        with self._lock:
            return {
                "bound_device": address_hash(self._bound_device.address) if self._bound_device else None,
                "device_name": self._device_name,
                "device_connected": self._device_connected,
                "automatic_ear_detection": self._automatic_ear_detection,
                "state_manager": self._state_mgr.to_dict(),
            }
