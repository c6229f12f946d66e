"""
Decoding of the earbuds' proximity-pairing advertisement.

The earbuds (and their case, via whichever earbud is broadcasting) announce
their status in the manufacturer data of a BLE advert under Apple's company id.
Either pod can be the broadcaster, and each broadcast carries the status of
*both* pods and the case, described relative to the broadcasting pod ("this
pod" / "the other pod"). We unflip that here so everything downstream only
deals in left and right.

Layout of the manufacturer data (company id already stripped by bleak):

    0       packet type, 0x07 for proximity pairing
    1       remaining length, 0x19
    2       prefix
    3-4     model id, uint16 little-endian
    5       status bits: 1 this pod in ear, 2 both pods in case,
            3 other pod in ear, 5 broadcaster is the left pod
    6       low nibble this pod's battery, high nibble the other pod's
    7       low nibble case battery, bit 4 this pod charging,
            bit 5 other pod charging, bit 6 case charging
    8       lid: bits 0-2 open counter, bit 3 lid closed
    9       colour
    10-26   reserved and encrypted payload

Battery nibbles are 0-10 in 10% steps; 0xF means "not reported".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import TYPE_CHECKING, NamedTuple

from .const import (
    BATTERY_MAX_RAW,
    BATTERY_SCALE,
    PROXIMITY_PAIRING_LENGTH,
    PROXIMITY_PAIRING_SIZE,
    PROXIMITY_PAIRING_TYPE,
    VENDOR_ID,
)
from .exceptions import BudWatchContractError

if TYPE_CHECKING:
    from collections.abc import Mapping

_OFFSET_MODEL = 3
_OFFSET_STATUS = 5
_OFFSET_POD_BATTERY = 6
_OFFSET_CASE = 7
_OFFSET_LID = 8
# Everything from here on is either unknown or the encrypted payload, which is
# unique per device. Zeroed when we log adverts.
_OFFSET_SENSITIVE = 10

_STATUS_THIS_IN_EAR = 0x02
_STATUS_BOTH_IN_CASE = 0x04
_STATUS_OTHER_IN_EAR = 0x08
_STATUS_BROADCAST_LEFT = 0x20

_CASE_THIS_CHARGING = 0x10
_CASE_OTHER_CHARGING = 0x20
_CASE_CHARGING = 0x40

_LID_CLOSED = 0x08


class Side(Enum):
    """Which earbud broadcast an advert."""

    LEFT = "left"
    RIGHT = "right"

    @property
    def opposite(self) -> Side:
        return Side.RIGHT if self is Side.LEFT else Side.LEFT


class Model(IntEnum):
    """Known earbud models, by the model id they advertise."""

    UNKNOWN = 0
    AIRPODS_1 = 0x2002
    AIRPODS_2 = 0x200F
    AIRPODS_3 = 0x2013
    AIRPODS_PRO = 0x200E
    AIRPODS_PRO_2 = 0x2014
    AIRPODS_MAX = 0x200A
    POWERBEATS_PRO = 0x200B
    BEATS_FIT_PRO = 0x2012

    @classmethod
    def from_model_id(cls, model_id: int) -> Model:
        try:
            return cls(model_id)
        except ValueError:
            return cls.UNKNOWN

    @property
    def display_label(self) -> str:
        """The name we show when the host hasn't given us a better one."""
        return _MODEL_LABELS[self]


_MODEL_LABELS: dict[Model, str] = {
    Model.UNKNOWN: "Unknown",
    Model.AIRPODS_1: "AirPods 1",
    Model.AIRPODS_2: "AirPods 2",
    Model.AIRPODS_3: "AirPods 3",
    Model.AIRPODS_PRO: "AirPods Pro",
    Model.AIRPODS_PRO_2: "AirPods Pro 2",
    Model.AIRPODS_MAX: "AirPods Max",
    Model.POWERBEATS_PRO: "Powerbeats Pro",
    Model.BEATS_FIT_PRO: "Beats Fit Pro",
}


def model_from_product_id(vendor_id: int | None, product_id: int | None) -> Model:
    """
    Identify the model of a paired device from its PnP vendor/product ids.

    The classic-bluetooth product id of the earbuds is the same number as the
    model id they advertise over BLE.
    """
    if vendor_id != VENDOR_ID or product_id is None:
        return Model.UNKNOWN
    return Model.from_model_id(product_id)


@dataclass(frozen=True)
class PodState:
    """Status of a single earbud. battery is in percent, None if not reported."""

    battery: int | None = None
    is_charging: bool = False
    is_in_ear: bool = False


@dataclass(frozen=True)
class Pods:
    left: PodState = field(default_factory=PodState)
    right: PodState = field(default_factory=PodState)


@dataclass(frozen=True)
class CaseState:
    """Status of the charging case. battery is in percent, None if not reported."""

    battery: int | None = None
    is_charging: bool = False
    is_both_pods_in_case: bool = False
    is_lid_opened: bool = False


@dataclass(frozen=True)
class AdvState:
    """Everything a single advert tells us, already unflipped to left/right."""

    model: Model = Model.UNKNOWN
    side: Side = Side.LEFT
    pods: Pods = field(default_factory=Pods)
    case_box: CaseState = field(default_factory=CaseState)


class ReceivedData(NamedTuple):
    """An advert as the scanner handed it to us."""

    address: str
    rssi: int
    timestamp: float
    manufacturer_data: Mapping[int, bytes]


def _battery(nibble: int) -> int | None:
    if nibble > BATTERY_MAX_RAW:
        return None
    return nibble * BATTERY_SCALE


def is_valid_payload(payload: bytes | None) -> bool:
    """Check the payload has the proximity-pairing shape we know how to read."""
    return (
        payload is not None
        and len(payload) == PROXIMITY_PAIRING_SIZE
        and payload[0] == PROXIMITY_PAIRING_TYPE
        and payload[1] == PROXIMITY_PAIRING_LENGTH
    )


def parse_adv_state(payload: bytes) -> AdvState:
    """Decode a validated proximity-pairing payload."""
    status = payload[_OFFSET_STATUS]
    pod_battery = payload[_OFFSET_POD_BATTERY]
    case = payload[_OFFSET_CASE]

    side = Side.LEFT if status & _STATUS_BROADCAST_LEFT else Side.RIGHT

    this_pod = PodState(
        battery=_battery(pod_battery & 0x0F),
        is_charging=bool(case & _CASE_THIS_CHARGING),
        is_in_ear=bool(status & _STATUS_THIS_IN_EAR),
    )
    other_pod = PodState(
        battery=_battery(pod_battery >> 4),
        is_charging=bool(case & _CASE_OTHER_CHARGING),
        is_in_ear=bool(status & _STATUS_OTHER_IN_EAR),
    )
    if side is Side.LEFT:
        pods = Pods(left=this_pod, right=other_pod)
    else:
        pods = Pods(left=other_pod, right=this_pod)

    return AdvState(
        model=Model.from_model_id(int.from_bytes(payload[_OFFSET_MODEL : _OFFSET_MODEL + 2], byteorder="little")),
        side=side,
        pods=pods,
        case_box=CaseState(
            battery=_battery(case & 0x0F),
            is_charging=bool(case & _CASE_CHARGING),
            is_both_pods_in_case=bool(status & _STATUS_BOTH_IN_CASE),
            is_lid_opened=not payload[_OFFSET_LID] & _LID_CLOSED,
        ),
    )


class Advertisement:
    """
    A decoded proximity-pairing advert along with where and when it was heard.

    Only construct one from data that `is_desired_adv` accepts, anything else
    is a bug in the caller and raises BudWatchContractError.
    """

    __slots__ = ("_data", "_payload", "_state")

    def __init__(self, data: ReceivedData) -> None:
        if not self.is_desired_adv(data):
            raise BudWatchContractError(f"Advert from {data.address} is not a proximity pairing advert")
        self._data = data
        self._payload = bytes(data.manufacturer_data[VENDOR_ID])
        self._state = parse_adv_state(self._payload)

    @staticmethod
    def is_desired_adv(data: ReceivedData) -> bool:
        """True if the advert carries a proximity-pairing payload we can decode."""
        return is_valid_payload(data.manufacturer_data.get(VENDOR_ID))

    @property
    def address(self) -> str:
        return self._data.address

    @property
    def rssi(self) -> int:
        return self._data.rssi

    @property
    def timestamp(self) -> float:
        return self._data.timestamp

    @property
    def adv_state(self) -> AdvState:
        return self._state

    @property
    def side(self) -> Side:
        return self._state.side

    def desensitized_data(self) -> bytes:
        """The payload with the per-device bytes zeroed, for logging only."""
        return self._payload[:_OFFSET_SENSITIVE] + bytes(len(self._payload) - _OFFSET_SENSITIVE)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Advertisement):
            return NotImplemented
        return self._data == other._data

    def __hash__(self) -> int:
        return hash((self._data.address, self._data.timestamp, self._payload))

    def __repr__(self) -> str:
        return f"Advertisement({self._state.model.name} {self._state.side.value} rssi={self.rssi})"
