"""Test decoding of proximity-pairing adverts."""

from __future__ import annotations

import pytest

from custom_components.budwatch.const import VENDOR_ID
from custom_components.budwatch.exceptions import BudWatchContractError
from custom_components.budwatch.protocol import (
    Advertisement,
    Model,
    ReceivedData,
    Side,
    is_valid_payload,
    model_from_product_id,
    parse_adv_state,
)

from .const import ADDR_1, make_payload, make_received


def test_is_valid_payload():
    assert is_valid_payload(make_payload())
    assert not is_valid_payload(None)
    assert not is_valid_payload(b"")
    # Wrong length
    assert not is_valid_payload(make_payload()[:-1])
    assert not is_valid_payload(make_payload() + b"\x00")
    # Wrong packet type, or wrong declared length
    assert not is_valid_payload(b"\x10" + make_payload()[1:])
    assert not is_valid_payload(b"\x07\x18" + make_payload()[2:])


def test_is_desired_adv_only_looks_at_apple():
    assert Advertisement.is_desired_adv(make_received())
    other_vendor = ReceivedData(ADDR_1, -50, 0.0, {0x0006: make_payload()})
    assert not Advertisement.is_desired_adv(other_vendor)
    assert not Advertisement.is_desired_adv(ReceivedData(ADDR_1, -50, 0.0, {}))


def test_left_broadcaster():
    state = parse_adv_state(
        make_payload(
            broadcast_left=True,
            this_battery=7,
            other_battery=9,
            case_battery=3,
            this_in_ear=True,
            other_charging=True,
        )
    )
    assert state.model is Model.AIRPODS_PRO
    assert state.side is Side.LEFT
    assert state.pods.left.battery == 70
    assert state.pods.left.is_in_ear
    assert not state.pods.left.is_charging
    assert state.pods.right.battery == 90
    assert not state.pods.right.is_in_ear
    assert state.pods.right.is_charging
    assert state.case_box.battery == 30


def test_right_broadcaster_is_unflipped():
    state = parse_adv_state(
        make_payload(
            broadcast_left=False,
            this_battery=7,
            other_battery=9,
            this_in_ear=True,
            this_charging=True,
        )
    )
    assert state.side is Side.RIGHT
    assert state.pods.right.battery == 70
    assert state.pods.right.is_in_ear
    assert state.pods.right.is_charging
    assert state.pods.left.battery == 90
    assert not state.pods.left.is_in_ear
    assert not state.pods.left.is_charging


def test_battery_bounds():
    state = parse_adv_state(make_payload(this_battery=0, other_battery=10, case_battery=0xF))
    assert state.pods.left.battery == 0
    assert state.pods.right.battery == 100
    assert state.case_box.battery is None

    # Anything past 10 is unavailable, not just the 0xF sentinel.
    state = parse_adv_state(make_payload(this_battery=11, other_battery=0xF))
    assert state.pods.left.battery is None
    assert state.pods.right.battery is None


def test_case_flags():
    state = parse_adv_state(make_payload(both_in_case=True, case_charging=True, lid_closed=False))
    assert state.case_box.is_both_pods_in_case
    assert state.case_box.is_charging
    assert state.case_box.is_lid_opened

    state = parse_adv_state(make_payload(lid_closed=True))
    assert not state.case_box.is_both_pods_in_case
    assert not state.case_box.is_charging
    assert not state.case_box.is_lid_opened


def test_unknown_model():
    state = parse_adv_state(make_payload(model=0x1234))
    assert state.model is Model.UNKNOWN


def test_model_from_product_id():
    assert model_from_product_id(VENDOR_ID, 0x2014) is Model.AIRPODS_PRO_2
    assert model_from_product_id(VENDOR_ID, 0x1234) is Model.UNKNOWN
    assert model_from_product_id(VENDOR_ID, None) is Model.UNKNOWN
    assert model_from_product_id(0x0006, 0x2014) is Model.UNKNOWN
    assert model_from_product_id(None, 0x2014) is Model.UNKNOWN


def test_model_labels():
    for model in Model:
        assert model.display_label
    assert Model.AIRPODS_PRO.display_label == "AirPods Pro"


def test_side_opposite():
    assert Side.LEFT.opposite is Side.RIGHT
    assert Side.RIGHT.opposite is Side.LEFT


def test_advertisement():
    data = make_received(address=ADDR_1, rssi=-61, timestamp=12.5)
    adv = Advertisement(data)
    assert adv.address == ADDR_1
    assert adv.rssi == -61
    assert adv.timestamp == 12.5
    assert adv.side is Side.LEFT
    assert adv.adv_state == parse_adv_state(make_payload())
    assert adv == Advertisement(data)
    assert hash(adv) == hash(Advertisement(data))
    assert adv != Advertisement(make_received(address=ADDR_1, rssi=-62, timestamp=12.5))
    assert ADDR_1 not in repr(adv)


def test_advertisement_rejects_undesired():
    with pytest.raises(BudWatchContractError):
        Advertisement(ReceivedData(ADDR_1, -50, 0.0, {VENDOR_ID: b"\x07\x19\x01"}))


def test_desensitized_data():
    payload = make_payload()
    adv = Advertisement(make_received(payload))
    redacted = adv.desensitized_data()
    assert len(redacted) == len(payload)
    assert redacted[:10] == payload[:10]
    assert redacted[10:] == bytes(17)
