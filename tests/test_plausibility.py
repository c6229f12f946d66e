"""Test the advert plausibility checks."""

from __future__ import annotations

import logging

from custom_components.budwatch.plausibility import battery_step_diff, is_possible_desired_adv
from custom_components.budwatch.protocol import Advertisement, Model

from .const import ADDR_1, ADDR_2, make_received

RSSI_ANY = -127


def left(**kwargs) -> Advertisement:
    return Advertisement(make_received(broadcast_left=True, **kwargs))


def right(**kwargs) -> Advertisement:
    return Advertisement(make_received(broadcast_left=False, **kwargs))


def test_battery_step_diff():
    assert battery_step_diff(80, 70) == 1
    assert battery_step_diff(70, 80) == 1
    assert battery_step_diff(80, 60) == 2
    assert battery_step_diff(None, 60) == 0
    assert battery_step_diff(60, None) == 0
    assert battery_step_diff(100, 0) == 10


def test_first_advert_is_accepted():
    assert is_possible_desired_adv(left(), -80, None, None)


def test_rssi_floor(caplog):
    assert is_possible_desired_adv(left(rssi=-80), -80, None, None)
    with caplog.at_level(logging.WARNING):
        assert not is_possible_desired_adv(left(rssi=-81), -80, None, None)
    assert "RSSI is below the limit" in caplog.text


def test_same_address_skips_rotation_checks():
    # Big battery and RSSI moves are fine when the address hasn't changed.
    last = left(address=ADDR_1, rssi=-40, this_battery=8)
    adv = left(address=ADDR_1, rssi=-95, this_battery=3)
    assert is_possible_desired_adv(adv, RSSI_ANY, last, None)


def test_same_address_within_floor():
    last = left(address=ADDR_1, rssi=-40)
    assert is_possible_desired_adv(left(address=ADDR_1, rssi=-60), -80, last, None)
    assert not is_possible_desired_adv(left(address=ADDR_1, rssi=-100), -80, last, None)


def test_rotation_model_change(caplog):
    last = left(address=ADDR_1, model=Model.AIRPODS_PRO)
    adv = left(address=ADDR_2, model=Model.AIRPODS_2)
    with caplog.at_level(logging.WARNING):
        assert not is_possible_desired_adv(adv, RSSI_ANY, last, None)
    assert "model changed" in caplog.text


def test_rotation_battery_change(caplog):
    last = left(address=ADDR_1, this_battery=8, other_battery=8, case_battery=8)
    assert is_possible_desired_adv(
        left(address=ADDR_2, this_battery=7, other_battery=8, case_battery=9), RSSI_ANY, last, None
    )
    with caplog.at_level(logging.WARNING):
        assert not is_possible_desired_adv(left(address=ADDR_2, case_battery=6), RSSI_ANY, last, None)
    assert "battery changed too much" in caplog.text


def test_rotation_battery_missing_is_ignored():
    last = left(address=ADDR_1, this_battery=8, case_battery=0xF)
    adv = left(address=ADDR_2, this_battery=0xF, case_battery=2)
    assert is_possible_desired_adv(adv, RSSI_ANY, last, None)


def test_rotation_rssi(caplog):
    last = left(address=ADDR_1, rssi=-40)
    with caplog.at_level(logging.WARNING):
        assert is_possible_desired_adv(left(address=ADDR_2, rssi=-60), RSSI_ANY, last, None)
    assert "Address changed" in caplog.text

    caplog.clear()
    with caplog.at_level(logging.WARNING):
        assert not is_possible_desired_adv(left(address=ADDR_2, rssi=-100), RSSI_ANY, last, None)
    assert "RSSI moved too far" in caplog.text
    assert "Address changed" not in caplog.text


def test_address_not_logged_in_clear(caplog):
    last = left(address=ADDR_1)
    with caplog.at_level(logging.WARNING):
        assert is_possible_desired_adv(left(address=ADDR_2), RSSI_ANY, last, None)
    assert ADDR_1 not in caplog.text
    assert ADDR_2 not in caplog.text


def test_other_side_rssi(caplog):
    last_right = right(address=ADDR_2, rssi=-40)
    assert is_possible_desired_adv(left(address=ADDR_1, rssi=-90), RSSI_ANY, None, last_right)
    with caplog.at_level(logging.WARNING):
        assert not is_possible_desired_adv(left(address=ADDR_1, rssi=-91), RSSI_ANY, None, last_right)
    assert "RSSI too far from the right advert" in caplog.text


def test_right_side_uses_right_cache():
    # A right advert is checked against the right cache for rotation, not the left.
    last_left = left(address=ADDR_1, model=Model.AIRPODS_2, rssi=-50)
    last_right = right(address=ADDR_2, rssi=-50)
    assert is_possible_desired_adv(right(address=ADDR_2, rssi=-50), RSSI_ANY, last_left, last_right)
    assert not is_possible_desired_adv(
        right(address=ADDR_1, model=Model.AIRPODS_2, rssi=-50), RSSI_ANY, last_left, last_right
    )


def test_rejections_are_rate_limited(caplog):
    with caplog.at_level(logging.WARNING):
        for _ in range(5):
            assert not is_possible_desired_adv(left(rssi=-100), -80, None, None)
    assert caplog.text.count("RSSI is below the limit") == 1
