"""
Heuristics for deciding whether an advert came from *our* earbuds.

Proximity-pairing adverts use a random, rotating address and are not
authenticated, so anyone's earbuds in range look much the same as ours. We
can't prove identity, but we can refuse adverts that imply the device
changed more than a real one could between two adverts: a different model,
a battery jump of more than one step, or a big swing in signal strength.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .const import _LOGGER, _LOGGER_SPAM_LESS, BATTERY_SCALE, MAX_BATTERY_STEP_DIFF, MAX_RSSI_DIFF
from .protocol import Side
from .util import address_hash

if TYPE_CHECKING:
    from .protocol import Advertisement


def battery_step_diff(new: int | None, old: int | None) -> int:
    """
    Absolute difference between two battery readings in 10% steps.

    Readings that are missing on either side can't be compared and count as
    no difference.
    """
    if new is None or old is None:
        return 0
    return abs(new // BATTERY_SCALE - old // BATTERY_SCALE)


def is_possible_desired_adv(
    adv: Advertisement,
    rssi_min: int,
    last_left: Advertisement | None,
    last_right: Advertisement | None,
) -> bool:
    """
    Return True if adv plausibly came from the same earbuds as the cached adverts.

    last_left / last_right are the most recently accepted adverts from each side,
    or None. Rejections are logged (rate-limited) with the rule that failed.
    """
    if adv.rssi < rssi_min:
        _LOGGER_SPAM_LESS.warning(
            "reject_rssi_min",
            "Ignoring advert, RSSI is below the limit. curr: %d min: %d",
            adv.rssi,
            rssi_min,
        )
        return False

    state = adv.adv_state
    if adv.side is Side.LEFT:
        last_adv, last_other_adv = last_left, last_right
    else:
        last_adv, last_other_adv = last_right, last_left

    # Either the random non-resolvable address of our earbuds has rotated, or
    # this is someone else's.
    if last_adv is not None and last_adv.address != adv.address:
        last_state = last_adv.adv_state

        if state.model != last_state.model:
            _LOGGER_SPAM_LESS.warning(
                "reject_model",
                "Ignoring advert, model changed. new: %s old: %s",
                state.model.name,
                last_state.model.name,
            )
            return False

        left_diff = battery_step_diff(state.pods.left.battery, last_state.pods.left.battery)
        right_diff = battery_step_diff(state.pods.right.battery, last_state.pods.right.battery)
        case_diff = battery_step_diff(state.case_box.battery, last_state.case_box.battery)
        if max(left_diff, right_diff, case_diff) > MAX_BATTERY_STEP_DIFF:
            _LOGGER_SPAM_LESS.warning(
                "reject_battery",
                "Ignoring advert, battery changed too much. l: %d r: %d c: %d",
                left_diff,
                right_diff,
                case_diff,
            )
            return False

        rssi_diff = abs(adv.rssi - last_adv.rssi)
        if rssi_diff > MAX_RSSI_DIFF:
            _LOGGER_SPAM_LESS.warning(
                "reject_rssi_same_side",
                "Ignoring advert, RSSI moved too far from the last %s advert: %d",
                adv.side.value,
                rssi_diff,
            )
            return False

        _LOGGER.warning(
            "Address changed (%s -> %s), but it might still be the same device.",
            address_hash(last_adv.address),
            address_hash(adv.address),
        )

    if last_other_adv is not None:
        rssi_diff = abs(adv.rssi - last_other_adv.rssi)
        if rssi_diff > MAX_RSSI_DIFF:
            _LOGGER_SPAM_LESS.warning(
                "reject_rssi_other_side",
                "Ignoring advert, RSSI too far from the %s advert: %d",
                adv.side.opposite.value,
                rssi_diff,
            )
            return False

    return True
