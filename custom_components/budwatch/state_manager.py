"""
Reconciliation of left and right adverts into a single earbud state.

Each earbud takes turns broadcasting, and each broadcast describes both pods
and the case. We keep the latest accepted advert from each side and build one
State from the two, field group by field group, always taking the freshest
side that actually reported that group. Adverts that change nothing produce
no event.

Timers are deadlines (monotonic seconds) that get pushed back on activity and
are evaluated by check_timers(), which the owner calls periodically:

- lost: no accepted advert from either side for LOST_TIMEOUT, forget everything.
- reset (per side): nothing from that side for STATE_RESET_TIMEOUT, forget that side.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, NamedTuple

from bluetooth_data_tools import monotonic_time_coarse

from .const import _LOGGER, DEFAULT_RSSI_MIN, LOST_TIMEOUT, STATE_RESET_TIMEOUT
from .plausibility import is_possible_desired_adv
from .protocol import AdvState, CaseState, Model, Pods, Side
from .util import address_hash

if TYPE_CHECKING:
    from .protocol import Advertisement


@dataclass(frozen=True)
class State:
    """The merged, canonical status of the earbuds."""

    model: Model = Model.UNKNOWN
    pods: Pods = field(default_factory=Pods)
    case_box: CaseState = field(default_factory=CaseState)
    display_name: str | None = None

    @property
    def is_lid_opened(self) -> bool:
        """Lid is open with both pods still inside, ie the user is about to take them out."""
        return self.case_box.is_lid_opened and self.case_box.is_both_pods_in_case

    @property
    def is_both_in_ear(self) -> bool:
        return self.pods.left.is_in_ear and self.pods.right.is_in_ear


class UpdateEvent(NamedTuple):
    """A change of canonical state. previous is None for the first state after a reset."""

    previous: State | None
    current: State


class CachedAdv(NamedTuple):
    adv: Advertisement
    stamp: float


class TimerResult(NamedTuple):
    """What check_timers() did: an update from a side expiring, and/or losing the device."""

    event: UpdateEvent | None = None
    lost: bool = False


def pick_side(
    left: CachedAdv | None,
    right: CachedAdv | None,
    available: Callable[[AdvState], bool],
) -> AdvState | None:
    """
    Choose which side's advert to take a field group from.

    If both sides have the group available the more recently received one wins
    (right on a tie), otherwise whichever has it. None if neither does, in
    which case the group stays unavailable.
    """
    left_ok = left is not None and available(left.adv.adv_state)
    right_ok = right is not None and available(right.adv.adv_state)
    if left_ok and right_ok:
        return left.adv.adv_state if left.stamp > right.stamp else right.adv.adv_state
    if left_ok:
        return left.adv.adv_state
    if right_ok:
        return right.adv.adv_state
    return None


def merge_state(left: CachedAdv | None, right: CachedAdv | None) -> State:
    """Build a State from the cached adverts of each side."""
    model_src = pick_side(left, right, lambda s: s.model != Model.UNKNOWN)
    left_src = pick_side(left, right, lambda s: s.pods.left.battery is not None)
    right_src = pick_side(left, right, lambda s: s.pods.right.battery is not None)
    case_src = pick_side(left, right, lambda s: s.case_box.battery is not None)

    empty = AdvState()
    return State(
        model=(model_src or empty).model,
        pods=Pods(
            left=(left_src or empty).pods.left,
            right=(right_src or empty).pods.right,
        ),
        case_box=(case_src or empty).case_box,
    )


class StateManager:
    """
    Owns the per-side advert caches and the canonical State.

    All public methods take the lock, which may be shared with an owner that
    needs its own operations serialised with ours (see BudWatchManager).
    """

    def __init__(
        self,
        lock: threading.RLock | None = None,
        clock: Callable[[], float] = monotonic_time_coarse,
    ) -> None:
        self._lock = lock if lock is not None else threading.RLock()
        self._clock = clock
        self._rssi_min: int = DEFAULT_RSSI_MIN
        self._adv: dict[Side, CachedAdv | None] = {Side.LEFT: None, Side.RIGHT: None}
        self._cached_state: State | None = None
        self._lost_deadline: float | None = None
        self._reset_deadline: dict[Side, float | None] = {Side.LEFT: None, Side.RIGHT: None}

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    @property
    def current_state(self) -> State | None:
        with self._lock:
            return self._cached_state

    @property
    def rssi_min(self) -> int:
        return self._rssi_min

    def on_rssi_min_changed(self, rssi_min: int) -> None:
        """Set the RSSI floor for adverts from now on. Cached adverts are kept."""
        with self._lock:
            self._rssi_min = int(rssi_min)

    def on_adv_received(self, adv: Advertisement) -> UpdateEvent | None:
        """Take in a decoded advert. Returns an UpdateEvent if the canonical state changed."""
        with self._lock:
            last_left = self._adv[Side.LEFT]
            last_right = self._adv[Side.RIGHT]
            if not is_possible_desired_adv(
                adv,
                self._rssi_min,
                last_left.adv if last_left is not None else None,
                last_right.adv if last_right is not None else None,
            ):
                return None

            self._update_adv(adv)
            return self._update_state()

    def disconnect(self) -> bool:
        """
        Forget everything. Returns True if there was a state to forget.

        Called when the earbuds are unbound or disconnect from their host.
        """
        with self._lock:
            _LOGGER.info("StateManager: Disconnect.")
            return self._reset_all()

    def check_timers(self, now: float | None = None) -> TimerResult:
        """
        Fire any deadlines that have passed.

        Side resets go first, so that if one side expires while the other is
        still fresh we can publish the reduced state. If that empties both
        caches there is nothing left to merge and the lost deadline (which is
        never earlier than the last reset deadline) takes care of the rest.
        """
        with self._lock:
            if now is None:
                now = self._clock()
            event = None
            for side in Side:
                deadline = self._reset_deadline[side]
                if deadline is not None and now >= deadline:
                    self._reset_deadline[side] = None
                    if self._do_state_reset(side) and any(self._adv.values()):
                        event = self._update_state() or event

            lost = False
            if self._lost_deadline is not None and now >= self._lost_deadline:
                self._lost_deadline = None
                lost = self._do_lost()
            return TimerResult(event=None if lost else event, lost=lost)

    def _update_adv(self, adv: Advertisement) -> None:
        now = self._clock()
        self._lost_deadline = now + LOST_TIMEOUT
        self._reset_deadline[adv.side] = now + STATE_RESET_TIMEOUT
        self._adv[adv.side] = CachedAdv(adv, now)

    def _update_state(self) -> UpdateEvent | None:
        new_state = merge_state(self._adv[Side.LEFT], self._adv[Side.RIGHT])
        if new_state == self._cached_state:
            return None
        old_state = self._cached_state
        self._cached_state = new_state
        return UpdateEvent(previous=old_state, current=new_state)

    def _reset_all(self) -> bool:
        had_state = self._cached_state is not None
        self._adv[Side.LEFT] = None
        self._adv[Side.RIGHT] = None
        self._cached_state = None
        self._lost_deadline = None
        self._reset_deadline[Side.LEFT] = None
        self._reset_deadline[Side.RIGHT] = None
        return had_state

    def _do_lost(self) -> bool:
        if self._cached_state is not None:
            _LOGGER.info("StateManager: Device is lost.")
        return self._reset_all()

    def _do_state_reset(self, side: Side) -> bool:
        if self._adv[side] is None:
            return False
        _LOGGER.info("StateManager: State reset for side: %s", side.value)
        self._adv[side] = None
        return True

    def to_dict(self) -> dict[str, Any]:
        """Summarise internals for diagnostics. Addresses are hashed."""
        with self._lock:
            now = self._clock()
            out: dict[str, Any] = {"rssi_min": self._rssi_min}
            for side in Side:
                cached = self._adv[side]
                if cached is None:
                    out[side.value] = None
                    continue
                out[side.value] = {
                    "address": address_hash(cached.adv.address),
                    "rssi": cached.adv.rssi,
                    "age": round(now - cached.stamp, 2),
                    "data": cached.adv.desensitized_data().hex(),
                }
            out["state"] = repr(self._cached_state)
            return out
