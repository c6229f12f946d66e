"""Exceptions raised by BudWatch."""

from __future__ import annotations


class BudWatchError(Exception):
    """Base exception for all BudWatch errors."""


class BudWatchContractError(BudWatchError):
    """
    A caller broke a precondition.

    Raised for things that upstream validation makes impossible, like decoding
    an advert that `Advertisement.is_desired_adv` would have rejected, or a
    scanner state we don't know about. It means a bug, so nothing in BudWatch
    catches it.
    """
