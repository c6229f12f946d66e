"""Rate-limited logging for BudWatch."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from bluetooth_data_tools import monotonic_time_coarse


@dataclass
class _KeyStamp:
    stamp: float
    suppressed: int = 0


class BudWatchLogSpamLess:
    """
    Wrap a logger so that repeated messages under the same key are rate-limited.

    Earbuds advertise several times a second, and so do everyone else's. When an
    advert is rejected we want the reason in the log, but not once per packet.
    Each call carries a key; after a message is emitted for a key, further
    messages for that key are dropped for `spam_interval` seconds. The next one
    to get through reports how many were dropped in between.
    """

    def __init__(self, logger: logging.Logger, spam_interval: float) -> None:
        self._logger = logger
        self._interval = spam_interval
        self._keycache: dict[str, _KeyStamp] = {}

    def _check_key(self, key: str) -> int:
        """
        Return -1 if the message for key should be suppressed, otherwise the
        number of messages suppressed since the last one was emitted.
        """
        nowstamp = monotonic_time_coarse()
        entry = self._keycache.get(key)
        if entry is None:
            self._keycache[key] = _KeyStamp(nowstamp)
            return 0
        if entry.stamp < nowstamp - self._interval:
            count = entry.suppressed
            entry.stamp = nowstamp
            entry.suppressed = 0
            return count
        entry.suppressed += 1
        return -1

    def _log(self, level: int, key: str, msg: str, *args, **kwargs) -> None:
        if not self._logger.isEnabledFor(level):
            return
        count = self._check_key(key)
        if count < 0:
            return
        if count > 0:
            msg = f"{msg} ({count} previous messages suppressed)"
        self._logger.log(level, msg, *args, **kwargs)

    def reset(self) -> None:
        """Forget all keys, so the next message for each is logged immediately."""
        self._keycache.clear()

    def debug(self, key, msg, *args, **kwargs):
        """Send log message, if no log was issued with the same key recently."""
        self._log(logging.DEBUG, key, msg, *args, **kwargs)

    def info(self, key, msg, *args, **kwargs):
        """Send log message, if no log was issued with the same key recently."""
        self._log(logging.INFO, key, msg, *args, **kwargs)

    def warning(self, key, msg, *args, **kwargs):
        """Send log message, if no log was issued with the same key recently."""
        self._log(logging.WARNING, key, msg, *args, **kwargs)

    def error(self, key, msg, *args, **kwargs):
        """Send log message, if no log was issued with the same key recently."""
        self._log(logging.ERROR, key, msg, *args, **kwargs)
