"""Delay specifications such as ``1h30m``, ``45m`` or ``90s``."""

from __future__ import annotations

import re

from yakstack.errors import InvalidReminderTime

# Largest delay a reminder row may carry (signed 32-bit seconds).
MAX_DELAY_SECONDS = 2**31 - 1

_DELAY_RE = re.compile(r"(?:(?P<h>[0-9]{1,6})h)?(?:(?P<m>[0-9]{1,6})m)?(?:(?P<s>[0-9]{1,6})s)?")
_UNIT_SECONDS = {"h": 3600, "m": 60, "s": 1}


def parse_delay(spec: str) -> int:
    """Convert a delay spec to whole seconds.

    Components come in ``h``, ``m``, ``s`` order, each optional but at least
    one present, each 1-6 digits. Raises ``InvalidReminderTime`` on malformed
    or zero-length delays and ``OverflowError`` when the total does not fit
    ``MAX_DELAY_SECONDS``.
    """
    match = _DELAY_RE.fullmatch(spec)
    if match is None or not any(match.groupdict().values()):
        raise InvalidReminderTime(spec)

    total = 0
    for unit, amount in match.groupdict().items():
        if amount is not None:
            total += int(amount) * _UNIT_SECONDS[unit]

    if total == 0:
        raise InvalidReminderTime(spec)
    if total > MAX_DELAY_SECONDS:
        raise OverflowError(f"reminder delay {spec!r} overflows {MAX_DELAY_SECONDS} seconds")
    return total
