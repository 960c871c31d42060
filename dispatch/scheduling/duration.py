"""Free-form duration parsing ("2 hours", "90 min", "1.5 days") to minutes."""

import logging
import math
import re
from typing import NamedTuple

from dispatch.core.config import DefaultsConfig

logger = logging.getLogger(__name__)

_DEFAULTS = DefaultsConfig()

_HOURS_RE = re.compile(r"([\d.]+)\s*(?:hours?|hrs?)")
_MINUTES_RE = re.compile(r"([\d.]+)\s*(?:minutes?|mins?)")
_DAYS_RE = re.compile(r"([\d.]+)\s*(?:days?)")

# A "day" of work is an 8-hour shift.
_MINUTES_PER_UNIT = ((_HOURS_RE, 60), (_MINUTES_RE, 1), (_DAYS_RE, 480))


class SanitizedDuration(NamedTuple):
    minutes: int
    was_unrealistic: bool
    original_minutes: int
    max_allowed: int


def round_half_up(value: float) -> int:
    """Round halves toward positive infinity: 2.5 -> 3, -92.5 -> -92."""
    return math.floor(value + 0.5)


def parse_duration(value: str | int | float | None, defaults: DefaultsConfig | None = None) -> int:
    """Convert a duration to whole minutes.

    Numbers are already minutes and come back unchanged. Strings are matched
    for hours, then minutes, then days. Anything unparseable is the default
    duration (60).
    """
    defaults = defaults or _DEFAULTS
    if value is None or value == "" or isinstance(value, bool):
        return defaults.default_duration_minutes

    if isinstance(value, (int, float)):
        if value > defaults.max_reasonable_duration_minutes:
            logger.warning(
                "Duration of %s minutes exceeds %d; check the source data",
                value, defaults.max_reasonable_duration_minutes,
            )
        return value  # type: ignore[return-value]

    text = str(value).lower()
    for pattern, factor in _MINUTES_PER_UNIT:
        match = pattern.search(text)
        if match:
            try:
                return round_half_up(float(match.group(1)) * factor)
            except ValueError:
                # "1.2.3 hours" matches the pattern but is not a number
                break
    return defaults.default_duration_minutes


def sanitize_duration(minutes: int, defaults: DefaultsConfig | None = None) -> SanitizedDuration:
    """Cap a parsed duration at the reasonable maximum (5 work days)."""
    defaults = defaults or _DEFAULTS
    cap = defaults.max_reasonable_duration_minutes
    if minutes > cap:
        logger.warning("Capping duration of %d minutes to %d", minutes, cap)
        return SanitizedDuration(cap, True, minutes, cap)
    return SanitizedDuration(minutes, False, minutes, cap)


def format_duration(minutes: int) -> str:
    """Human-readable form: "45m", "2h", "1h 30m"."""
    if minutes < 60:
        return f"{minutes}m"
    hours, rest = divmod(minutes, 60)
    return f"{hours}h {rest}m" if rest else f"{hours}h"
