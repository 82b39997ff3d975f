"""Reminder time normalization helpers.

Reminder times travel as 24-hour `HH:MM` strings. Parser output is model-made
and therefore untrusted: anything that does not resolve to a real clock time is
dropped rather than repaired.
"""

import re

MAX_REMINDER_TIMES = 3

_HHMM_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


def normalize_time(value) -> str | None:
    """Return `value` as zero-padded `HH:MM`, or `None` when it is not a clock time.

    Examples:
        "8:00" -> "08:00", "8:5" -> None, "25:00" -> None, "8am" -> None.
    """
    if not isinstance(value, str):
        return None

    match = _HHMM_PATTERN.match(value.strip())
    if not match:
        return None

    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None

    return f"{hours:02d}:{minutes:02d}"


def normalize_reminder_times(values, limit: int = MAX_REMINDER_TIMES) -> list[str]:
    """Normalize, de-duplicate and cap a list of reminder times.

    Order is preserved. Non-list input yields an empty list.
    """
    if not isinstance(values, (list, tuple)):
        return []

    times: list[str] = []
    for value in values:
        normalized = normalize_time(value)
        if normalized and normalized not in times:
            times.append(normalized)
        if len(times) >= limit:
            break
    return times


def parse_hhmm(value: str) -> tuple[int, int] | None:
    """Split a valid `HH:MM` string into `(hour, minute)`."""
    normalized = normalize_time(value)
    if normalized is None:
        return None
    hours, minutes = normalized.split(":")
    return int(hours), int(minutes)


def format_time_12h(value: str) -> str:
    """Render `HH:MM` for speech/display, e.g. `"20:30"` -> `"8:30 PM"`.

    Unparseable input is returned unchanged.
    """
    parsed = parse_hhmm(value)
    if parsed is None:
        return value

    hours, minutes = parsed
    period = "PM" if hours >= 12 else "AM"
    hours_12 = 12 if hours == 0 else hours - 12 if hours > 12 else hours
    return f"{hours_12}:{minutes:02d} {period}"
