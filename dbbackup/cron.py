"""Parsing standard five-field cron expressions and finding their next match."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from decimal import Decimal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

_SEARCH_YEARS = 5

_MONTH_NAMES = {
    name: number
    for number, name in enumerate(
        ["jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"],
        start=1,
    )
}
_DOW_NAMES = {
    name: number
    for number, name in enumerate(["sun", "mon", "tue", "wed", "thu", "fri", "sat"])
}

_DESCRIPTORS = {
    "@yearly": "0 0 1 1 *",
    "@annually": "0 0 1 1 *",
    "@monthly": "0 0 1 * *",
    "@weekly": "0 0 * * 0",
    "@daily": "0 0 * * *",
    "@midnight": "0 0 * * *",
    "@hourly": "0 * * * *",
}

_EVERY_PREFIX = "@every "

_INT_RE = re.compile(r"[+-]?\d+", re.ASCII)
_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)", re.ASCII)
_UNIT_NANOS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60_000_000_000,
    "h": 3_600_000_000_000,
}
_SECOND_NANOS = 1_000_000_000


@dataclass(frozen=True)
class CronSchedule:
    """A parsed cron schedule.

    Either the five field sets are used, or, for ``@every`` schedules,
    a fixed ``interval`` between runs.
    """

    minutes: frozenset[int] = frozenset(range(60))
    hours: frozenset[int] = frozenset(range(24))
    days_of_month: frozenset[int] = frozenset(range(1, 32))
    months: frozenset[int] = frozenset(range(1, 13))
    days_of_week: frozenset[int] = frozenset(range(7))
    dom_star: bool = True
    dow_star: bool = True
    location: tzinfo | None = None
    interval: timedelta | None = None

    def _day_matches(self, moment: datetime) -> bool:
        dom_match = moment.day in self.days_of_month
        dow_match = moment.isoweekday() % 7 in self.days_of_week
        if self.dom_star or self.dow_star:
            return dom_match and dow_match
        return dom_match or dow_match

    def next(self, after: datetime) -> datetime | None:
        """Return the first matching time strictly after ``after``.

        Returns None when nothing matches within five years.
        """
        if self.interval is not None:
            return after.replace(microsecond=0) + self.interval

        moment = after
        if self.location is not None and after.tzinfo is not None:
            moment = after.astimezone(self.location)
        zone = moment.tzinfo
        start = moment.replace(tzinfo=None, second=0, microsecond=0) + timedelta(minutes=1)
        year_limit = start.year + _SEARCH_YEARS
        current = start
        while current.year <= year_limit:
            if current.month not in self.months:
                current = _first_of_next_month(current)
            elif not self._day_matches(current):
                current = current.replace(hour=0, minute=0) + timedelta(days=1)
            elif current.hour not in self.hours:
                current = current.replace(minute=0) + timedelta(hours=1)
            elif current.minute not in self.minutes:
                current += timedelta(minutes=1)
            else:
                return current.replace(tzinfo=zone)
        return None


def _first_of_next_month(moment: datetime) -> datetime:
    year, month = divmod(moment.month, 12)
    return datetime(moment.year + year, month + 1, 1)


def _load_location(name: str) -> tzinfo:
    if name in ("", "UTC"):
        return timezone.utc
    if name == "Local":
        local = datetime.now().astimezone().tzinfo
        return local if local is not None else timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"provided bad location {name}: {exc}") from exc


def _parse_duration(text: str) -> int:
    """Parse a duration such as ``1h30m`` into nanoseconds."""
    body = text
    sign = 1
    if body[:1] in ("+", "-") and body:
        sign = -1 if body[0] == "-" else 1
        body = body[1:]
    if body == "0":
        return 0
    if not body:
        raise ValueError(f"time: invalid duration {text!r}")
    total = Decimal(0)
    position = 0
    while position < len(body):
        match = _DURATION_PART_RE.match(body, position)
        if match is None:
            raise ValueError(f"time: invalid duration {text!r}")
        total += Decimal(match.group(1)) * _UNIT_NANOS[match.group(2)]
        position = match.end()
    return sign * int(total)


def _every(text: str) -> CronSchedule:
    try:
        nanos = _parse_duration(text)
    except ValueError as exc:
        raise ValueError(f"failed to parse duration {text}: {exc}") from exc
    nanos = max(nanos, _SECOND_NANOS)
    nanos -= nanos % _SECOND_NANOS
    return CronSchedule(interval=timedelta(seconds=nanos // _SECOND_NANOS))


def _parse_int(text: str) -> int:
    if not _INT_RE.fullmatch(text):
        raise ValueError(f"failed to parse int from {text}: invalid syntax")
    value = int(text)
    if value < 0:
        raise ValueError(f"negative number ({value}) not allowed: {text}")
    return value


def _parse_int_or_name(text: str, names: dict[str, int]) -> int:
    named = names.get(text.lower())
    if named is not None:
        return named
    return _parse_int(text)


def _parse_range(part: str, low: int, high: int, names: dict[str, int]) -> tuple[set[int], bool]:
    range_and_step = part.split("/")
    low_and_high = range_and_step[0].split("-")
    single = len(low_and_high) == 1
    star = False

    if low_and_high[0] in ("*", "?"):
        start, end, star = low, high, True
    else:
        start = _parse_int_or_name(low_and_high[0], names)
        if len(low_and_high) == 1:
            end = start
        elif len(low_and_high) == 2:
            end = _parse_int_or_name(low_and_high[1], names)
        else:
            raise ValueError(f"too many hyphens: {part}")

    if len(range_and_step) == 1:
        step = 1
    elif len(range_and_step) == 2:
        step = _parse_int(range_and_step[1])
        if single:
            end = high
        if step > 1:
            star = False
    else:
        raise ValueError(f"too many slashes: {part}")

    if start < low:
        raise ValueError(f"beginning of range ({start}) below minimum ({low}): {part}")
    if end > high:
        raise ValueError(f"end of range ({end}) above maximum ({high}): {part}")
    if start > end:
        raise ValueError(f"beginning of range ({start}) beyond end of range ({end}): {part}")
    if step == 0:
        raise ValueError(f"step of range should be a positive number: {part}")
    return set(range(start, end + 1, step)), star


def _parse_field(field: str, low: int, high: int, names: dict[str, int] | None = None) -> tuple[frozenset[int], bool]:
    values: set[int] = set()
    star = False
    for part in field.split(","):
        part_values, part_star = _parse_range(part, low, high, names or {})
        values |= part_values
        star = star or part_star
    return frozenset(values), star


def parse_cron(expr: str) -> CronSchedule:
    """Parse a five-field cron expression, a descriptor such as ``@daily``,
    or ``@every <duration>``, optionally prefixed by ``TZ=`` or ``CRON_TZ=``.

    Raises ValueError for an invalid expression.
    """
    spec = expr
    if not spec:
        raise ValueError("empty spec string")

    location: tzinfo | None = None
    if spec.startswith("TZ=") or spec.startswith("CRON_TZ="):
        space = spec.find(" ")
        if space < 0:
            raise ValueError(f"provided bad location in {spec}")
        equals = spec.index("=")
        location = _load_location(spec[equals + 1 : space])
        spec = spec[space:].strip()

    if spec.startswith("@"):
        if spec.startswith(_EVERY_PREFIX):
            return _every(spec[len(_EVERY_PREFIX) :])
        expansion = _DESCRIPTORS.get(spec)
        if expansion is None:
            raise ValueError(f"unrecognized descriptor: {spec}")
        spec = expansion

    fields = spec.split()
    if len(fields) != 5:
        raise ValueError(f"expected exactly 5 fields, found {len(fields)}: {spec}")

    minutes, _ = _parse_field(fields[0], 0, 59)
    hours, _ = _parse_field(fields[1], 0, 23)
    days_of_month, dom_star = _parse_field(fields[2], 1, 31)
    months, _ = _parse_field(fields[3], 1, 12, _MONTH_NAMES)
    days_of_week, dow_star = _parse_field(fields[4], 0, 6, _DOW_NAMES)
    return CronSchedule(
        minutes=minutes,
        hours=hours,
        days_of_month=days_of_month,
        months=months,
        days_of_week=days_of_week,
        dom_star=dom_star,
        dow_star=dow_star,
        location=location,
    )