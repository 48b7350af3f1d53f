"""Deciding when scheduled activities run."""

from __future__ import annotations

import re
import time
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from dbbackup.cron import parse_cron

_MINUTES_RE = re.compile(r"\+([0-9]+)")
_CLOCK_RE = re.compile(r"([0-9][0-9])([0-9][0-9])")


@dataclass(frozen=True)
class TimerOptions:
    """When to run: once, on a cron schedule, or every ``frequency`` minutes from ``begin``."""

    once: bool = False
    cron: str = ""
    begin: str = ""
    frequency: int = 0


@dataclass(frozen=True)
class Update:
    """A signal to run the activity; ``last`` means no more will follow."""

    last: bool = False


def wait_for_begin_time(begin: str, now: datetime) -> timedelta:
    """Return how long to wait from ``now`` until ``begin``.

    ``begin`` is either ``+MM`` (minutes from now) or ``HHMM`` (the next
    such time of day). Raises ValueError for any other format.
    """
    minutes = _MINUTES_RE.fullmatch(begin)
    if minutes:
        return timedelta(minutes=int(minutes.group(1)))
    clock = _CLOCK_RE.fullmatch(begin)
    if clock:
        midnight = datetime(now.year, now.month, now.day, tzinfo=now.tzinfo)
        today = midnight + timedelta(
            hours=int(clock.group(1)),
            minutes=int(clock.group(2)),
            seconds=now.second,
            microseconds=now.microsecond,
        )
        if today > now:
            return today - now
        return today + timedelta(days=1) - now
    raise ValueError(f"invalid format for begin delay '{begin}'")


def wait_for_cron(expr: str, now: datetime) -> timedelta:
    """Return how long to wait from ``now`` until ``expr`` next matches.

    A match at ``now`` itself gives a zero wait.
    """
    schedule = parse_cron(expr)
    upcoming = schedule.next(now - timedelta(microseconds=1))
    if upcoming is None:
        raise ValueError(f"cron expression '{expr}' never matches")
    return upcoming - now


def _updates(opts: TimerOptions) -> Iterator[Update]:
    if opts.once:
        yield Update(last=True)
        return
    while True:
        last_run = datetime.now(timezone.utc)
        yield Update(last=False)
        now = datetime.now(timezone.utc)
        if opts.cron:
            delay = wait_for_cron(opts.cron, now)
        else:
            elapsed = int((now - last_run).total_seconds() // 60)
            if elapsed == 0:
                elapsed += opts.frequency
            passed = elapsed % opts.frequency
            delay = timedelta(minutes=opts.frequency - passed)
        time.sleep(max(delay.total_seconds(), 0.0))


def timer(opts: TimerOptions) -> Iterator[Update]:
    """Wait until the first run is due, then return an iterator of run signals.

    Option errors are raised before any waiting. For a single run the
    iterator yields one Update with ``last`` set; otherwise it waits
    between runs and never ends.
    """
    now = datetime.now(timezone.utc)
    delay = timedelta(0)
    if opts.cron:
        try:
            delay = wait_for_cron(opts.cron, now)
        except ValueError as exc:
            raise ValueError(f"invalid cron format '{opts.cron}': {exc}") from exc
    elif opts.begin:
        try:
            delay = wait_for_begin_time(opts.begin, now)
        except ValueError as exc:
            raise ValueError(f"invalid begin option '{opts.begin}': {exc}") from exc
    if not opts.once and not opts.cron and opts.frequency <= 0:
        raise ValueError(f"invalid frequency {opts.frequency}: must be a positive number of minutes")
    time.sleep(max(delay.total_seconds(), 0.0))
    return _updates(opts)