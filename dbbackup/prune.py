"""Removing old backups from targets according to a retention policy."""

from __future__ import annotations

import logging
import posixpath
import re
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol, Union

_FILENAME_RE = re.compile(
    r"db_backup_(\d{4})-(\d{2})-(\d{2})T(\d{2})[:-](\d{2})[:-](\d{2})Z\.\w+",
    re.ASCII,
)
_HOURS_RE = re.compile(r"(\d+)([hdwmy])", re.ASCII)
_COUNT_RE = re.compile(r"(\d+)(c)", re.ASCII)

_HOURS_PER_UNIT = {
    "h": 1,
    "d": 24,
    "w": 24 * 7,
    "m": 24 * 30,
    "y": 24 * 365,
}

_LOG = logging.getLogger(__name__)

Logger = Union[logging.Logger, logging.LoggerAdapter]


class PruneError(Exception):
    """Raised when pruning cannot be carried out."""


class PruneTarget(Protocol):
    """A storage location holding backups."""

    def url(self) -> str: ...

    def read_dir(self, path: str) -> Iterable[Any]: ...

    def remove(self, name: str) -> None: ...


@dataclass
class PruneOptions:
    """What to prune: the targets, the retention policy and the reference time."""

    targets: list[PruneTarget] = field(default_factory=list)
    retention: str = ""
    now: datetime | None = None
    run: uuid.UUID = field(default_factory=uuid.uuid4)


def convert_to_hours(value: str) -> int:
    """Convert ``<n><unit>`` with unit h, d, w, m (30 days) or y (365 days) into hours."""
    match = _HOURS_RE.fullmatch(value)
    if match is None:
        raise ValueError(f"invalid format: {value}")
    return int(match.group(1)) * _HOURS_PER_UNIT[match.group(2)]


def convert_to_count(value: str) -> int:
    """Convert ``<n>c`` into a count of backups to keep."""
    match = _COUNT_RE.fullmatch(value)
    if match is None:
        raise ValueError(f"invalid format: {value}")
    return int(match.group(1))


def _entry_name(entry: Any) -> str:
    return entry if isinstance(entry, str) else entry.name


def _base_name(name: str) -> str:
    stripped = name.rstrip("/")
    if not stripped:
        return "/" if name else "."
    return posixpath.basename(stripped)


def _filename_time(name: str) -> datetime | None:
    match = _FILENAME_RE.fullmatch(_base_name(name))
    if match is None:
        return None
    year, month, day, hour, minute, second = (int(part) for part in match.groups())
    return datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)


def prune_target(
    target: PruneTarget,
    now: datetime,
    retain_hours: int,
    retain_count: int,
    logger: Logger | None = None,
) -> list[str]:
    """Remove the backups in ``target`` that fall outside the retention policy.

    With ``retain_hours`` set, backups at least that many hours old are
    removed; otherwise all but the ``retain_count`` most recent are.
    Returns the names removed.
    """
    log = logger if logger is not None else _LOG
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    log.debug("pruning target %s", target.url())
    try:
        entries = list(target.read_dir(""))
    except Exception as exc:
        raise PruneError(f"failed to read directory: {exc}") from exc

    dated: list[tuple[str, datetime]] = []
    for entry in entries:
        name = _entry_name(entry)
        try:
            filetime = _filename_time(name)
        except ValueError as exc:
            log.debug("Error parsing date from filename %s: %s; ignoring", name, exc)
            continue
        if filetime is None:
            log.debug("ignoring filename that is not standard backup pattern: %s", name)
            continue
        log.debug("checking filename that is standard backup pattern: %s", name)
        dated.append((name, filetime))

    if retain_hours > 0:
        candidates = []
        for name, filetime in dated:
            age = (now - filetime).total_seconds() / 3600
            if age < retain_hours:
                log.debug("keeping file %s, %f hours old", name, age)
                continue
            log.debug("Adding candidate file: %s", name)
            candidates.append(name)
    elif retain_count > 0:
        newest_first = sorted(dated, key=lambda item: item[1], reverse=True)
        candidates = [name for name, _ in newest_first[retain_count:]]
    else:
        raise PruneError(f"invalid retention time {retain_count} count {retain_hours} hours")

    pruned = []
    for name in candidates:
        try:
            target.remove(name)
        except Exception as exc:
            raise PruneError(f"failed to remove file {name}: {exc}") from exc
        pruned.append(name)
    log.debug("pruning %d files from target %s", len(pruned), target.url())
    return pruned


def prune(opts: PruneOptions, logger: Logger | None = None) -> None:
    """Prune every target in ``opts`` according to its retention string."""
    base = logger if logger is not None else _LOG
    log = logging.LoggerAdapter(base, {"run": str(opts.run)})
    log.info("beginning prune")
    now = opts.now if opts.now is not None else datetime.now(timezone.utc)
    if not opts.targets:
        raise PruneError("no targets")

    try:
        retain_hours: int | None = convert_to_hours(opts.retention)
    except ValueError:
        retain_hours = None
    try:
        retain_count: int | None = convert_to_count(opts.retention)
    except ValueError:
        retain_count = None
    if (retain_hours is None and retain_count is None) or (
        (retain_hours or 0) <= 0 and (retain_count or 0) <= 0
    ):
        raise PruneError(f"invalid retention string: {opts.retention}")

    for target in opts.targets:
        try:
            prune_target(target, now, retain_hours or 0, retain_count or 0, log)
        except PruneError as exc:
            raise PruneError(f"failed to prune target {target.url()}: {exc}") from exc