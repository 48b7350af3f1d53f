"""Building target filenames for backups from a template pattern."""

from __future__ import annotations

import re
from datetime import datetime

DEFAULT_FILENAME_PATTERN = "db_backup_{{ .now }}.{{ .compression }}"

_FIELD_RE = re.compile(r"\.([A-Za-z_][A-Za-z0-9_]*)", re.ASCII)
_MISSING = "<no value>"


def _render(pattern: str, values: dict[str, str]) -> str:
    """Render ``{{ .field }}`` actions, with ``{{-`` and ``-}}`` trimming whitespace."""
    pieces: list[str] = []
    position = 0
    while True:
        start = pattern.find("{{", position)
        if start < 0:
            pieces.append(pattern[position:])
            break
        end = pattern.find("}}", start + 2)
        if end < 0:
            raise ValueError(f"unclosed action in pattern {pattern!r}")
        text = pattern[position:start]
        inner = pattern[start + 2 : end]
        if inner[:1] == "-" and inner[1:2].isspace():
            text = text.rstrip()
            inner = inner[1:]
        trim_right = inner[-1:] == "-" and inner[-2:-1].isspace()
        if trim_right:
            inner = inner[:-1]
        pieces.append(text)

        match = _FIELD_RE.fullmatch(inner.strip())
        if match is None:
            raise ValueError(f"unsupported action {{{{{inner}}}}} in pattern {pattern!r}")
        pieces.append(values.get(match.group(1), _MISSING))

        position = end + 2
        if trim_right:
            while position < len(pattern) and pattern[position].isspace():
                position += 1
    return "".join(pieces)


def process_filename_pattern(pattern: str, now: datetime, timestamp: str, ext: str) -> str:
    """Fill in ``pattern`` with parts of ``now``, the ``timestamp`` and extension ``ext``.

    The timestamp is passed separately because it may have been made
    filename-safe. An empty pattern means the default one. Raises
    ValueError for a malformed pattern.
    """
    if not pattern:
        pattern = DEFAULT_FILENAME_PATTERN
    values = {
        "now": timestamp,
        "year": f"{now.year:04d}",
        "month": f"{now.month:02d}",
        "day": f"{now.day:02d}",
        "hour": f"{now.hour:02d}",
        "minute": f"{now.minute:02d}",
        "second": f"{now.second:02d}",
        "compression": ext,
    }
    try:
        return _render(pattern, values)
    except ValueError as exc:
        raise ValueError(f"failed to parse filename pattern: {exc}") from exc