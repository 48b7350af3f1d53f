"""Creating and extracting tar archives of dump directories."""

from __future__ import annotations

import os
import shutil
import tarfile
from collections.abc import Iterator
from typing import BinaryIO


class ArchiveError(Exception):
    """Raised when an archive cannot be created."""


def _walk_regular_files(root: str) -> Iterator[str]:
    """Yield regular files under ``root`` in lexical order, not following links."""
    entries = sorted(os.scandir(root), key=lambda entry: entry.name)
    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            yield from _walk_regular_files(entry.path)
        elif entry.is_file(follow_symlinks=False):
            yield entry.path


def tar(src: str, writer: BinaryIO) -> None:
    """Write every regular file under ``src`` into a tar stream on ``writer``.

    Member names are relative to ``src``. Both the tar stream and ``writer``
    are closed when done.
    """
    try:
        os.stat(src)
    except OSError as exc:
        raise ArchiveError(f"unable to tar files - {exc}") from exc

    with writer, tarfile.open(fileobj=writer, mode="w|") as archive:
        if os.path.isdir(src) and not os.path.islink(src):
            files = ((path, os.path.relpath(path, src)) for path in _walk_regular_files(src))
        elif os.path.isfile(src) and not os.path.islink(src):
            files = iter([(src, os.path.basename(src))])
        else:
            files = iter(())
        for path, name in files:
            info = archive.gettarinfo(path, arcname=name.replace(os.sep, "/"))
            with open(path, "rb") as handle:
                archive.addfile(info, handle)


def untar(reader: BinaryIO, dst: str) -> None:
    """Extract directories and regular files from the tar stream ``reader`` into ``dst``.

    Other member types are skipped.
    """
    with tarfile.open(fileobj=reader, mode="r|") as archive:
        for member in archive:
            target = os.path.join(dst, member.name)
            if member.isdir():
                if not os.path.exists(target):
                    os.makedirs(target, 0o755)
            elif member.isreg():
                fd = os.open(
                    target,
                    os.O_CREAT | os.O_WRONLY | os.O_TRUNC,
                    member.mode & 0o7777,
                )
                with os.fdopen(fd, "wb") as out:
                    source = archive.extractfile(member)
                    if source is not None:
                        with source:
                            shutil.copyfileobj(source, out)