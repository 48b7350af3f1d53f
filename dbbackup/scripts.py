"""Running user-supplied hook scripts around backups and restores."""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping


class ScriptError(RuntimeError):
    """Raised when a hook script cannot be inspected or exits with failure."""


def _run_script(entry: os.DirEntry, env: Mapping[str, str]) -> None:
    try:
        info = entry.stat(follow_symlinks=False)
        is_dir = entry.is_dir()
    except OSError as exc:
        raise ScriptError(f"error getting file info {entry.name}: {exc}") from exc
    if is_dir or info.st_mode & 0o111 == 0:
        return
    environment = {**os.environ, **env}
    try:
        subprocess.run([entry.path], env=environment, check=True)
    except (OSError, subprocess.CalledProcessError) as exc:
        raise ScriptError(f"error running file {entry.name}: {exc}") from exc


def run_scripts(directory: str, env: Mapping[str, str]) -> None:
    """Run every executable file in ``directory``, in name order, with ``env`` added.

    A missing or unreadable directory is not an error. Directories and
    non-executable files are skipped. The first failing script raises
    ScriptError and stops the run.
    """
    try:
        entries = sorted(os.scandir(directory), key=lambda entry: entry.name)
    except OSError:
        return
    for entry in entries:
        _run_script(entry, env)