"""Running pruning and scheduled commands with a shared logger."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from dbbackup.prune import PruneOptions
from dbbackup.prune import prune as _prune
from dbbackup.timer import TimerOptions, timer


class CommandError(RuntimeError):
    """Raised when a command run by the timer fails."""


@dataclass
class Executor:
    """Carries out backup activities, logging through ``logger``."""

    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("dbbackup"))

    def prune(self, opts: PruneOptions) -> None:
        """Prune older backups as described by ``opts``."""
        _prune(opts, self.logger)

    def timer(self, timer_opts: TimerOptions, cmd: Callable[[], None]) -> None:
        """Run ``cmd`` each time the schedule in ``timer_opts`` fires.

        An invalid schedule is logged and ends the process with status 1.
        A failing command stops the schedule and raises CommandError.
        """
        try:
            updates = timer(timer_opts)
        except ValueError as exc:
            self.logger.error("error creating timer: %s", exc)
            raise SystemExit(1) from exc
        for update in updates:
            try:
                cmd()
            except Exception as exc:
                raise CommandError(f"error running command: {exc}") from exc
            if update.last:
                break