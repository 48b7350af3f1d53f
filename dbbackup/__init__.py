"""Scheduling, tar archiving, compression, hook scripts and retention pruning for database backups."""

__version__ = "0.1.0"
__all__ = ["archive", "compression", "cron", "executor", "filename", "prune", "scripts", "timer"]