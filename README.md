# dbbackup

Building blocks for taking, scheduling and pruning database backups. It has no
dependencies outside the standard library.

## Modules

### `dbbackup.compression`

- `get_compressor("gzip")` returns a `GzipCompressor` and
  `get_compressor("bzip2")` returns a `Bzip2Compressor`. Any other name raises
  `ValueError`.
- `compress(out)` returns a writable stream that compresses into `out`.
  Closing that stream writes the trailer but leaves `out` open.
- `uncompress(stream)` returns a readable stream of the decompressed data.
- `extension` is `"tgz"` for gzip and `"tbz2"` for bzip2.

### `dbbackup.archive`

- `tar(src, writer)` writes every regular file under the directory `src` into
  a tar stream on `writer`. Files are written in name order and symbolic links
  are not followed. Member names are relative to `src`. If `src` is a single
  regular file, it is stored under its base name. When it is done, `tar` closes
  `writer`. If `src` does not exist, it raises `ArchiveError`.
- `untar(reader, dst)` extracts the directories and regular files from a tar
  stream into `dst`, and skips every other member type.

### `dbbackup.scripts`

- `run_scripts(directory, env)` runs each executable file in `directory` in
  name order, with the variables in `env` added to the current environment.
  - If the directory is missing or cannot be read, nothing happens.
  - Subdirectories and files that are not executable are skipped.
  - The first script that fails raises `ScriptError`, and no further scripts
    are run.

### `dbbackup.cron`

`parse_cron(expr)` returns a `CronSchedule`. It accepts the following:

- a standard five-field expression, which may use:
  - ranges, steps and lists;
  - `*` and `?`;
  - month names and weekday names;
- the descriptors `@yearly`, `@annually`, `@monthly`, `@weekly`, `@daily`,
  `@midnight` and `@hourly`;
- `@every <duration>`, such as `@every 1h30m`.

An expression may start with `TZ=<zone>` or `CRON_TZ=<zone>`. Invalid
expressions raise `ValueError`.

`CronSchedule.next(after)` returns the first matching time strictly after
`after`. It returns `None` if nothing matches within five years. When both
the day-of-month field and the day-of-week field are restricted, a day
matches if either field matches.

### `dbbackup.timer`

- `TimerOptions(once, cron, begin, frequency)` describes when to run. It can
  run:
  - once, immediately;
  - on a cron schedule;
  - every `frequency` minutes, starting at `begin`. `begin` is either
    `+MM`, a number of minutes from now, or `HHMM`, the next such time of day.
- `timer(opts)` first checks the options and raises `ValueError` if they are
  invalid. Without `once` or `cron`, `frequency` must be positive. It then
  sleeps until the first run and returns an iterator of `Update` values:
  - with `once`, the iterator yields a single `Update(last=True)`;
  - otherwise it yields `Update(last=False)`, waits for the next run, and
    repeats without end.
- `wait_for_begin_time(begin, now)` returns the first delay as a `timedelta`.
- `wait_for_cron(expr, now)` returns the first delay as a `timedelta`. A cron
  match at exactly `now` gives a zero delay.

### `dbbackup.prune`

Backups are files whose base name matches one of these forms:

- `db_backup_YYYY-MM-DDTHH:MM:SSZ.<ext>`
- `db_backup_YYYY-MM-DDTHH-MM-SSZ.<ext>`

Other files are ignored. The retention string is either an age or a count:

- `convert_to_hours` reads an age: `2h`, `3d`, `1w`, `1m` or `1y`. A month
  counts as 30 days and a year as 365 days.
- `convert_to_count` reads a count: `5c` keeps the five most recent backups.

An age-based retention removes every backup that is at least that many hours
old. Ages are measured from the time in the filename.

`prune(opts, logger=None)` applies `PruneOptions(targets, retention, now, run)`
to each target. It raises `PruneError` in these cases:

- there are no targets;
- the retention string is invalid;
- a target fails.

`prune_target(target, now, retain_hours, retain_count, logger=None)` prunes a
single target and returns the names it removed.

A target is any object with these methods:

- `url()`, which returns a string;
- `read_dir(path)`, which returns strings or entries that have a `name`;
- `remove(name)`.

### `dbbackup.filename`

`process_filename_pattern(pattern, now, timestamp, ext)` fills in the
following placeholders:

- `{{ .now }}`, which is replaced by `timestamp`;
- `{{ .year }}`, `{{ .month }}`, `{{ .day }}`, `{{ .hour }}`, `{{ .minute }}`
  and `{{ .second }}`, which are taken from `now`;
- `{{ .compression }}`, which is replaced by `ext`.

Any other field name renders as `<no value>`. A malformed pattern raises
`ValueError`. `{{-` and `-}}` trim the whitespace next to the placeholder. An
empty pattern means `DEFAULT_FILENAME_PATTERN`, which is
`db_backup_{{ .now }}.{{ .compression }}`.

### `dbbackup.executor`

`Executor(logger)` provides two methods:

- `prune(opts)` runs `prune` with the executor's logger.
- `timer(timer_opts, cmd)` calls `cmd` each time the schedule fires.
  - An invalid schedule is logged and raises `SystemExit(1)`.
  - If `cmd` fails, the schedule stops and `CommandError` is raised.

## Example

```python
import os
from datetime import datetime, timezone

from dbbackup.archive import tar, untar
from dbbackup.compression import get_compressor
from dbbackup.executor import Executor
from dbbackup.filename import process_filename_pattern
from dbbackup.prune import PruneOptions, convert_to_hours
from dbbackup.timer import TimerOptions


class DirectoryTarget:
    def __init__(self, path):
        self.path = path

    def url(self):
        return f"file://{self.path}"

    def read_dir(self, path):
        return list(os.scandir(os.path.join(self.path, path)))

    def remove(self, name):
        os.remove(os.path.join(self.path, name))


assert convert_to_hours("2d") == 48

compressor = get_compressor("gzip")
now = datetime.now(timezone.utc).replace(microsecond=0)
stamp = now.strftime("%Y-%m-%dT%H:%M:%SZ")
name = process_filename_pattern("", now, stamp, compressor.extension)


def backup():
    with open(os.path.join("/backups", name), "wb") as out:
        tar("/var/tmp/dumps", compressor.compress(out))


executor = Executor()
executor.timer(TimerOptions(once=True), backup)
executor.prune(PruneOptions(targets=[DirectoryTarget("/backups")], retention="7c"))

with open(os.path.join("/backups", name), "rb") as src, compressor.uncompress(src) as stream:
    untar(stream, "/var/tmp/restored")
```

## What this package does not do

This package does not connect to a database. It does not produce SQL dump
files, and it does not load them back into a database. It has no
command-line program. It includes no storage backends, whether local
directories, SMB shares or S3 buckets. Targets for pruning, and the upload or
download of archives, are left to the caller.

## Tests

```
pip install -e .[test]
pytest
```