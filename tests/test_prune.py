import os
import posixpath
from datetime import datetime, timedelta, timezone

import pytest

from dbbackup.prune import (
    PruneError,
    PruneOptions,
    convert_to_count,
    convert_to_hours,
    prune,
    prune_target,
)

NOW = datetime(2021, 1, 1, 0, 30, 0, tzinfo=timezone.utc)
HOURS_AGO = [
    0.25, 1, 2, 3, 24, 36, 48, 60, 72, 167, 168, 240, 336, 504, 576, 744,
    720, 1000, 1440, 1800, 2160, 8760, 12000, 17520,
]


def _names(fmt):
    return [
        "db_backup_{}Z.gz".format(
            (NOW - timedelta(hours=hours) - timedelta(minutes=30)).strftime(fmt)
        )
        for hours in HOURS_AGO
    ]


FILENAMES = _names("%Y-%m-%dT%H:%M:%S")
SAFE_FILENAMES = _names("%Y-%m-%dT%H-%M-%S")


class DirectoryTarget:
    def __init__(self, root):
        self.root = str(root)

    def url(self):
        return f"file://{self.root}"

    def push(self, name):
        with open(os.path.join(self.root, name), "wb"):
            pass

    def read_dir(self, path):
        return list(os.scandir(os.path.join(self.root, path)))

    def remove(self, name):
        os.remove(os.path.join(self.root, name))


class BucketTarget:
    def __init__(self, prefix="mytestbucket"):
        self.prefix = prefix
        self.objects = set()

    def url(self):
        return f"s3://{self.prefix}/{self.prefix}"

    def push(self, name):
        self.objects.add(posixpath.join(self.prefix, name))

    def read_dir(self, path):
        return sorted(self.objects)

    def remove(self, name):
        self.objects.remove(name)


class BrokenRemoveTarget(BucketTarget):
    def remove(self, name):
        raise OSError("permission denied")


def _basenames(target):
    names = []
    for entry in target.read_dir(""):
        name = entry if isinstance(entry, str) else entry.name
        names.append(posixpath.basename(name))
    return sorted(names)


@pytest.fixture(params=["file", "s3"])
def make_target(request, tmp_path):
    def factory(files):
        target = DirectoryTarget(tmp_path) if request.param == "file" else BucketTarget()
        for name in files:
            target.push(name)
        return target

    return factory


@pytest.mark.parametrize(
    "value, hours",
    [("2h", 2), ("3w", 3 * 7 * 24), ("5d", 5 * 24), ("1m", 30 * 24), ("1y", 365 * 24)],
)
def test_convert_to_hours(value, hours):
    assert convert_to_hours(value) == hours


def test_convert_to_hours_invalid():
    with pytest.raises(ValueError) as excinfo:
        convert_to_hours("100x")
    assert str(excinfo.value) == "invalid format: 100x"


def test_convert_to_count():
    assert convert_to_count("2c") == 2


@pytest.mark.parametrize("value", ["2h", "c", "2cc", "-1c"])
def test_convert_to_count_invalid(value):
    with pytest.raises(ValueError, match="invalid format"):
        convert_to_count(value)


def test_no_targets():
    with pytest.raises(PruneError) as excinfo:
        prune(PruneOptions(retention="1h", now=NOW))
    assert str(excinfo.value) == "no targets"


def test_invalid_retention_keeps_files(make_target):
    target = make_target(FILENAMES)
    with pytest.raises(PruneError) as excinfo:
        prune(PruneOptions(targets=[target], retention="100x", now=NOW))
    assert str(excinfo.value) == "invalid retention string: 100x"
    assert _basenames(target) == sorted(FILENAMES)


def test_zero_retention_is_invalid(make_target):
    target = make_target(FILENAMES)
    with pytest.raises(PruneError, match="invalid retention string: 0h"):
        prune(PruneOptions(targets=[target], retention="0h", now=NOW))


@pytest.mark.parametrize(
    "retention, files, keep",
    [
        ("1h", FILENAMES, 1),
        ("2h", FILENAMES, 2),
        ("2d", FILENAMES, 6),
        ("3w", FILENAMES, 13),
        ("2c", FILENAMES, 2),
        ("1h", SAFE_FILENAMES, 1),
        ("2h", SAFE_FILENAMES, 2),
        ("2d", SAFE_FILENAMES, 6),
        ("3w", SAFE_FILENAMES, 13),
        ("2c", SAFE_FILENAMES, 2),
    ],
    ids=[
        "1 hour",
        "2 hours",
        "2 days",
        "3 weeks",
        "2 most recent",
        "1 hour safe names",
        "2 hours safe names",
        "2 days safe names",
        "3 weeks safe names",
        "2 most recent safe names",
    ],
)
def test_prune(make_target, retention, files, keep):
    target = make_target(files)
    prune(PruneOptions(targets=[target], retention=retention, now=NOW))
    assert _basenames(target) == sorted(files[:keep])


def test_prune_ignores_non_backup_files(make_target):
    extra = ["notes.txt", "db_backup_2020-13-01T00:00:00Z.gz"]
    target = make_target(FILENAMES + extra)
    prune(PruneOptions(targets=[target], retention="2c", now=NOW))
    assert _basenames(target) == sorted(FILENAMES[:2] + extra)


def test_prune_target_returns_removed_names():
    target = BucketTarget()
    for name in FILENAMES:
        target.push(name)
    removed = prune_target(target, NOW, 0, 2)
    assert sorted(posixpath.basename(name) for name in removed) == sorted(FILENAMES[2:])
    assert _basenames(target) == sorted(FILENAMES[:2])


def test_prune_target_without_policy():
    target = BucketTarget()
    with pytest.raises(PruneError) as excinfo:
        prune_target(target, NOW, 0, 0)
    assert str(excinfo.value) == "invalid retention time 0 count 0 hours"


def test_remove_failure_is_reported():
    target = BrokenRemoveTarget()
    for name in FILENAMES:
        target.push(name)
    with pytest.raises(PruneError) as excinfo:
        prune(PruneOptions(targets=[target], retention="1h", now=NOW))
    message = str(excinfo.value)
    assert message.startswith(f"failed to prune target {target.url()}: failed to remove file ")
    assert "permission denied" in message