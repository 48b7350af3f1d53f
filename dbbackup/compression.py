"""Stream compressors used to wrap backup archives."""

from __future__ import annotations

import abc
import bz2
import gzip
from typing import BinaryIO


class Compressor(abc.ABC):
    """A compression format that wraps writable and readable binary streams."""

    #: File extension given to archives compressed with this format.
    extension: str = ""

    @abc.abstractmethod
    def compress(self, out: BinaryIO) -> BinaryIO:
        """Return a writable stream that compresses into ``out``.

        Closing the returned stream flushes the compressed trailer but
        leaves ``out`` open.
        """

    @abc.abstractmethod
    def uncompress(self, stream: BinaryIO) -> BinaryIO:
        """Return a readable stream of the data decompressed from ``stream``."""

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other)

    def __hash__(self) -> int:
        return hash(type(self))

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class GzipCompressor(Compressor):
    """gzip compression, producing ``.tgz`` archives."""

    extension = "tgz"

    def compress(self, out: BinaryIO) -> BinaryIO:
        return gzip.GzipFile(fileobj=out, mode="wb")

    def uncompress(self, stream: BinaryIO) -> BinaryIO:
        return gzip.GzipFile(fileobj=stream, mode="rb")


class Bzip2Compressor(Compressor):
    """bzip2 compression, producing ``.tbz2`` archives."""

    extension = "tbz2"

    def compress(self, out: BinaryIO) -> BinaryIO:
        return bz2.BZ2File(out, mode="wb")

    def uncompress(self, stream: BinaryIO) -> BinaryIO:
        return bz2.BZ2File(stream, mode="rb")


_COMPRESSORS: dict[str, type[Compressor]] = {
    "gzip": GzipCompressor,
    "bzip2": Bzip2Compressor,
}


def get_compressor(name: str) -> Compressor:
    """Return the compressor registered under ``name``.

    Raises ValueError for an unknown format.
    """
    try:
        return _COMPRESSORS[name]()
    except KeyError:
        raise ValueError(f"unknown compression format: {name}") from None