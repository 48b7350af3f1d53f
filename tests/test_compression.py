import io

import pytest

from dbbackup.compression import (
    Bzip2Compressor,
    Compressor,
    GzipCompressor,
    get_compressor,
)

PAYLOAD = b"CREATE TABLE t (id int);\n" * 200


def test_get_gzip():
    compressor = get_compressor("gzip")
    assert isinstance(compressor, GzipCompressor)
    assert compressor.extension == "tgz"


def test_get_bzip2():
    compressor = get_compressor("bzip2")
    assert isinstance(compressor, Bzip2Compressor)
    assert compressor.extension == "tbz2"


def test_unknown_format():
    with pytest.raises(ValueError, match="unknown compression format: zip"):
        get_compressor("zip")


def _compress(compressor: Compressor, data: bytes) -> io.BytesIO:
    out = io.BytesIO()
    with compressor.compress(out) as writer:
        writer.write(data)
    assert not out.closed
    out.seek(0)
    return out


@pytest.mark.parametrize("name", ["gzip", "bzip2"])
def test_round_trip(name):
    compressor = get_compressor(name)
    compressed = _compress(compressor, PAYLOAD)
    assert len(compressed.getvalue()) < len(PAYLOAD)
    with compressor.uncompress(compressed) as reader:
        assert reader.read() == PAYLOAD


def test_gzip_magic():
    compressed = _compress(GzipCompressor(), PAYLOAD)
    assert compressed.getvalue()[:2] == b"\x1f\x8b"


def test_bzip2_magic():
    compressed = _compress(Bzip2Compressor(), PAYLOAD)
    assert compressed.getvalue()[:3] == b"BZh"


def test_wrong_format_fails():
    compressed = _compress(GzipCompressor(), PAYLOAD)
    with pytest.raises(OSError):
        with Bzip2Compressor().uncompress(compressed) as reader:
            reader.read()


def test_equality():
    assert get_compressor("gzip") == GzipCompressor()
    assert get_compressor("gzip") != Bzip2Compressor()