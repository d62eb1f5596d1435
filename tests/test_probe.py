import io

import pytest

from conftest import BLACK, RED, make_bmp
from bmp_errors import BufferTooShort, ProbeError
from bmp_parser import is_rle_compressed, is_rle_compressed_from_bytes


@pytest.mark.parametrize("bpp,compression,expected", [
    (8, 0, False),
    (8, 1, True),
    (4, 2, True),
    (24, 0, False),
])
def test_probe_bytes(bpp, compression, expected):
    bmp = make_bmp(1, 1, bpp, bytes(4), [BLACK, RED], compression=compression)

    assert is_rle_compressed_from_bytes(bmp) is expected


def test_probe_bytes_too_short():
    with pytest.raises(BufferTooShort):
        is_rle_compressed_from_bytes(b"BM" + bytes(51))


def test_probe_bytes_reads_only_compression_field():
    # no signature or bit depth check in the byte form
    bmp = bytearray(make_bmp(1, 1, 24, bytes(4), signature=b"XX"))
    bmp[30:34] = (2).to_bytes(4, 'little')

    assert is_rle_compressed_from_bytes(bytes(bmp)) is True


@pytest.mark.parametrize("compression,expected", [(0, False), (1, True)])
def test_probe_stream_restores_position(compression, expected):
    stream = io.BytesIO(make_bmp(1, 1, 8, bytes(4), [BLACK], compression=compression))
    stream.seek(17)

    assert is_rle_compressed(stream) is expected
    assert stream.tell() == 17


def test_probe_stream_bad_signature_is_false():
    stream = io.BytesIO(make_bmp(1, 1, 8, bytes(4), [BLACK], compression=1, signature=b"XX"))

    assert is_rle_compressed(stream) is False
    assert stream.tell() == 0


def test_probe_stream_short_header_restores_position():
    stream = io.BytesIO(b"BM" + bytes(20))
    stream.seek(5)

    with pytest.raises(ProbeError):
        is_rle_compressed(stream)
    assert stream.tell() == 5


def test_probe_stream_restores_position_when_read_fails():
    class FailingStream(io.BytesIO):
        def read(self, *args):
            raise OSError("device gone")

    stream = FailingStream(bytes(60))
    stream.seek(9)

    with pytest.raises(OSError):
        is_rle_compressed(stream)
    assert stream.tell() == 9


@pytest.mark.parametrize("data", [b"", b"B"])
def test_probe_stream_without_signature_bytes(data):
    stream = io.BytesIO(data)

    with pytest.raises(BufferTooShort):
        is_rle_compressed(stream)
    assert stream.tell() == 0
