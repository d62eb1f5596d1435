import struct

import pytest

BLACK = (0, 0, 0, 255)
RED = (255, 0, 0, 255)
GREEN = (0, 255, 0, 255)
BLUE = (0, 0, 255, 255)


def palette_bytes(colors):
    """(r, g, b, a) colors -> BMP color table bytes (B, G, R, reserved)."""
    return b"".join(bytes([b, g, r, 0]) for (r, g, b, _a) in colors)


def make_bmp(width, height, bpp, pixel_data, palette=(), compression=0,
             colors_used=None, data_offset=None, signature=b"BM",
             header_size=40, planes=1):
    """Assemble a BMP file in memory. `height` keeps its sign."""
    table = palette_bytes(palette)
    extra = b"\x00" * (header_size - 40) if header_size > 40 else b""
    if colors_used is None:
        colors_used = len(palette) if palette else 0
    if data_offset is None:
        data_offset = 14 + max(header_size, 40) + len(table)
    file_size = data_offset + len(pixel_data)
    file_header = signature + struct.pack("<IHHI", file_size, 0, 0, data_offset)
    info_header = struct.pack(
        "<IiiHHIIiiII", header_size, width, height, planes, bpp,
        compression, len(pixel_data), 2835, 2835, colors_used, 0)
    body = file_header + info_header + extra + table
    if len(body) < data_offset:
        body += b"\x00" * (data_offset - len(body))
    return body + pixel_data


@pytest.fixture
def rgb_palette():
    return [BLACK, RED, GREEN, BLUE]
