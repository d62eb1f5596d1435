"""Windows BMP decoding into RGBA pixel buffers.

Handles BITMAPINFOHEADER files (and the larger V4/V5 headers, whose extra
fields are ignored) at 1, 4, 8 and 24 bits per pixel, uncompressed or
RLE8/RLE4 compressed.
"""
import io
import logging
from dataclasses import dataclass
from enum import Enum

from bmp_errors import (
    BufferTooShort, IncompatibleCompressionBitDepth, MalformedHeader,
    TruncatedPalette, TruncatedRow, UnsupportedBitDepth, UnsupportedCompression,
)
from rle_decoder import decode_rle
from utils import ByteReader, s32, u16, u32

log = logging.getLogger(__name__)

FILE_HEADER_SIZE = 14
INFO_HEADER_SIZE = 40
HEADER_SIZE = FILE_HEADER_SIZE + INFO_HEADER_SIZE
COMPRESSION_OFFSET = 30

BI_RGB = 0
BI_RLE8 = 1
BI_RLE4 = 2
COMPRESSION_NAMES = {BI_RGB: "BI_RGB", BI_RLE8: "BI_RLE8", BI_RLE4: "BI_RLE4"}
SUPPORTED_BIT_DEPTHS = (1, 4, 8, 24)

MAX_INFO_HEADER_SIZE = 124      # BITMAPV5HEADER
MAX_PIXELS = 1 << 26

OPAQUE_BLACK = (0, 0, 0, 255)


class PixelFormat(Enum):
    """Every valid (bit depth, compression) pairing."""
    INDEXED1 = (1, BI_RGB)
    INDEXED4 = (4, BI_RGB)
    INDEXED4_RLE = (4, BI_RLE4)
    INDEXED8 = (8, BI_RGB)
    INDEXED8_RLE = (8, BI_RLE8)
    RGB24 = (24, BI_RGB)

    def __init__(self, bpp, compression):
        self.bpp = bpp
        self.compression = compression

    @property
    def is_rle(self):
        return self.compression != BI_RGB

    @property
    def is_indexed(self):
        return self.bpp <= 8

    @classmethod
    def from_header(cls, bpp, compression):
        if bpp not in SUPPORTED_BIT_DEPTHS:
            raise UnsupportedBitDepth(f"Unsupported bpp: {bpp}")
        if compression not in COMPRESSION_NAMES:
            raise UnsupportedCompression(f"Unsupported compression: {compression}")
        for fmt in cls:
            if fmt.value == (bpp, compression):
                return fmt
        raise IncompatibleCompressionBitDepth(
            f"{COMPRESSION_NAMES[compression]} cannot be used with {bpp} bpp")


@dataclass
class FileHeader:
    signature: bytes
    file_size: int
    data_offset: int

    @classmethod
    def parse(cls, b):
        return cls(signature=bytes(b[0:2]), file_size=u32(b, 2), data_offset=u32(b, 10))


@dataclass
class InfoHeader:
    header_size: int
    width: int
    height: int         # negative for top-down rows
    planes: int
    bpp: int
    compression: int
    image_size: int
    x_pels_per_meter: int
    y_pels_per_meter: int
    colors_used: int
    colors_important: int

    @classmethod
    def parse(cls, b):
        return cls(
            header_size=u32(b, 0),
            width=s32(b, 4),
            height=s32(b, 8),
            planes=u16(b, 12),
            bpp=u16(b, 14),
            compression=u32(b, 16),
            image_size=u32(b, 20),
            x_pels_per_meter=s32(b, 24),
            y_pels_per_meter=s32(b, 28),
            colors_used=u32(b, 32),
            colors_important=u32(b, 36),
        )

    @property
    def top_down(self):
        return self.height < 0

    @property
    def abs_height(self):
        return abs(self.height)

    @property
    def palette_size(self):
        if self.bpp > 8:
            return 0
        return self.colors_used or (1 << self.bpp)


class DecodedImage:
    """width x height RGBA8888 pixels, row-major, first row at the top."""

    def __init__(self, width, height):
        self.width = width
        self.height = height
        self.pixels = bytearray(bytes(OPAQUE_BLACK) * (width * height))

    def put(self, x, y, color):
        if 0 <= x < self.width and 0 <= y < self.height:
            i = (y * self.width + x) * 4
            self.pixels[i:i+4] = color

    def pixel(self, x, y):
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Pixel ({x}, {y}) outside {self.width}x{self.height} image")
        i = (y * self.width + x) * 4
        return tuple(self.pixels[i:i+4])

    def rows(self):
        return [[self.pixel(x, y) for x in range(self.width)] for y in range(self.height)]

    def __repr__(self):
        return f"<DecodedImage {self.width}x{self.height}>"


def destination_row(height, top_down):
    """Map a row index in file order to its row in the top-down output."""
    if top_down:
        return lambda row: row
    return lambda row: height - 1 - row


def row_stride(bpp, width):
    # rows are padded to a multiple of 4 bytes
    return ((bpp * width + 31) // 32) * 4


def row_indices(row, bpp, width):
    """Unpack one packed row of 1/4/8-bit palette indices."""
    if bpp == 8:
        return row[:width]
    if bpp == 4:
        return [(row[x // 2] >> (4 * (1 - x % 2))) & 0x0F for x in range(width)]
    return [(row[x // 8] >> (7 - x % 8)) & 1 for x in range(width)]


class BMPParser:
    def __init__(self, stream, strict=False):
        self.reader = ByteReader(stream)
        self.strict = strict            # report a missing RLE end-of-bitmap marker
        self.metadata = {}              # header information (width, height, etc.)
        self.color_table = []           # palette as (R, G, B, 255)
        self.file_header = None
        self.info_header = None
        self.pixel_format = None
        self.image = None

    def load(self):
        self._parse_header()
        self._parse_color_table()
        self._skip_to_pixel_data()
        self._parse_pixel_data()
        return self.image

    def _parse_header(self):
        b = self.reader.read_exact(HEADER_SIZE, MalformedHeader, "BMP header")
        fh = FileHeader.parse(b)
        if fh.signature != b'BM':
            raise MalformedHeader(f"Not a BMP file: signature {fh.signature!r}")
        ih = InfoHeader.parse(b[FILE_HEADER_SIZE:])
        if not INFO_HEADER_SIZE <= ih.header_size <= MAX_INFO_HEADER_SIZE:
            raise MalformedHeader(f"Unsupported info header size: {ih.header_size}")

        fmt = PixelFormat.from_header(ih.bpp, ih.compression)

        if ih.width <= 0 or ih.height == 0:
            raise MalformedHeader(f"Invalid image size: {ih.width}x{ih.height}")
        if ih.width * ih.abs_height > MAX_PIXELS:
            raise MalformedHeader(f"Image too large: {ih.width}x{ih.abs_height}")
        if fmt.is_indexed and ih.colors_used > (1 << ih.bpp):
            raise MalformedHeader(
                f"{ih.colors_used} palette entries declared for a {ih.bpp} bpp image")

        self.file_header = fh
        self.info_header = ih
        self.pixel_format = fmt
        self.metadata = {
            'file_size': fh.file_size,
            'data_offset': fh.data_offset,
            'header_size': ih.header_size,
            'width': ih.width,
            'height': ih.abs_height,
            'top_down': ih.top_down,
            'bpp': ih.bpp,
            'compression': COMPRESSION_NAMES[ih.compression],
            'image_size': ih.image_size,
            'palette_size': ih.palette_size,
            'pixel_format': fmt.name,
        }
        log.debug("BMP header: %s", self.metadata)

    def _parse_color_table(self):
        ih = self.info_header
        # V4/V5 headers carry extra fields before the palette
        extra = ih.header_size - INFO_HEADER_SIZE
        if extra > 0:
            self.reader.read_exact(extra, MalformedHeader, "extended info header")

        if not self.pixel_format.is_indexed:
            return
        count = ih.palette_size
        self.color_table = []
        for i in range(count):
            b, g, r, _ = self.reader.read_exact(4, TruncatedPalette, f"palette entry {i} of {count}")
            self.color_table.append((r, g, b, 255))
        log.debug("Loaded %d palette entries", count)

    def _skip_to_pixel_data(self):
        skip = self.file_header.data_offset - self.reader.consumed
        if skip > 0:
            log.debug("Skipping %d bytes to pixel data at offset %d",
                      skip, self.file_header.data_offset)
            self.reader.skip(skip, MalformedHeader, "gap before pixel data")
        elif skip < 0:
            log.warning("Pixel data offset %d lies inside the headers/palette (%d bytes read)",
                        self.file_header.data_offset, self.reader.consumed)

    def _parse_pixel_data(self):
        ih = self.info_header
        fmt = self.pixel_format
        width, height = ih.width, ih.abs_height
        self.image = DecodedImage(width, height)
        row_of = destination_row(height, ih.top_down)

        log.debug("Decoding %dx%d %s", width, height, fmt.name)
        if fmt is PixelFormat.INDEXED8_RLE:
            decode_rle(self.reader, self.image, self.color_table, row_of, 8, self.strict)
        elif fmt is PixelFormat.INDEXED4_RLE:
            decode_rle(self.reader, self.image, self.color_table, row_of, 4, self.strict)
        else:
            self._decode_uncompressed(row_of)

    def _decode_uncompressed(self, row_of):
        bpp = self.pixel_format.bpp
        width, height = self.image.width, self.image.height
        stride = row_stride(bpp, width)
        palette = self.color_table

        for src_row in range(height):
            row = self.reader.read_exact(stride, TruncatedRow, f"row {src_row}")
            y = row_of(src_row)

            # 24-bit BMP (no palette, direct BGR)
            if bpp == 24:
                for x in range(width):
                    B, G, R = row[x*3:x*3+3]
                    self.image.put(x, y, (R, G, B, 255))
                continue

            for x, index in enumerate(row_indices(row, bpp, width)):
                if index < len(palette):
                    self.image.put(x, y, palette[index])


def decode(stream, strict=False):
    """Decode a BMP image from a binary stream.

    The stream is left positioned after the consumed pixel data.
    Raises a DecodeError subclass on malformed or unsupported input.
    """
    return BMPParser(stream, strict=strict).load()


def decode_from_bytes(buffer, strict=False):
    return decode(io.BytesIO(bytes(buffer)), strict=strict)


def decode_file(filepath, strict=False):
    with open(filepath, "rb") as f:
        return BMPParser(f, strict=strict).load()


def read_metadata(stream):
    """Parse and validate the headers only; returns the metadata dict."""
    parser = BMPParser(stream)
    parser._parse_header()
    return parser.metadata


def is_rle_compressed(stream):
    """True if the BMP in a seekable stream uses RLE8 or RLE4.

    Reads from the start of the stream and restores the original position,
    also when an error is raised.  A missing "BM" signature returns False;
    a stream too short to hold the signature raises BufferTooShort.
    """
    pos = stream.tell()
    try:
        stream.seek(0)
        b = stream.read(HEADER_SIZE)
    finally:
        stream.seek(pos)

    if len(b) < 2:
        raise BufferTooShort(f"BMP header needs {HEADER_SIZE} bytes, got {len(b)}")
    if b[0:2] != b'BM':
        return False
    if len(b) < HEADER_SIZE:
        raise BufferTooShort(f"BMP header needs {HEADER_SIZE} bytes, got {len(b)}")
    return u32(b, COMPRESSION_OFFSET) in (BI_RLE8, BI_RLE4)


def is_rle_compressed_from_bytes(buffer):
    if len(buffer) < HEADER_SIZE:
        raise BufferTooShort(f"BMP header needs {HEADER_SIZE} bytes, got {len(buffer)}")
    return u32(buffer, COMPRESSION_OFFSET) in (BI_RLE8, BI_RLE4)
