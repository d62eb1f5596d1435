"""Run-length decoding of BI_RLE8 and BI_RLE4 pixel data.

The token stream is a sequence of 2-byte pairs (count, value).  A non-zero
count is a run; a zero count is an escape whose value selects end-of-line (0),
end-of-bitmap (1), delta (2) or an absolute run of `value` literal pixels (>=3).
Absolute runs are padded to a 16-bit boundary in the byte stream.
"""
import logging
from dataclasses import dataclass

from bmp_errors import TruncatedRLEToken

log = logging.getLogger(__name__)

ESCAPE_END_OF_LINE = 0
ESCAPE_END_OF_BITMAP = 1
ESCAPE_DELTA = 2


@dataclass(frozen=True)
class Run:
    count: int
    value: int


@dataclass(frozen=True)
class EndOfLine:
    pass


@dataclass(frozen=True)
class EndOfBitmap:
    pass


@dataclass(frozen=True)
class Delta:
    dx: int
    dy: int


@dataclass(frozen=True)
class Absolute:
    indices: tuple


def unpack_nibbles(data, count):
    """Split bytes into 4-bit indices, high nibble first, keeping `count` of them."""
    out = []
    for byte in data:
        out.append(byte >> 4)
        out.append(byte & 0x0F)
    return out[:count]


def run_indices(run, bits):
    if bits == 4:
        hi, lo = run.value >> 4, run.value & 0x0F
        return [hi if i % 2 == 0 else lo for i in range(run.count)]
    return [run.value] * run.count


def read_tokens(reader, bits, strict=False):
    """Yield tokens from the RLE stream until end-of-bitmap or end of input.

    Running out of input exactly where the next pair should start ends the
    stream quietly, unless `strict` is set.
    """
    name = f"RLE{bits}"
    while True:
        pair = reader.read(2)
        if not pair:
            if strict:
                raise TruncatedRLEToken(f"{name} stream ended without an end-of-bitmap marker")
            log.warning("%s stream ended without an end-of-bitmap marker", name)
            return
        if len(pair) < 2:
            raise TruncatedRLEToken(f"{name} stream ended inside a token pair")

        count, value = pair[0], pair[1]
        if count > 0:
            yield Run(count, value)
        elif value == ESCAPE_END_OF_LINE:
            yield EndOfLine()
        elif value == ESCAPE_END_OF_BITMAP:
            yield EndOfBitmap()
            return
        elif value == ESCAPE_DELTA:
            dx, dy = reader.read_exact(2, TruncatedRLEToken, f"{name} delta")
            yield Delta(dx, dy)
        else:
            if bits == 4:
                nbytes = (value + 1) // 2
                data = reader.read_exact(nbytes, TruncatedRLEToken, f"{name} absolute run")
                indices = unpack_nibbles(data, value)
            else:
                nbytes = value
                data = reader.read_exact(nbytes, TruncatedRLEToken, f"{name} absolute run")
                indices = list(data)
            if nbytes % 2:
                reader.read_exact(1, TruncatedRLEToken, f"{name} absolute run padding")
            yield Absolute(tuple(indices))


class Cursor:
    """Write position for one RLE decode.

    x and y may wander outside the image; draws there are dropped
    but the position still moves.
    """

    def __init__(self, image, palette, row_of):
        self.image = image
        self.palette = palette
        self.row_of = row_of
        self.x = 0
        self.y = 0

    def draw(self, index):
        if index < len(self.palette):
            self.image.put(self.x, self.row_of(self.y), self.palette[index])
        self.x += 1

    def end_of_line(self):
        self.x = 0
        self.y += 1

    def move(self, dx, dy):
        self.x += dx
        self.y += dy


def decode_rle(reader, image, palette, row_of, bits, strict=False):
    """Decode an RLE4 (bits=4) or RLE8 (bits=8) stream into `image`.

    `row_of` maps a stream row (0 = first row in the file) to an output row.
    Returns the final cursor.
    """
    cursor = Cursor(image, palette, row_of)
    for token in read_tokens(reader, bits, strict):
        if isinstance(token, Run):
            for index in run_indices(token, bits):
                cursor.draw(index)
        elif isinstance(token, Absolute):
            for index in token.indices:
                cursor.draw(index)
        elif isinstance(token, EndOfLine):
            cursor.end_of_line()
        elif isinstance(token, Delta):
            cursor.move(token.dx, token.dy)
        elif isinstance(token, EndOfBitmap):
            break
    log.debug("RLE%d decode finished at cursor (%d, %d)", bits, cursor.x, cursor.y)
    return cursor
