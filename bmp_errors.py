class BMPError(ValueError):
    """Base class for everything raised while reading a BMP file."""


class DecodeError(BMPError):
    pass


class MalformedHeader(DecodeError):
    """Bad "BM" signature, short header read or impossible header values."""


class UnsupportedBitDepth(DecodeError):
    pass


class UnsupportedCompression(DecodeError):
    pass


class IncompatibleCompressionBitDepth(DecodeError):
    """RLE8 paired with a depth other than 8, or RLE4 with one other than 4."""


class TruncatedPalette(DecodeError):
    pass


class TruncatedRow(DecodeError):
    pass


class TruncatedRLEToken(DecodeError):
    """Stream ended inside an RLE token, delta or absolute-run payload."""


class ProbeError(BMPError):
    pass


class BufferTooShort(ProbeError):
    pass
