import io


def u16(b, pos=0):
    return int.from_bytes(b[pos:pos+2], 'little')


def u32(b, pos=0):
    return int.from_bytes(b[pos:pos+4], 'little')


def s32(b, pos=0):
    return int.from_bytes(b[pos:pos+4], 'little', signed=True)


class ByteReader:
    """Sequential reader over a binary stream.

    read() returns at most n bytes, like the underlying stream;
    read_exact() raises the given error class on a short read.
    """

    def __init__(self, stream):
        self.stream = stream
        self.consumed = 0   # bytes handed out so far

    @classmethod
    def from_bytes(cls, buffer):
        return cls(io.BytesIO(bytes(buffer)))

    def read(self, n):
        if n <= 0:
            return b""
        data = self.stream.read(n)
        self.consumed += len(data)
        return data

    def read_exact(self, n, error, what="data"):
        data = self.read(n)
        if len(data) != n:
            raise error(f"Short read on {what}: expected {n} bytes, got {len(data)}")
        return data

    def skip(self, n, error, what="data"):
        # stream may not be seekable, so skip by reading
        wanted = n
        while n > 0:
            chunk = self.read(min(n, 65536))
            if not chunk:
                raise error(f"Short skip over {what}: expected {wanted} bytes, got {wanted - n}")
            n -= len(chunk)
