from struct import pack, unpack_from
from warnings import warn


MIN_REF_LEN = 3
MAX_REF_LEN = 18
WINDOW_SIZE = 0x1000
WINDOW_MASK = WINDOW_SIZE - 1
REF_SIZE = 2
LEFT_NIBBLE_MASK = 0xf0
RIGHT_NIBBLE_MASK = 0x0f
LZS_HEADER_SIZE = 4


def _correct_offset(raw_offset: int, tail: int) -> int:
    """Converts a 12-bit window offset into an absolute output position (may be negative)"""
    return tail - ((tail - MAX_REF_LEN - raw_offset) & WINDOW_MASK)


class Decoder:
    def __init__(self, compressed_buf: bytes):
        self._read_cursor = 0
        self.compressed_buf = compressed_buf
        self.decompressed_buf = bytearray()

    def _copy_reference(self, raw_offset: int, length: int):
        out = self.decompressed_buf
        tail = len(out)
        pos = _correct_offset(raw_offset, tail)
        if pos == tail:
            # Zero distance reads output that has not been written yet
            out += bytes(length)
            return
        if pos < 0:
            # Window starts out filled with zeros
            zeros = min(-pos, length)
            out += bytes(zeros)
            length -= zeros
            pos = 0
        # Must be byte by byte, source and destination may overlap
        for i in range(length):
            out.append(out[pos + i])

    def decompress(self):
        buf = self.compressed_buf
        end = len(buf)
        while self._read_cursor < end:
            control = buf[self._read_cursor]
            self._read_cursor += 1
            for bit in range(8):
                if self._read_cursor >= end:
                    break
                if control & (1 << bit):
                    self.decompressed_buf.append(buf[self._read_cursor])
                    self._read_cursor += 1
                    continue
                if self._read_cursor + REF_SIZE > end:
                    # Truncated reference, nothing more to decode
                    self._read_cursor = end
                    break
                low = buf[self._read_cursor]
                high = buf[self._read_cursor + 1]
                self._read_cursor += REF_SIZE
                raw_offset = ((high & LEFT_NIBBLE_MASK) << 4) | low
                length = (high & RIGHT_NIBBLE_MASK) + MIN_REF_LEN
                self._copy_reference(raw_offset, length)


def decompress(compressed_buf: bytes) -> bytes:
    dec = Decoder(compressed_buf)
    dec.decompress()
    return bytes(dec.decompressed_buf)


class Dictionary:
    """Maps byte strings of length MIN_REF_LEN..MAX_REF_LEN to the window position they were last seen at.

    Each length keeps a forward (content -> position) and a reverse (position -> content) table so
    that a position being reused or a prefix being seen again evicts the stale mapping."""

    def __init__(self, ptr: int):
        self.ptr = ptr
        self._forward = [{} for _ in range(MAX_REF_LEN + 1)]
        self._reverse = [{} for _ in range(MAX_REF_LEN + 1)]

    def add(self, chunk: bytes):
        for length in range(MIN_REF_LEN, min(len(chunk), MAX_REF_LEN) + 1):
            forward = self._forward[length]
            reverse = self._reverse[length]
            prefix = chunk[:length]
            stale_ptr = forward.get(prefix)
            if stale_ptr is not None:
                del reverse[stale_ptr]
            stale_prefix = reverse.get(self.ptr)
            if stale_prefix is not None:
                del forward[stale_prefix]
            forward[prefix] = self.ptr
            reverse[self.ptr] = prefix
        self.ptr = (self.ptr + 1) & WINDOW_MASK

    def find(self, chunk: bytes):
        """Returns (window offset, length) of the longest known prefix of chunk, or None"""
        for length in range(min(MAX_REF_LEN, len(chunk)), MIN_REF_LEN - 1, -1):
            offset = self._forward[length].get(chunk[:length])
            if offset is not None and offset != self.ptr:
                return (offset, length)
        return None


class Encoder:
    def __init__(self, uncompressed_buf: bytes):
        self._read_cursor = 0
        self._uncompressed_buf = bytes(uncompressed_buf)
        self._uncompressed_len = len(uncompressed_buf)
        self.compressed_buf = bytearray()
        # First real byte lands at WINDOW_SIZE - MAX_REF_LEN, like the decoder assumes
        self._dictionary = Dictionary(WINDOW_SIZE - 2 * MAX_REF_LEN)
        self._prime()

    def _prime(self):
        """Seeds the dictionary with the zeros that precede the stream"""
        for i in range(MAX_REF_LEN):
            self._dictionary.add(bytes(MAX_REF_LEN - i) + self._uncompressed_buf[:i])

    def _chunk_at(self, pos: int) -> bytes:
        return self._uncompressed_buf[pos:pos + MAX_REF_LEN]

    def compress(self):
        while self._read_cursor < self._uncompressed_len:
            flags = 0
            tokens = bytearray()
            for bit in range(8):
                if self._read_cursor >= self._uncompressed_len:
                    break
                found = self._dictionary.find(self._chunk_at(self._read_cursor))
                if found:
                    (offset, length) = found
                    tokens.append(offset & 0xff)
                    tokens.append(((offset >> 4) & LEFT_NIBBLE_MASK) | (length - MIN_REF_LEN))
                    for i in range(length):
                        self._dictionary.add(self._chunk_at(self._read_cursor + i))
                    self._read_cursor += length
                else:
                    tokens.append(self._uncompressed_buf[self._read_cursor])
                    flags |= 1 << bit
                    self._dictionary.add(self._chunk_at(self._read_cursor))
                    self._read_cursor += 1
            self.compressed_buf.append(flags)
            self.compressed_buf += tokens


def compress(uncompressed_buf: bytes) -> bytes:
    enc = Encoder(uncompressed_buf)
    enc.compress()
    return bytes(enc.compressed_buf)


def decompress_lzs(data: bytes) -> bytes:
    """.lzs files carry the compressed length as a u32 before the LZSS stream"""
    if len(data) < LZS_HEADER_SIZE:
        warn("LZS Warning: File is too small to contain a header ({} bytes)".format(len(data)))
        return b""
    (compressed_size, ) = unpack_from("<L", data)
    body = data[LZS_HEADER_SIZE:LZS_HEADER_SIZE + compressed_size]
    if len(body) < compressed_size:
        warn("LZS Warning: Header declares {} compressed bytes but only {} are present".format(compressed_size, len(body)))
    return decompress(body)


def compress_lzs(data: bytes) -> bytes:
    compressed = compress(data)
    return pack("<L", len(compressed)) + compressed
