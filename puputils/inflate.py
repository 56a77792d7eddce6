import zlib

from .errors import DecompressError


def inflate(data: bytes, size: int) -> bytes:
    " inflates a zlib stream that must expand to exactly size bytes "
    z = zlib.decompressobj()
    try:
        out = z.decompress(data, size + 1)
        if len(out) > size or z.unconsumed_tail:
            raise DecompressError(f"Decompressed block exceeds expected size 0x{size:X}")
        out += z.flush()
    except zlib.error as e:
        raise DecompressError(f"Corrupt compressed block: {e}") from e
    if not z.eof:
        raise DecompressError("Truncated compressed block")
    if len(out) != size:
        raise DecompressError(f"Decompressed size mismatch: expected 0x{size:X}, got 0x{len(out):X}")
    return out
