import os
from typing import IO

from .errors import FormatError


def read_at(f: IO[bytes], offset: int, size: int) -> bytes:
    f.seek(offset, os.SEEK_SET)
    data = f.read(size)
    if len(data) != size:
        raise FormatError(f"Unexpected end of stream at 0x{offset:X}: need 0x{size:X} bytes, got 0x{len(data):X}")
    return data
