import binascii
import struct
from enum import IntFlag
from typing import NamedTuple, IO, ClassVar, Type, TypeVar

from .errors import FormatError

PUP_MAGIC = 0x1D3D154F
PUP_VERSION = 0
PUP_MODE = 1
PUP_ENDIAN_LITTLE = 1
PUP_ATTR = 0x12


class PupFlags(IntFlag):
    JIG = 1


class SegmentFlags(IntFlag):
    INFO = 1 << 0
    ENCRYPTED = 1 << 1
    SIGNED = 1 << 2
    COMPRESSED = 1 << 3
    BLOCKS = 1 << 11
    DIGESTS = 1 << 16
    EXTENTS = 1 << 17


class KeyEntry(NamedTuple):
    key: bytes
    iv: bytes


class KeyStore:
    def __init__(self):
        self._store = {}

    def register(self, name, key, iv="00" * 16):
        self._store[name] = KeyEntry(binascii.a2b_hex(key), binascii.a2b_hex(iv))

    def get(self, name):
        if name not in self._store:
            raise KeyError(f"Cannot find key {name!r}")
        item = self._store[name]
        return (item.key, item.iv)

    def __contains__(self, name):
        return name in self._store


T = TypeVar('T', bound='Struct')

class Struct:
    _format: ClassVar[str] = ""   # Format string for struct

    @classmethod
    def field_names(cls):
        return [k for k in cls.__annotations__.keys() if k[0] != "_"]

    @classmethod
    def Size(self):
        return self.struct_size()

    def __init__(self, **kwargs):
        for field in self.field_names():
            setattr(self, field, kwargs.get(field))

    @classmethod
    def struct_size(cls) -> int:
        return struct.calcsize("<" + cls._format)

    @classmethod
    def unpack(cls: Type[T], data: bytes | IO[bytes], offset=0, endian="<") -> T:
        if hasattr(data, 'read'):
            data = data.read(cls.struct_size())

        if len(data) - offset < cls.struct_size():
            raise FormatError(f"Not enough data to unpack {cls.__name__}: need {cls.struct_size()}, got {max(len(data) - offset, 0)}")

        values = struct.unpack_from(endian + cls._format, data, offset)
        kwargs = {name: value for name, value in zip(cls.field_names(), values)}
        instance = cls(**kwargs)
        instance._initialize()
        return instance

    @classmethod
    def unpack_array(cls: Type[T], data: bytes, count: int, offset=0) -> list[T]:
        size = cls.struct_size()
        if len(data) - offset < size * count:
            raise FormatError(f"Not enough data to unpack {count} {cls.__name__}: need {size * count}, got {max(len(data) - offset, 0)}")
        return [cls.unpack(data, offset + i * size) for i in range(count)]

    def pack(self, endian="<") -> bytes:
        values = tuple(getattr(self, name) for name in self.field_names())
        return struct.pack(endian + self._format, *values)

    def _initialize(self):
        return


class PupHeader(Struct):
    _format = "IBBBBBBHHH"

    magic: int
    version: int
    mode: int
    endian: int
    attr: int
    key_type: int
    product: int
    flags: int
    hdr_size: int
    meta_size: int

    def _initialize(self):
        if self.magic != PUP_MAGIC:
            raise FormatError('Invalid PUP magic')
        if self.version != PUP_VERSION:
            raise FormatError('Unknown PUP version')
        if self.mode != PUP_MODE:
            raise FormatError('Unknown PUP mode')
        if self.endian != PUP_ENDIAN_LITTLE:
            raise FormatError('Unsupported PUP endianness')
        if self.attr != PUP_ATTR:
            raise FormatError('Unknown PUP attributes')

    def __str__(self):
        ret = 'PUP Header:\n'
        ret += f' Version:          {self.version}\n'
        ret += f' Mode:             {self.mode}\n'
        ret += f' Attr:             0x{self.attr:X}\n'
        ret += f' Key Type:         0x{self.key_type:X}\n'
        ret += f' Product:          0x{self.product:X}\n'
        ret += f' Flags:            0x{self.flags:X}\n'
        ret += f' Header Size:      0x{self.hdr_size:X}\n'
        ret += f' Meta Size:        0x{self.meta_size:X}'
        return ret


class PupHeaderEx(Struct):
    _format = "QHHI"

    file_size: int
    segment_count: int
    field_1A: int
    field_1C: int

    def __str__(self):
        ret = 'PUP Header Ex:\n'
        ret += f' File Size:        0x{self.file_size:X}\n'
        ret += f' Segment Count:    {self.segment_count}'
        return ret


class PupSegmentEntry(Struct):
    _format = "QQQQ"

    flags: int
    offset: int
    file_size: int
    memory_size: int


class PupSegmentMeta(Struct):
    _format = "16s16s"

    data_key: bytes
    data_iv: bytes


class PupDigest(Struct):
    _format = "32s"

    digest: bytes


class PupExtent(Struct):
    _format = "II"

    offset: int
    size: int


class PupSegment(NamedTuple):
    idx: int
    flags: int
    offset: int
    file_size: int
    memory_size: int
    block_size: int
    block_count: int
    key: bytes
    iv: bytes

    @classmethod
    def join(cls, index: int, entry: PupSegmentEntry, meta: PupSegmentMeta) -> "PupSegment":
        block_size = 1 << (12 + ((entry.flags >> 12) & 0xF))
        block_count = (entry.file_size + block_size - 1) // block_size
        return cls(index, entry.flags, entry.offset, entry.file_size, entry.memory_size,
                   block_size, block_count, meta.data_key, meta.data_iv)

    @property
    def id(self) -> int:
        return self.flags >> 20

    @property
    def is_info(self) -> bool:
        return bool(self.flags & SegmentFlags.INFO)

    @property
    def is_encrypted(self) -> bool:
        return bool(self.flags & SegmentFlags.ENCRYPTED)

    @property
    def is_signed(self) -> bool:
        return bool(self.flags & SegmentFlags.SIGNED)

    @property
    def is_compressed(self) -> bool:
        return bool(self.flags & SegmentFlags.COMPRESSED)

    @property
    def has_blocks(self) -> bool:
        return bool(self.flags & SegmentFlags.BLOCKS)

    @property
    def has_digests(self) -> bool:
        return bool(self.flags & SegmentFlags.DIGESTS)

    @property
    def has_extents(self) -> bool:
        return bool(self.flags & SegmentFlags.EXTENTS)

    def __str__(self):
        ret = f' Segment {self.idx}:\n'
        ret += f'  id:              0x{self.id:X}{" (info)" if self.is_info else ""}\n'
        ret += f'  flags:           0x{self.flags:X}\n'
        ret += f'  offset:          0x{self.offset:X}\n'
        ret += f'  file_size:       0x{self.file_size:X}\n'
        ret += f'  memory_size:     0x{self.memory_size:X}\n'
        ret += f'  block_size:      0x{self.block_size:X}\n'
        ret += f'  block_count:     {self.block_count}'
        return ret
