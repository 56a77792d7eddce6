from typing import IO, Iterable, Iterator

from .errors import FormatError, NotFoundError, UnsupportedFeatureError, DecompressError
from .inflate import inflate
from .pupcrypt import KeyStoreCrypto, pup_decrypt
from .puptypes import PupHeader, PupHeaderEx, PupSegmentEntry, PupSegmentMeta, PupDigest, PupExtent, PupSegment, PupFlags
from .util import read_at
from .verify import ExtractedSegment, NullVerifier, SignatureStatus


class SegmentTable:
    """ PUP segment entries joined with their metadata, in file order """

    def __init__(self, segments: Iterable[PupSegment]):
        self.segments = tuple(segments)

    @classmethod
    def build(cls, entries: list[PupSegmentEntry], metas: list[PupSegmentMeta]) -> "SegmentTable":
        if len(entries) != len(metas):
            raise FormatError(f"Segment entry/meta count mismatch: {len(entries)} != {len(metas)}")
        return cls(PupSegment.join(i, entry, meta) for i, (entry, meta) in enumerate(zip(entries, metas)))

    def __len__(self):
        return len(self.segments)

    def __getitem__(self, index) -> PupSegment:
        return self.segments[index]

    def __iter__(self) -> Iterator[PupSegment]:
        return iter(self.segments)

    def find(self, id: int, info=False) -> PupSegment:
        for segment in self.segments:
            if segment.id == id and segment.is_info == info:
                return segment
        raise NotFoundError(f"PUP {'info ' if info else ''}segment 0x{id:X} not found")


class PupParser:
    def __init__(self, f: IO[bytes], header: PupHeader, header_ex: PupHeaderEx, table: SegmentTable, verifier=None, silent=True):
        self.f = f
        self.header = header
        self.header_ex = header_ex
        self.table = table
        self.verifier = verifier if verifier is not None else NullVerifier()
        self.silent = silent

    @classmethod
    def open(cls, f: IO[bytes], crypto=None, verify=False, verifier=None, silent=True) -> "PupParser":
        if crypto is None:
            crypto = KeyStoreCrypto()

        f.seek(0)
        header = PupHeader.unpack(f)
        if header.flags & PupFlags.JIG:
            raise UnsupportedFeatureError("Unsupported JIG flag")
        if not silent:
            print("-" * 80)
            print(header)

        # header extension and segment entries
        ext_size = header.hdr_size - PupHeader.Size()
        if ext_size < PupHeaderEx.Size():
            raise FormatError(f"PUP header size 0x{header.hdr_size:X} is too small")
        dat = read_at(f, PupHeader.Size(), ext_size)
        dec = crypto.decrypt(dat, "pup.hdr")
        header_ex = PupHeaderEx.unpack(dec)
        if not silent:
            print(header_ex)
        entries = PupSegmentEntry.unpack_array(dec, header_ex.segment_count, PupHeaderEx.Size())

        # segment keys
        dat = read_at(f, header.hdr_size, header.meta_size)
        dec = crypto.decrypt(dat, "pup.root_key")
        metas = PupSegmentMeta.unpack_array(dec, header_ex.segment_count)

        table = SegmentTable.build(entries, metas)
        if not silent:
            for segment in table:
                print(segment)
            print("-" * 80)

        if verify:
            raise UnsupportedFeatureError("PUP header verification is not implemented")
        return cls(f, header, header_ex, table, verifier, silent)

    def reopen(self, f: IO[bytes]) -> "PupParser":
        " parser over another handle to the same file, sharing the decrypted tables "
        return PupParser(f, self.header, self.header_ex, self.table, self.verifier, self.silent)

    def find(self, id: int) -> int:
        return self.table.find(id).idx

    def find_info(self, id: int) -> int:
        return self.table.find(id, info=True).idx

    def get(self, id: int) -> bytes:
        return self.extract(id).data

    def extract(self, id: int) -> ExtractedSegment:
        index = self.find(id)
        if not self.silent:
            print(f"Extracting segment 0x{id:X}...")
        if self.table[index].has_blocks:
            return self.extract_blocked(index)
        return self.get_nonblocked(index)

    def get_blocked(self, index: int) -> bytes:
        return self.extract_blocked(index).data

    def get_nonblocked(self, index: int):
        raise UnsupportedFeatureError("Non-blocked PUP segments are not supported")

    def _read_info(self, entry: PupSegment, info: PupSegment) -> tuple[list[PupDigest], list[PupExtent], SignatureStatus]:
        dat = read_at(self.f, info.offset, info.file_size)
        if info.is_encrypted:
            dat = pup_decrypt(dat, info.key, info.iv)
        if info.is_compressed:
            raise UnsupportedFeatureError("Compressed PUP info segments are not supported")
        status = SignatureStatus.UNSIGNED
        if info.is_signed:
            status = self.verifier.verify_info(info, dat)

        offset = 0
        digests: list[PupDigest] = []
        extents: list[PupExtent] = []
        if info.has_digests:
            digests = PupDigest.unpack_array(dat, entry.block_count, offset)
            offset += PupDigest.Size() * entry.block_count
        if info.has_extents:
            extents = PupExtent.unpack_array(dat, entry.block_count, offset)
        return digests, extents, status

    def extract_blocked(self, index: int) -> ExtractedSegment:
        entry = self.table[index]
        info = self.table.find(entry.id, info=True)
        digests, extents, status = self._read_info(entry, info)
        statuses = [status]

        left_size = entry.file_size
        segment = bytearray()
        for i, extent in enumerate(extents):
            block = read_at(self.f, entry.offset + extent.offset, extent.size)

            cur_zsize = (extent.size & ~0xF) - (extent.size & 0xF)
            cur_size = min(entry.block_size, left_size)
            left_size -= cur_size

            if entry.is_signed:
                digest = digests[i].digest if digests else None
                statuses.append(self.verifier.verify_block(entry, i, block, digest))
            else:
                statuses.append(SignatureStatus.UNSIGNED)

            if entry.is_encrypted:
                block = pup_decrypt(block, entry.key, entry.iv)

            if entry.is_compressed:
                if cur_zsize < 0:
                    raise DecompressError(f"Invalid compressed size for block {i} of segment 0x{entry.id:X}")
                segment += inflate(block[:cur_zsize], cur_size)
            else:
                if len(block) < cur_size:
                    raise FormatError(f"Block {i} of segment 0x{entry.id:X} is too short: need 0x{cur_size:X}, got 0x{len(block):X}")
                segment += block[:cur_size]

        if len(segment) != entry.file_size:
            raise FormatError(f"Segment 0x{entry.id:X} assembled 0x{len(segment):X} of 0x{entry.file_size:X} bytes")
        return ExtractedSegment(bytes(segment), min(statuses))
