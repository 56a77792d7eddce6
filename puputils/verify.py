from enum import IntEnum
from typing import NamedTuple, Optional

from .puptypes import PupSegment


class SignatureStatus(IntEnum):
    # ordered weakest first
    UNVERIFIED = 0
    UNSIGNED = 1
    VERIFIED = 2


class ExtractedSegment(NamedTuple):
    data: bytes
    status: SignatureStatus


class NullVerifier:
    """
    Signature checks are not implemented for PUP segments. Signed data passes
    through marked UNVERIFIED; a real verifier implements the same two
    methods, returning VERIFIED or raising SignatureError.
    """

    def verify_info(self, segment: PupSegment, data: bytes) -> SignatureStatus:
        return SignatureStatus.UNVERIFIED

    def verify_block(self, segment: PupSegment, index: int, data: bytes, digest: Optional[bytes]) -> SignatureStatus:
        return SignatureStatus.UNVERIFIED
