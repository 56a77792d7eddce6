__version__ = "0.1.0"

from .errors import PupError, FormatError, UnsupportedFeatureError, NotFoundError, DecryptError, DecompressError, SignatureError
from .puptypes import KeyStore, PupSegment, SegmentFlags
from .pupcrypt import KeyStoreCrypto, pup_decrypt
from .inflate import inflate
from .verify import SignatureStatus, ExtractedSegment, NullVerifier
from .pup import PupParser, SegmentTable
