from Cryptodome.Cipher import AES

from . import keys
from .errors import DecryptError
from .puptypes import KeyStore

# IV of the single-block re-encryption used to recover unaligned tails
CTS_IV = b"\0" * 16


def _check_key(key: bytes, iv: bytes):
    if len(key) != 16:
        raise DecryptError(f"Invalid AES-128 key length {len(key)}")
    if len(iv) != 16:
        raise DecryptError(f"Invalid AES IV length {len(iv)}")


def aes_cbc_decrypt(data: bytes, key: bytes, iv: bytes) -> bytes:
    _check_key(key, iv)
    if len(data) % 16:
        raise DecryptError(f"Data length 0x{len(data):X} is not a multiple of the AES block size")
    if not data:
        return b""
    try:
        return AES.new(key, AES.MODE_CBC, iv).decrypt(data)
    except ValueError as e:
        raise DecryptError(str(e)) from e


def pup_decrypt(data: bytes, key: bytes, iv: bytes) -> bytes:
    """
    Decrypts a PUP segment or block with AES-128-CBC.

    Trailing bytes past the last full block are not CBC encrypted. They are
    XORed with the encryption of the last full ciphertext block under CTS_IV,
    or of the IV itself when the buffer holds no full block.
    """
    _check_key(key, iv)
    size_aligned = len(data) & ~0xF
    overflow = len(data) & 0xF

    if overflow and size_aligned >= 16:
        prev_block = bytes(data[size_aligned - 16:size_aligned])
    else:
        prev_block = iv

    out = bytearray(aes_cbc_decrypt(data[:size_aligned], key, iv))

    if overflow:
        try:
            next_block = AES.new(key, AES.MODE_CBC, CTS_IV).encrypt(prev_block)
        except ValueError as e:
            raise DecryptError(str(e)) from e
        out += bytes(c ^ k for c, k in zip(data[size_aligned:], next_block))
    return bytes(out)


class KeyStoreCrypto:
    """ decrypts with named AES-128-CBC keys, puputils.keys.PUP_KEYS by default """

    def __init__(self, store: KeyStore | None = None):
        self.store = store

    def decrypt(self, data: bytes, name: str) -> bytes:
        store = self.store if self.store is not None else keys.PUP_KEYS
        (key, iv) = store.get(name)
        return aes_cbc_decrypt(data, key, iv)
