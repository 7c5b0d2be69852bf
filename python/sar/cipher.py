"""
Cipher - Decryption of Vim-encrypted files.

Vim writes a 12 byte magic header followed by the ciphertext. Three
methods exist; only "zip" (VimCrypt~01!, the PKZIP stream cipher) is
implemented. The two blowfish variants are recognized and rejected with
UnsupportedMethod rather than being decoded into garbage.
"""

import logging
from enum import Enum
from typing import List

import numpy as np

from .errors import UnrecognizedFormat, UnsupportedMethod


logger = logging.getLogger(__name__)


HEADER_SIZE = 12
MAGIC_PREFIX = b"VimCrypt~"
CRC_SEED = 0xEDB88320

_MASK32 = 0xFFFFFFFF


class CryptMethod(Enum):
    """Encryption methods identified by the VimCrypt header."""
    ZIP = b"VimCrypt~01!"
    BLOWFISH = b"VimCrypt~02!"
    BLOWFISH2 = b"VimCrypt~03!"


def detect_method(header: bytes) -> CryptMethod:
    """Identify the method from the first 12 bytes of a file."""
    try:
        return CryptMethod(bytes(header[:HEADER_SIZE]))
    except ValueError:
        raise UnrecognizedFormat(bytes(header[:HEADER_SIZE])) from None


def is_encrypted(header: bytes) -> bool:
    """True if the bytes start with the VimCrypt magic, whatever the method."""
    return bytes(header[:len(MAGIC_PREFIX)]) == MAGIC_PREFIX


def make_crc_table(seed: int = CRC_SEED) -> List[int]:
    """
    Build the 256 entry CRC-32 lookup table for ``seed``.

    All 256 entries are shifted in lockstep, eight rounds.
    """
    v = np.arange(256, dtype=np.uint32)
    seed_arr = np.uint32(seed)
    for _ in range(8):
        v = (v >> np.uint32(1)) ^ np.where(v & np.uint32(1), seed_arr, np.uint32(0))
    # Plain ints are much faster than numpy scalars in the per-byte loop
    return v.tolist()


_CRC_TABLE = make_crc_table()


class ZipKeys:
    """The three-key state of the PKZIP stream cipher."""

    def __init__(self, password: str):
        self.k0 = 0x12345678
        self.k1 = 0x23456789
        self.k2 = 0x34567890
        for byte in password.encode("utf-8"):
            self.update(byte)

    @staticmethod
    def _crc(crc: int, byte: int) -> int:
        return _CRC_TABLE[(crc ^ byte) & 0xFF] ^ (crc >> 8)

    def update(self, byte: int) -> None:
        """Advance the key state with one plaintext byte."""
        self.k0 = self._crc(self.k0, byte)
        self.k1 = ((self.k1 + (self.k0 & 0xFF)) * 134775813 + 1) & _MASK32
        self.k2 = self._crc(self.k2, (self.k1 >> 24) & 0xFF)

    def stream_byte(self) -> int:
        """Next key stream byte (does not advance the state)."""
        x = (self.k2 | 2) & 0xFFFF
        return ((x * (x ^ 1)) >> 8) & 0xFF


def zip_decrypt(data: bytes, password: str) -> bytes:
    """Decrypt a zip-method body (the bytes after the header)."""
    keys = ZipKeys(password)
    plain = bytearray(len(data))
    for i, c in enumerate(data):
        p = c ^ keys.stream_byte()
        plain[i] = p
        keys.update(p)
    return bytes(plain)


def decrypt(data: bytes, password: str) -> bytes:
    """
    Decrypt a complete Vim-encrypted file.

    Args:
        data: Raw file content including the 12 byte header
        password: The password the file was written with

    Returns:
        Plaintext bytes

    Raises:
        UnrecognizedFormat: Header is missing or not a VimCrypt header
        UnsupportedMethod: Header names a blowfish method
    """
    method = detect_method(data[:HEADER_SIZE])
    if method is not CryptMethod.ZIP:
        raise UnsupportedMethod(method)

    logger.debug(f"Decrypting {len(data) - HEADER_SIZE} bytes ({method.name})")
    return zip_decrypt(data[HEADER_SIZE:], password)
