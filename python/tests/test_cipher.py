"""
Cipher Tests - Verify VimCrypt header handling and zip decryption.

Tests:
- CRC table construction
- Round trip against the reference encryptor
- Header recognition and rejection of unsupported methods
"""

import zlib

import pytest

from sar.cipher import (
    CryptMethod, ZipKeys, decrypt, detect_method, is_encrypted,
    make_crc_table, zip_decrypt,
)
from sar.errors import CipherError, UnrecognizedFormat, UnsupportedMethod


class TestCrcTable:
    """Tests for the CRC-32 lookup table."""

    def test_table_has_256_entries(self):
        """Table covers every byte value."""
        table = make_crc_table()
        assert len(table) == 256
        assert table[0] == 0

    def test_known_entries(self):
        """Entries match the standard reflected CRC-32 table."""
        table = make_crc_table()
        assert table[1] == 0x77073096
        assert table[255] == 0x2D02EF8D

    def test_entries_are_plain_ints(self):
        """Entries are Python ints, not numpy scalars."""
        assert all(type(v) is int for v in make_crc_table())

    def test_matches_zlib_crc(self):
        """Table drives the same CRC-32 as zlib."""
        table = make_crc_table()
        crc = 0xFFFFFFFF
        for b in b"123456789":
            crc = table[(crc ^ b) & 0xFF] ^ (crc >> 8)
        assert crc ^ 0xFFFFFFFF == zlib.crc32(b"123456789")


class TestZipDecrypt:
    """Tests for the zip-method stream cipher."""

    @pytest.mark.parametrize("plaintext", [
        b"",
        b"a",
        b"hello world\n",
        bytes(range(256)) * 3,
        "grüße aus köln\n".encode("utf-8"),
    ])
    @pytest.mark.parametrize("password", ["", "x", "hunter2", "pässwörd"])
    def test_round_trip(self, encrypt, plaintext, password):
        """decrypt() inverts the reference encryptor."""
        assert decrypt(encrypt(plaintext, password), password) == plaintext

    def test_wrong_password_gives_different_bytes(self, encrypt):
        """A wrong password does not raise, it yields other bytes."""
        data = encrypt(b"top secret", "right")
        assert decrypt(data, "wrong") != b"top secret"

    def test_body_only(self, encrypt):
        """zip_decrypt works on the body without the header."""
        data = encrypt(b"body", "pw")
        assert zip_decrypt(data[12:], "pw") == b"body"

    def test_initial_keys(self):
        """Empty password leaves the initial key state untouched."""
        keys = ZipKeys("")
        assert (keys.k0, keys.k1, keys.k2) == (0x12345678, 0x23456789, 0x34567890)

    def test_password_keyed_by_utf8_bytes(self):
        """Non-ASCII passwords feed their UTF-8 bytes, as Vim does."""
        expected = ZipKeys("")
        for byte in (0xC3, 0xA9):
            expected.update(byte)
        keys = ZipKeys("\u00e9")
        assert (keys.k0, keys.k1, keys.k2) == (expected.k0, expected.k1, expected.k2)

    def test_keys_stay_32_bit(self):
        """Key arithmetic wraps around at 32 bits."""
        keys = ZipKeys("a long password to churn the keys" * 10)
        for _ in range(1000):
            keys.update(0xFF)
        assert all(0 <= k <= 0xFFFFFFFF for k in (keys.k0, keys.k1, keys.k2))
        assert 0 <= keys.stream_byte() <= 0xFF


class TestHeader:
    """Tests for header detection."""

    def test_detects_methods(self):
        """All three magic strings are recognized."""
        assert detect_method(b"VimCrypt~01!") is CryptMethod.ZIP
        assert detect_method(b"VimCrypt~02!") is CryptMethod.BLOWFISH
        assert detect_method(b"VimCrypt~03!rest") is CryptMethod.BLOWFISH2

    @pytest.mark.parametrize("data", [
        b"",
        b"VimCrypt",
        b"VimCrypt~04!abc",
        b"# Just a note\n",
        b"vimcrypt~01!abc",
    ])
    def test_unrecognized_format(self, data):
        """Anything else raises UnrecognizedFormat."""
        with pytest.raises(UnrecognizedFormat):
            decrypt(data, "pw")

    @pytest.mark.parametrize("header", [b"VimCrypt~02!", b"VimCrypt~03!"])
    def test_blowfish_is_unsupported(self, header):
        """Blowfish methods raise UnsupportedMethod, not garbage."""
        with pytest.raises(UnsupportedMethod) as exc_info:
            decrypt(header + b"\x01\x02\x03", "pw")
        assert exc_info.value.method is detect_method(header)

    def test_errors_share_base(self):
        """Both failures are CipherErrors."""
        assert issubclass(UnrecognizedFormat, CipherError)
        assert issubclass(UnsupportedMethod, CipherError)

    def test_is_encrypted(self):
        """is_encrypted() only looks at the magic prefix."""
        assert is_encrypted(b"VimCrypt~01!...")
        assert is_encrypted(b"VimCrypt~03!...")
        assert not is_encrypted(b"plain text")
        assert not is_encrypted(b"")
