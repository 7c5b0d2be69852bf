"""
Test Configuration - Shared fixtures for sar tests.

Uses pytest fixtures to create isolated note directories and a reference
VimCrypt zip-method encryptor written independently of sar.cipher.
"""

import shutil
import tempfile
from pathlib import Path
from typing import Callable, Generator

import pytest

from sar.config import SarConfig


def _crc_table() -> list[int]:
    table = []
    for b in range(256):
        v = b
        for _ in range(8):
            v = (v >> 1) ^ 0xEDB88320 if v & 1 else v >> 1
        table.append(v)
    return table


_TABLE = _crc_table()


def vim_encrypt(plaintext: bytes, password: str, header: bytes = b"VimCrypt~01!") -> bytes:
    """Forward direction of the VimCrypt zip cipher, header included."""
    k = [0x12345678, 0x23456789, 0x34567890]

    def crc(c: int, b: int) -> int:
        return _TABLE[(c ^ b) & 0xFF] ^ (c >> 8)

    def update(b: int) -> None:
        k[0] = crc(k[0], b)
        k[1] = ((k[1] + (k[0] & 0xFF)) * 134775813 + 1) & 0xFFFFFFFF
        k[2] = crc(k[2], (k[1] >> 24) & 0xFF)

    for b in password.encode("utf-8"):
        update(b)

    out = bytearray(header)
    for p in plaintext:
        x = (k[2] | 2) & 0xFFFF
        out.append(p ^ (((x * (x ^ 1)) >> 8) & 0xFF))
        update(p)
    return bytes(out)


@pytest.fixture
def encrypt() -> Callable[..., bytes]:
    """The reference encryptor."""
    return vim_encrypt


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    tmp = tempfile.mkdtemp(prefix="sar_test_")
    # Resolve to handle macOS /var -> /private/var symlink
    resolved = Path(tmp).resolve()
    yield resolved
    shutil.rmtree(str(resolved), ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> SarConfig:
    """Create an isolated test configuration."""
    return SarConfig(
        roots=[temp_dir],
        worker_count=3,
        queue_size=16,
    )


@pytest.fixture
def sample_files(temp_dir: Path) -> dict[str, Path]:
    """Create sample files for testing."""
    files = {}

    txt = temp_dir / "todo.txt"
    txt.write_text("buy milk\n\n   \ncall bob\n")
    files["txt"] = txt

    md = temp_dir / "readme.md"
    md.write_text("# Notes\n\nSome content here.")
    files["md"] = md

    pdf = temp_dir / "invoice.pdf"
    pdf.write_bytes(b"%PDF-1.4 binary")
    files["pdf"] = pdf

    nested_dir = temp_dir / "subdir" / "nested"
    nested_dir.mkdir(parents=True)
    nested = nested_dir / "deep.md"
    nested.write_text("A deeply nested note.\n")
    files["nested"] = nested

    git_dir = temp_dir / ".git"
    git_dir.mkdir()
    (git_dir / "HEAD.txt").write_text("ref: refs/heads/main\n")
    files["git"] = git_dir / "HEAD.txt"

    ds_store = temp_dir / ".DS_Store"
    ds_store.write_bytes(b"\x00\x00\x00\x01")
    files["ds_store"] = ds_store

    return files


@pytest.fixture
def encrypted_note(temp_dir: Path) -> tuple[Path, str, bytes]:
    """A zip-method encrypted note with its password and plaintext."""
    plaintext = "secret one\n\nsecret two\n".encode("utf-8")
    password = "hunter2"
    path = temp_dir / "secrets.md"
    path.write_bytes(vim_encrypt(plaintext, password))
    return path, password, plaintext
