"""
Extractor - Turns file content into line records.

Content is split on line feeds. Lines that are not valid UTF-8 are
dropped (binary data in a file with a text extension), as are lines that
are blank after trimming. Line numbers always refer to the position in
the decoded content, counting the dropped lines.
"""

import io
import logging
from pathlib import Path
from typing import BinaryIO, Iterable, Iterator, Union

from .cipher import decrypt
from .models import Encrypted, Origin, Plain, Record


logger = logging.getLogger(__name__)


def _lines(content: Union[bytes, BinaryIO]) -> Iterable[bytes]:
    if isinstance(content, (bytes, bytearray, memoryview)):
        return io.BytesIO(bytes(content))
    return content


def extract_records(
    path: Path,
    content: Union[bytes, BinaryIO],
    origin: Origin = Plain(),
) -> Iterator[Record]:
    """
    Yield a Record for every non-blank, decodable line.

    Args:
        path: Source path stored on each record
        content: Decoded file content, as bytes or a binary stream
        origin: How the content was obtained (plain or encrypted)
    """
    skipped = 0
    for line_number, raw in enumerate(_lines(content)):
        if raw.endswith(b"\n"):
            raw = raw[:-1]
            if raw.endswith(b"\r"):
                raw = raw[:-1]

        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            skipped += 1
            continue

        if not text.strip():
            continue

        yield Record(
            source_path=path,
            line_number=line_number,
            text=text,
            origin=origin,
        )

    if skipped:
        logger.debug(f"Dropped {skipped} non UTF-8 lines from {path}")


def read_decoded(path: Path, origin: Origin) -> bytes:
    """
    Read a file and return its decoded content.

    Plain files are returned as-is; encrypted files are decrypted with the
    password carried in the origin.
    """
    data = Path(path).read_bytes()
    match origin:
        case Encrypted(password=password):
            return decrypt(data, password)
        case Plain():
            return data
    raise TypeError(f"Unknown origin: {origin!r}")
