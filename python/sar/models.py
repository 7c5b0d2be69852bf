"""
Data Models - Type definitions for the record pipeline.

Items flowing from the workers to the selector are either a Record (one
non-blank text line) or an OpaqueRecord (a file that is only listed by
path). The two form a closed union; code that needs per-variant
behaviour matches on the type instead of calling methods on a base class.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union


@dataclass(frozen=True)
class Plain:
    """Content is read from disk as-is."""


@dataclass(frozen=True)
class Encrypted:
    """Content is VimCrypt encrypted; the password re-derives the plaintext."""
    password: str = field(repr=False)


Origin = Union[Plain, Encrypted]


@dataclass(frozen=True)
class Record:
    """
    One non-blank line of a text file.

    line_number is zero-based within the decoded content. It is converted
    to one-based only when crossing an external boundary (the wire line
    shown to the selector and the editor argument).
    """
    source_path: Path
    line_number: int
    text: str
    origin: Origin = field(default_factory=Plain)


@dataclass(frozen=True)
class OpaqueRecord:
    """A file that is not line-indexable; only its path is shown."""
    source_path: Path


Item = Union[Record, OpaqueRecord]


def _escape(value: str) -> str:
    return value.replace("\r", "\\r").replace("\n", "\\n")


def to_wire_line(item: Item) -> str:
    """
    Serialize an item to the line shown to the selector (without "\\n").

    Records become ``<path>:<line_number+1>:<text>``, opaque records
    just ``<path>``.
    """
    match item:
        case Record(source_path=path, line_number=line_number, text=text):
            return f"{_escape(str(path))}:{line_number + 1}:{_escape(text)}"
        case OpaqueRecord(source_path=path):
            return _escape(str(path))
    raise TypeError(f"Not a record: {item!r}")


def encode_wire_line(item: Item) -> bytes:
    """Wire line plus terminator, as UTF-8 bytes."""
    return (to_wire_line(item) + "\n").encode("utf-8", errors="replace")


class Action(Enum):
    """What the user asked to do with the selected item."""
    OPEN = "open"
    REVEAL = "reveal"
    PRINT = "print"
    CREATE_NEW = "create-new"
    NONE = "none"


@dataclass
class SelectionOutcome:
    """Result reported by the selection interface."""
    action: Action = Action.NONE
    index: Optional[int] = None     # Zero-based index into the streamed lines

    @property
    def has_selection(self) -> bool:
        return self.index is not None


@dataclass
class PipelineStats:
    """Statistics from one indexing run."""
    files_scanned: int = 0
    files_indexed: int = 0
    files_skipped: int = 0
    files_failed: int = 0           # I/O errors
    files_undecodable: int = 0      # Cipher errors
    records_sent: int = 0
    failed_paths: List[Path] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def has_failures(self) -> bool:
        return bool(self.files_failed or self.files_undecodable)

    def __str__(self) -> str:
        return (
            f"Indexed {self.files_indexed} of {self.files_scanned} files "
            f"({self.records_sent} records, "
            f"{self.files_skipped} skipped, "
            f"{self.files_failed} unreadable, "
            f"{self.files_undecodable} undecodable) "
            f"in {self.duration_seconds:.1f}s"
        )
