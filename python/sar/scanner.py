"""
Scanner - Recursive file system traversal and classification.

Walks every root with os.scandir, yielding the files to index. Entries
that fail during enumeration are logged and skipped. Directory symlinks
are not followed, which also rules out symlink loops.
"""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Iterator, List, Optional

from .cipher import HEADER_SIZE, is_encrypted
from .config import SarConfig
from .errors import PasswordRequired, handle_error
from .models import Encrypted, Origin, Plain


logger = logging.getLogger(__name__)


class FileKind(Enum):
    """How a file is turned into items."""
    TEXT = "text"       # Line-indexable, possibly encrypted
    OPAQUE = "opaque"   # Listed by path only


class Scanner:
    """
    File system scanner.

    Yields absolute paths of regular files below the configured roots,
    filtering out skip-listed directories and files.
    """

    def __init__(self, config: SarConfig):
        self.config = config

    def iter_files(self, roots: Optional[List[Path]] = None) -> Iterator[Path]:
        """
        Iterate over files in all roots, depth first, sorted by name.

        A missing root is logged and skipped.
        """
        roots = roots or self.config.roots

        for root in roots:
            root = Path(root).expanduser().resolve()
            if root.is_file():
                yield root
                continue
            if not root.is_dir():
                logger.warning(f"Root directory not found: {root}")
                continue

            yield from self._scan_directory(root)

    def _scan_directory(self, root: Path) -> Iterator[Path]:
        stack = [root]
        while stack:
            directory = stack.pop()
            try:
                with os.scandir(directory) as it:
                    entries = sorted(it, key=lambda e: e.name)
            except OSError as e:
                handle_error(e, directory, "scan_directory")
                continue

            subdirs: List[Path] = []
            for entry in entries:
                try:
                    if entry.is_dir(follow_symlinks=False):
                        if entry.name not in self.config.skip_dirs:
                            subdirs.append(Path(entry.path))
                    elif entry.is_file():
                        if entry.name not in self.config.skip_files:
                            yield Path(entry.path)
                except OSError as e:
                    handle_error(e, Path(entry.path), "scan_entry")
                    continue

            # Reversed so that the stack pops them in name order
            stack.extend(reversed(subdirs))

    def classify(self, path: Path) -> FileKind:
        """Classify a file by its extension."""
        if path.suffix.lower() in self.config.text_extensions:
            return FileKind.TEXT
        return FileKind.OPAQUE


def sniff_origin(path: Path, password: Optional[str]) -> Origin:
    """
    Decide whether a text file is plain or VimCrypt encrypted.

    Reads only the header bytes.

    Raises:
        PasswordRequired: The file is encrypted and password is None
    """
    with open(path, "rb") as f:
        header = f.read(HEADER_SIZE)

    if not is_encrypted(header):
        return Plain()
    if password is None:
        raise PasswordRequired(path)
    return Encrypted(password)
