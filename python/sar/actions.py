"""
Actions - What happens to the selected item.

Thin wrappers around external programs (editor, file manager, system
opener). Each item variant decides how an action applies to it.
"""

import logging
import os
import shlex
import subprocess
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional, TextIO

from .config import SarConfig
from .extractor import read_decoded
from .models import Action, Item, OpaqueRecord, Record


logger = logging.getLogger(__name__)


def editor_command(editor: Optional[str] = None) -> List[str]:
    """Editor command line: explicit setting, then $VISUAL, $EDITOR, vi."""
    command = (
        editor
        or os.environ.get("VISUAL")
        or os.environ.get("EDITOR")
        or "vi"
    )
    return shlex.split(command)


def open_in_editor(
    path: Path,
    line_number: Optional[int] = None,
    editor: Optional[str] = None,
) -> None:
    """
    Open path in the editor, at a zero-based line_number if given.

    The editor's exit status is ignored.
    """
    args = editor_command(editor) + [str(path)]
    if line_number is not None:
        args.append(f"+{line_number + 1}")

    logger.debug(f"Running editor: {args}")
    subprocess.run(args, check=False)


def open_with_system(path: Path) -> None:
    """Open path with the platform's default application."""
    if sys.platform == "darwin":
        subprocess.run(["open", str(path)], check=False)
    elif sys.platform == "win32":
        os.startfile(str(path))
    else:
        subprocess.run(["xdg-open", str(path)], check=False)


def reveal(path: Path) -> None:
    """Show path in the platform's file manager."""
    if sys.platform == "darwin":
        args = ["open", "-R", str(path)]
    elif sys.platform == "win32":
        args = ["explorer", f"/select,{path}"]
    else:
        # xdg-open has no "select" notion, open the containing folder
        args = ["xdg-open", str(Path(path).parent)]

    logger.debug(f"Revealing: {args}")
    subprocess.run(args, check=False)


def print_item(item: Item, out: Optional[TextIO] = None) -> None:
    """Print the full decoded content of the item's file (or its path)."""
    out = out or sys.stdout
    match item:
        case Record(source_path=path, origin=origin):
            content = read_decoded(path, origin)
            out.write(content.decode("utf-8", errors="replace"))
            if not content.endswith(b"\n"):
                out.write("\n")
        case OpaqueRecord(source_path=path):
            out.write(f"{path}\n")


def create_new(root: Path, editor: Optional[str] = None) -> Path:
    """Create an empty timestamped note in root and open it."""
    root = Path(root)
    root.mkdir(parents=True, exist_ok=True)
    path = root / f"{datetime.now():%Y-%m-%d-%H%M%S}.md"
    path.touch(exist_ok=False)
    logger.info(f"Created note: {path}")

    open_in_editor(path, editor=editor)
    return path


def perform(action: Action, item: Optional[Item], config: SarConfig) -> None:
    """
    Carry out a selection outcome.

    Args:
        action: Action chosen in the selector
        item: Resolved item (None only for CREATE_NEW and NONE)
        config: Run configuration (editor, roots)
    """
    if action is Action.NONE:
        return

    if action is Action.CREATE_NEW:
        create_new(config.roots[0], editor=config.editor)
        return

    if item is None:
        raise ValueError(f"Action {action.value} needs a selected item")

    match action, item:
        case Action.OPEN, Record(source_path=path, line_number=line_number):
            open_in_editor(path, line_number, editor=config.editor)
        case Action.OPEN, OpaqueRecord(source_path=path):
            open_with_system(path)
        case Action.REVEAL, _:
            reveal(item.source_path)
        case Action.PRINT, _:
            print_item(item)
