"""
Configuration - Settings for one sar run.

A SarConfig value is built once by the command line layer (defaults,
then an optional TOML file, then environment variables, then flags) and
passed explicitly to the scanner and the pipeline. Core modules never
read the environment themselves.
"""

import os
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import List, Optional, Set

from .errors import ConfigError


DEFAULT_CONFIG_PATH = Path("~/.config/sar/config.toml")


@dataclass
class SarConfig:
    """
    Configuration for indexing and selection.

    All roots are resolved to absolute paths on creation so that every
    Record carries an absolute source path.
    """

    # --- Paths ---
    roots: List[Path] = field(default_factory=lambda: [Path.home() / "notes"])

    # --- Concurrency ---
    worker_count: int = 10          # Parallel file tasks
    queue_size: int = 10_000        # Shared queue bound, 0 = unbounded

    # --- Classification ---
    text_extensions: Set[str] = field(default_factory=lambda: {".md", ".txt"})

    skip_dirs: Set[str] = field(default_factory=lambda: {
        ".git", ".hg", ".svn",
    })

    skip_files: Set[str] = field(default_factory=lambda: {
        ".DS_Store", "Thumbs.db", "desktop.ini",
    })

    # --- Collaborators ---
    editor: Optional[str] = None    # Overrides $VISUAL / $EDITOR

    def __post_init__(self):
        """Normalize paths and extensions, reject impossible limits."""
        self.roots = [Path(p).expanduser().resolve() for p in self.roots]
        self.text_extensions = {
            ext.lower() if ext.startswith(".") else f".{ext.lower()}"
            for ext in self.text_extensions
        }
        if self.worker_count < 1:
            raise ConfigError(f"worker_count must be >= 1, got {self.worker_count}")
        if self.queue_size < 0:
            raise ConfigError(f"queue_size must be >= 0, got {self.queue_size}")

    @classmethod
    def from_file(cls, path: Path, base: Optional["SarConfig"] = None) -> "SarConfig":
        """
        Load a TOML config file on top of ``base`` (or the defaults).

        Supported keys: roots, worker_count, queue_size, text_extensions,
        skip_dirs, skip_files, editor.
        """
        path = Path(path).expanduser()
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {path}: {e}") from e

        config = base or cls()
        known = {f.name: f for f in fields(cls)}
        for key, value in data.items():
            if key not in known:
                raise ConfigError(f"Unknown config key '{key}' in {path}")
            setattr(config, key, _coerce(key, value, path))

        config.__post_init__()
        return config

    @classmethod
    def from_env(cls, base: Optional["SarConfig"] = None) -> "SarConfig":
        """
        Apply environment variables on top of ``base`` (or the defaults).

        Supported env vars:
            SAR_ROOTS: Comma-separated list of paths
            SAR_WORKERS: Number of parallel file tasks
            SAR_QUEUE_SIZE: Bound of the shared record queue
        """
        config = base or cls()

        if roots := os.environ.get("SAR_ROOTS"):
            config.roots = [Path(p.strip()) for p in roots.split(",") if p.strip()]

        if workers := os.environ.get("SAR_WORKERS"):
            config.worker_count = _parse_int("SAR_WORKERS", workers)

        if queue_size := os.environ.get("SAR_QUEUE_SIZE"):
            config.queue_size = _parse_int("SAR_QUEUE_SIZE", queue_size)

        config.__post_init__()
        return config


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None


def _coerce(key: str, value, path: Path):
    """Check the type of one TOML value and convert it to the field type."""
    if key in {"worker_count", "queue_size"}:
        if not isinstance(value, int) or isinstance(value, bool):
            raise ConfigError(f"'{key}' must be an integer in {path}")
        return value

    if key == "editor":
        if not isinstance(value, str):
            raise ConfigError(f"'editor' must be a string in {path}")
        return value

    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"'{key}' must be a list of strings in {path}")
    if key == "roots":
        return [Path(v) for v in value]
    return set(value)
