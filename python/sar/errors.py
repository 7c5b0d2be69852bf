"""
Error Handling - Centralized error policies and custom exceptions.

This module defines how different error types are handled throughout
the pipeline, so that a single unreadable file degrades gracefully while
a broken invariant still stops the tool with a clear diagnostic.
"""

import logging
from enum import Enum, auto
from dataclasses import dataclass
from typing import Optional
from pathlib import Path


logger = logging.getLogger(__name__)


class ErrorAction(Enum):
    """What to do when an error occurs."""
    SKIP = auto()           # Skip this item, continue processing
    FAIL_FILE = auto()      # The file's task fails, the run continues
    ABORT = auto()          # Stop the entire pipeline


class SarError(Exception):
    """Base exception for all errors raised by sar."""
    pass


class CipherError(SarError):
    """An encrypted file could not be decoded."""
    pass


class UnrecognizedFormat(CipherError):
    """The header does not match any known VimCrypt magic string."""
    def __init__(self, header: bytes):
        self.header = header
        super().__init__(f"Unknown VimCrypt header: {header!r}")


class UnsupportedMethod(CipherError):
    """The header names a VimCrypt method that is not implemented."""
    def __init__(self, method):
        self.method = method
        super().__init__(f"Unsupported VimCrypt method: {method.name}")


class PasswordRequired(SarError):
    """File is encrypted but no password was supplied for this run."""
    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Encrypted file needs a password: {path}")


class ChannelClosed(SarError):
    """The peer of a record channel has gone away."""
    pass


class IndexOutOfRange(SarError):
    """The selector reported an index that was never handed out."""
    def __init__(self, index: int, available: int):
        self.index = index
        self.available = available
        super().__init__(
            f"Selected index {index} but only {available} lines were streamed"
        )


class AlreadyResolved(SarError):
    """A selection was already resolved for this run."""
    pass


class ConfigError(SarError):
    """Invalid configuration value or file."""
    pass


class SelectorError(SarError):
    """The external selection interface failed."""
    pass


@dataclass
class ErrorPolicy:
    """Policy for handling a specific error type."""
    action: ErrorAction
    log_level: int
    message_template: str = "{file}: {error}"


# Error type to policy mapping. Order matters: the first isinstance() match wins.
ERROR_POLICIES: dict[type, ErrorPolicy] = {
    PasswordRequired: ErrorPolicy(
        action=ErrorAction.SKIP,
        log_level=logging.INFO,
        message_template="Skipping encrypted file (no password): {file}"
    ),
    CipherError: ErrorPolicy(
        action=ErrorAction.FAIL_FILE,
        log_level=logging.ERROR,
        message_template="Cannot decrypt {file}: {error}"
    ),
    ChannelClosed: ErrorPolicy(
        action=ErrorAction.ABORT,
        log_level=logging.ERROR,
        message_template="Record channel closed while processing {file}"
    ),
    PermissionError: ErrorPolicy(
        action=ErrorAction.FAIL_FILE,
        log_level=logging.WARNING,
        message_template="Permission denied: {file}"
    ),
    FileNotFoundError: ErrorPolicy(
        action=ErrorAction.FAIL_FILE,
        log_level=logging.DEBUG,
        message_template="File not found (possibly deleted): {file}"
    ),
    IsADirectoryError: ErrorPolicy(
        action=ErrorAction.SKIP,
        log_level=logging.DEBUG,
        message_template="Expected file, got directory: {file}"
    ),
    OSError: ErrorPolicy(
        action=ErrorAction.FAIL_FILE,
        log_level=logging.WARNING,
        message_template="OS error reading file: {file} - {error}"
    ),
}


def handle_error(
    error: Exception,
    file_path: Optional[Path] = None,
    context: str = ""
) -> ErrorAction:
    """
    Handle an error according to the defined policies.

    Args:
        error: The exception that occurred
        file_path: Path to the file being processed (if applicable)
        context: Additional context for logging

    Returns:
        The action the caller should take
    """
    policy = None
    for error_type, p in ERROR_POLICIES.items():
        if isinstance(error, error_type):
            policy = p
            break

    # Anything unexpected is a bug in sar itself
    if policy is None:
        policy = ErrorPolicy(
            action=ErrorAction.ABORT,
            log_level=logging.ERROR,
            message_template="Unexpected error: {file} - {error}"
        )

    file_str = str(file_path) if file_path else "<unknown>"
    message = policy.message_template.format(file=file_str, error=str(error))
    if context:
        message = f"[{context}] {message}"

    logger.log(policy.log_level, message)

    return policy.action
