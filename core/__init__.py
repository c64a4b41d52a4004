"""Shared core utilities for process execution and configuration decoding."""

from .command_runner import (
    CommandError,
    CommandResult,
    CommandRunner,
    RecordedCommand,
    RecordingCommandRunner,
    SubprocessCommandRunner,
    format_command,
)
from .config_loader import (
    BINARY_SUFFIXES,
    ConfigLoader,
    DECODE_ERRORS,
    FILE_LOADERS,
    load_config_file,
    normalize_string_list,
    register_loader,
    supported_suffixes,
)

__all__ = [
    "CommandError",
    "CommandResult",
    "CommandRunner",
    "RecordedCommand",
    "RecordingCommandRunner",
    "SubprocessCommandRunner",
    "format_command",
    "BINARY_SUFFIXES",
    "ConfigLoader",
    "DECODE_ERRORS",
    "FILE_LOADERS",
    "load_config_file",
    "normalize_string_list",
    "register_loader",
    "supported_suffixes",
]
