"""Decode workload documents written as TOML, YAML or JSON into plain mappings."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Set

import json
import tomllib

import yaml


ConfigLoader = Callable[[Any], Any]


FILE_LOADERS: Dict[str, ConfigLoader] = {
    ".toml": tomllib.load,
    ".json": json.load,
    ".yaml": yaml.safe_load,
    ".yml": yaml.safe_load,
}
"""Mapping of lower-case file suffixes to loader callables."""

BINARY_SUFFIXES: Set[str] = {".toml"}
"""Suffixes whose loader expects a binary stream (``tomllib`` refuses text)."""

DECODE_ERRORS: tuple[type[Exception], ...] = (
    tomllib.TOMLDecodeError,
    json.JSONDecodeError,
    yaml.YAMLError,
)
"""Exceptions raised by the built-in loaders for malformed documents."""


def register_loader(suffix: str, loader: ConfigLoader, *, binary: bool = False) -> None:
    """Register ``loader`` for files ending with ``suffix``."""

    normalized = suffix.lower()
    if not normalized.startswith("."):
        raise ValueError(f"Suffix {suffix!r} must start with '.'")
    FILE_LOADERS[normalized] = loader
    if binary:
        BINARY_SUFFIXES.add(normalized)
    else:
        BINARY_SUFFIXES.discard(normalized)


def supported_suffixes() -> List[str]:
    return sorted(FILE_LOADERS)


def load_config_file(path: Path) -> Mapping[str, Any]:
    """Decode ``path`` with the loader registered for its suffix.

    Every format yields the same plain mapping, so a workload written in
    YAML and its JSON or TOML twin are indistinguishable afterwards. Decoder
    exceptions (see :data:`DECODE_ERRORS`) propagate unchanged.
    """

    suffix = path.suffix.lower()
    try:
        loader = FILE_LOADERS[suffix]
    except KeyError:
        raise ValueError(
            f"Unsupported configuration format {suffix or '<none>'!r} for '{path}'; "
            f"expected one of: {', '.join(supported_suffixes())}"
        ) from None

    if suffix in BINARY_SUFFIXES:
        with path.open("rb") as handle:
            document = loader(handle)
    else:
        with path.open("r", encoding="utf-8") as handle:
            document = loader(handle)

    if not isinstance(document, Mapping):
        kind = "an empty document" if document is None else type(document).__name__
        raise TypeError(f"Configuration file '{path}' must hold a mapping at the root, got {kind}")
    return document


def normalize_string_list(value: Any, *, field_name: str | None = None) -> List[str]:
    """Turn a string or list of strings into a list of strings.

    Entries are kept verbatim, in order and with duplicates; value files and
    option fragments are opaque to the loader.
    """

    prefix = f"{field_name} " if field_name else ""
    if value is None:
        return []
    if isinstance(value, str):
        candidates = [value]
    elif isinstance(value, (list, tuple)):
        candidates = list(value)
    else:
        raise TypeError(f"{prefix}must be a string or a list of strings")

    entries: List[str] = []
    for candidate in candidates:
        if not isinstance(candidate, str):
            raise TypeError(f"{prefix}entries must be strings, got {type(candidate).__name__}")
        entries.append(candidate)
    return entries


__all__ = [
    "BINARY_SUFFIXES",
    "ConfigLoader",
    "DECODE_ERRORS",
    "FILE_LOADERS",
    "load_config_file",
    "normalize_string_list",
    "register_loader",
    "supported_suffixes",
]
