"""Workload configuration model: decoding, defaulting and validation."""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping, Sequence
import os
import shlex

from core.config_loader import DECODE_ERRORS, load_config_file, normalize_string_list

from .errors import ConfigError


class SchemaVersion(str, Enum):
    V1 = "v1"
    V2 = "v2"

    @property
    def single_file_output(self) -> bool:
        """``v2`` writes one manifest per deployment; ``v1`` lets helm write a tree."""
        return self is SchemaVersion.V2

    @classmethod
    def parse(cls, value: Any) -> "SchemaVersion":
        for member in cls:
            if member.value == value:
                return member
        supported = ", ".join(repr(member.value) for member in cls)
        raise ConfigError(
            f"invalid schema version {value!r}; supported versions: {supported}",
            field="version",
        )


def _resolve_path(base_dir: Path, raw: str) -> Path:
    path = Path(raw).expanduser()
    return path if path.is_absolute() else base_dir / path


def _require_string(data: Mapping[str, Any], key: str, *, label: str | None = None) -> str:
    label = label or key
    value = data.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ConfigError(f"'{label}' is required", field=label)
    if not isinstance(value, str):
        raise ConfigError(f"'{label}' must be a string", field=label)
    return value.strip()


def _optional_string(data: Mapping[str, Any], key: str, *, label: str | None = None) -> str | None:
    label = label or key
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"'{label}' must be a string", field=label)
    return value.strip() or None


def _flag(data: Mapping[str, Any], key: str, *, label: str | None = None) -> bool:
    label = label or key
    value = data.get(key, True)
    if value is None:
        return True
    if not isinstance(value, bool):
        raise ConfigError(f"'{label}' must be a boolean", field=label)
    return value


def _string_list(data: Mapping[str, Any], key: str, *, label: str | None = None) -> tuple[str, ...]:
    label = label or key
    try:
        return tuple(normalize_string_list(data.get(key), field_name=label))
    except TypeError as exc:
        raise ConfigError(str(exc), field=label) from exc


def _option_list(data: Mapping[str, Any], key: str, *, label: str | None = None) -> tuple[str, ...]:
    label = label or key
    options = _string_list(data, key, label=label)
    for option in options:
        try:
            shlex.split(option)
        except ValueError as exc:
            raise ConfigError(f"'{label}' entry {option!r} cannot be parsed: {exc}", field=label) from exc
    return options


def _path_list(data: Mapping[str, Any], key: str, *, base_dir: Path, label: str | None = None) -> tuple[Path, ...]:
    label = label or key
    entries = _string_list(data, key, label=label)
    if any(not raw for raw in entries):
        raise ConfigError(f"'{label}' entries must not be empty", field=label)
    return tuple(_resolve_path(base_dir, raw) for raw in entries)


def _path_segment(value: str | None, *, label: str) -> str | None:
    """Reject names that would not map to exactly one output directory."""
    if value is None:
        return None
    separators = {"/", os.sep, os.altsep} - {None}
    if value in (".", "..") or any(sep in value for sep in separators):
        raise ConfigError(f"'{label}' must be a single path segment, got {value!r}", field=label)
    return value


@dataclass(frozen=True, slots=True)
class DeploymentSpec:
    name: str
    enabled: bool = True
    release_name: str | None = None
    additional_options: tuple[str, ...] = ()
    values: tuple[Path, ...] = ()

    @classmethod
    def from_mapping(cls, data: Any, *, base_dir: Path, index: int) -> "DeploymentSpec":
        label = f"deployments[{index}]"
        if not isinstance(data, Mapping):
            raise ConfigError(f"'{label}' must be a mapping", field=label)
        return cls(
            name=_path_segment(_require_string(data, "name", label=f"{label}.name"), label=f"{label}.name"),
            enabled=_flag(data, "enabled", label=f"{label}.enabled"),
            release_name=_path_segment(
                _optional_string(data, "release_name", label=f"{label}.release_name"),
                label=f"{label}.release_name",
            ),
            additional_options=_option_list(data, "additional_options", label=f"{label}.additional_options"),
            values=_path_list(data, "values", base_dir=base_dir, label=f"{label}.values"),
        )


@dataclass(frozen=True, slots=True)
class WorkloadConfig:
    """One configuration document, with every path resolved against ``base_dir``."""

    schema_version: SchemaVersion
    chart_path: Path
    release_name: str
    deployments: tuple[DeploymentSpec, ...]
    base_dir: Path
    output_base_path: Path | None = None
    enabled: bool = True
    namespace: str | None = None
    global_additional_options: tuple[str, ...] = ()
    global_values: tuple[Path, ...] = ()
    source: Path | None = None

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, Any],
        *,
        base_dir: Path,
        streaming: bool = False,
        source: Path | None = None,
    ) -> "WorkloadConfig":
        """Build a validated configuration from a decoded document.

        ``output_path`` may only be omitted when the caller streams the
        rendered manifests instead of writing them to disk.
        """
        try:
            return cls._from_mapping(data, base_dir=base_dir, streaming=streaming, source=source)
        except ConfigError as exc:
            if source is None or exc.source is not None:
                raise
            raise ConfigError(str(exc), field=exc.field, source=source) from exc

    @classmethod
    def _from_mapping(
        cls,
        data: Mapping[str, Any],
        *,
        base_dir: Path,
        streaming: bool,
        source: Path | None,
    ) -> "WorkloadConfig":
        if "version" not in data:
            raise ConfigError("'version' is required", field="version")
        schema_version = SchemaVersion.parse(data.get("version"))

        chart = _require_string(data, "chart")
        release_name = _path_segment(_require_string(data, "release_name"), label="release_name")

        output_path = _optional_string(data, "output_path")
        if output_path is None and not streaming:
            raise ConfigError("'output_path' is required unless rendering to stdout", field="output_path")

        raw_deployments = data.get("deployments")
        if raw_deployments is None or (isinstance(raw_deployments, Sequence) and not raw_deployments):
            raise ConfigError("'deployments' must contain at least one deployment", field="deployments")
        if isinstance(raw_deployments, (str, bytes)) or not isinstance(raw_deployments, Sequence):
            raise ConfigError("'deployments' must be a list", field="deployments")

        deployments = tuple(
            DeploymentSpec.from_mapping(entry, base_dir=base_dir, index=index)
            for index, entry in enumerate(raw_deployments)
        )
        seen: dict[str, int] = {}
        for index, deployment in enumerate(deployments):
            if deployment.name in seen:
                raise ConfigError(
                    f"deployment name {deployment.name!r} is already used by deployments[{seen[deployment.name]}]",
                    field=f"deployments[{index}].name",
                )
            seen[deployment.name] = index

        return cls(
            schema_version=schema_version,
            chart_path=_resolve_path(base_dir, chart),
            release_name=release_name,
            deployments=deployments,
            base_dir=base_dir,
            output_base_path=_resolve_path(base_dir, output_path) if output_path else None,
            enabled=_flag(data, "enabled"),
            namespace=_optional_string(data, "namespace"),
            global_additional_options=_option_list(data, "additional_options"),
            global_values=_path_list(data, "values", base_dir=base_dir),
            source=source,
        )

    @classmethod
    def load(cls, path: Path, *, streaming: bool = False) -> "WorkloadConfig":
        """Read ``path`` (TOML, YAML or JSON) and build the configuration.

        Relative paths inside the document are anchored at the file's own
        directory, never at the current working directory.
        """
        path = Path(path)
        if not path.is_file():
            raise ConfigError(f"File {str(path)!r} does not exist or is not readable")
        try:
            data = load_config_file(path)
        except (ValueError, TypeError, OSError, *DECODE_ERRORS) as exc:
            raise ConfigError(f"could not decode configuration: {exc}", source=path) from exc
        return cls.from_mapping(data, base_dir=path.resolve().parent, streaming=streaming, source=path)

    @property
    def label(self) -> str:
        return str(self.source) if self.source else "<config>"

    def with_additional_options(self, options: Iterable[str]) -> "WorkloadConfig":
        """Return a copy whose global options are extended by ``options``."""
        extra = tuple(options)
        if not extra:
            return self
        return replace(self, global_additional_options=self.global_additional_options + extra)

    def enabled_deployments(self) -> Iterator[DeploymentSpec]:
        if not self.enabled:
            return
        for deployment in self.deployments:
            if deployment.enabled:
                yield deployment

    def iter_value_files(self) -> Iterator[Path]:
        """Global value files, then those of enabled deployments."""
        yield from self.global_values
        for deployment in self.deployments:
            if deployment.enabled:
                yield from deployment.values
