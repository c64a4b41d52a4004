"""Materialize rendered manifests on disk or on a stream."""
from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import BinaryIO
import os
import sys
import tempfile

from .errors import WriteError
from .resolver import EffectiveDeployment


MANIFEST_EXTENSION = "yaml"


class OutputMode(str, Enum):
    FILE = "file"
    STREAM = "stream"


def deployment_directory(base_path: Path, deployment: EffectiveDeployment) -> Path:
    return base_path / deployment.name / deployment.release_name


def manifest_path(base_path: Path, deployment: EffectiveDeployment) -> Path:
    """``<base>/<deployment name>/<release name>/manifest.yaml``"""
    return deployment_directory(base_path, deployment) / f"manifest.{MANIFEST_EXTENSION}"


def _default_file_mode() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def atomic_write_bytes(path: Path, data: bytes, mode: int | None = None) -> None:
    """Write ``data`` to ``path`` atomically using a temporary file.

    The temporary file lives next to ``path`` so the final rename never
    crosses a filesystem; readers see either the old file or the complete new
    one.

    Without ``mode`` the file gets the permissions a plain ``open`` would
    give it under the current umask.
    """
    if mode is None:
        mode = _default_file_mode()
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as tmp:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    finally:
        tmp_path.unlink(missing_ok=True)


class OutputSink:
    """Destination for the final byte stream of each deployment."""

    def write(self, deployment: EffectiveDeployment, data: bytes) -> Path | None:
        raise NotImplementedError

    def describe(self, deployment: EffectiveDeployment) -> str:
        raise NotImplementedError


class FileSink(OutputSink):
    def __init__(self, base_path: Path) -> None:
        self.base_path = base_path

    def target(self, deployment: EffectiveDeployment) -> Path:
        return manifest_path(self.base_path, deployment)

    def describe(self, deployment: EffectiveDeployment) -> str:
        return str(self.target(deployment))

    def write(self, deployment: EffectiveDeployment, data: bytes) -> Path:
        target = self.target(deployment)
        try:
            atomic_write_bytes(target, data)
        except OSError as exc:
            raise WriteError(deployment.name, target, str(exc)) from exc
        return target


class StreamSink(OutputSink):
    def __init__(self, stream: BinaryIO | None = None) -> None:
        self._stream = stream

    @property
    def stream(self) -> BinaryIO:
        return self._stream if self._stream is not None else sys.stdout.buffer

    def describe(self, deployment: EffectiveDeployment) -> str:
        return "<stdout>"

    def write(self, deployment: EffectiveDeployment, data: bytes) -> None:
        try:
            self.stream.write(data)
            self.stream.flush()
        except OSError as exc:
            raise WriteError(deployment.name, "<stdout>", str(exc)) from exc


def make_sink(mode: OutputMode, *, base_path: Path | None = None, stream: BinaryIO | None = None) -> OutputSink:
    if mode is OutputMode.STREAM:
        return StreamSink(stream)
    if base_path is None:
        raise ValueError("File output requires a base path")
    return FileSink(base_path)
