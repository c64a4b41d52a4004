"""Error taxonomy for configuration, filtering and rendering failures."""
from __future__ import annotations

from core.command_runner import CommandResult


class TemplexerError(RuntimeError):
    """Base class for all templexer errors."""


class ConfigError(TemplexerError):
    """Raised when a configuration document is missing or malformed."""

    def __init__(self, message: str, *, field: str | None = None, source: object | None = None):
        prefix = f"{source}: " if source else ""
        super().__init__(f"{prefix}{message}")
        self.field = field
        self.source = source


class FilterError(TemplexerError):
    """Raised when the deployment filter is not a valid regular expression."""

    def __init__(self, pattern: str, reason: str):
        super().__init__(f"Invalid deployment filter {pattern!r}: {reason}")
        self.pattern = pattern


class DependencyRefreshError(TemplexerError):
    """Raised when refreshing chart dependencies fails; aborts the whole run."""

    def __init__(self, result: CommandResult):
        super().__init__(f"Dependency refresh failed\n{result.describe()}")
        self.result = result


class DeploymentError(TemplexerError):
    """A failure confined to a single deployment; the run carries on."""

    def __init__(self, deployment: str, message: str):
        super().__init__(message)
        self.deployment = deployment


class RenderError(DeploymentError):
    def __init__(self, deployment: str, result: CommandResult):
        super().__init__(deployment, f"Rendering '{deployment}' failed\n{result.describe()}")
        self.result = result


class PipelineError(DeploymentError):
    """Raised when a post-processing stage exits non-zero."""

    def __init__(self, deployment: str, *, stage_index: int, command: str, captured_stderr: bytes):
        message = f"Pipe stage {stage_index} ({command}) failed for '{deployment}'"
        details = captured_stderr.decode("utf-8", errors="replace").rstrip()
        if details:
            message = f"{message}\nstderr: {details}"
        super().__init__(deployment, message)
        self.stage_index = stage_index
        self.command = command
        self.captured_stderr = captured_stderr


class WriteError(DeploymentError):
    def __init__(self, deployment: str, target: object, reason: str):
        super().__init__(deployment, f"Writing output of '{deployment}' to {target} failed: {reason}")
        self.target = target
