"""Utilities for executing external commands with optional dry-run support."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Sequence
import shlex
import subprocess


MISSING_EXECUTABLE_RETURNCODE = 127
"""Exit status reported when a program cannot be started at all."""


def format_command(command: Sequence[str]) -> str:
    """Render ``command`` as a copy-pasteable shell line."""

    return " ".join(shlex.quote(str(part)) for part in command)


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace").rstrip()


@dataclass
class CommandResult:
    """Represents the outcome of an executed command."""

    command: Sequence[str]
    returncode: int
    stdout: bytes = b""
    stderr: bytes = b""

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0

    def describe(self) -> str:
        """Summarize the failure: command line, then any captured output."""

        lines = [f"Command failed with exit code {self.returncode}: {format_command(self.command)}"]
        if self.stdout.strip():
            lines.append(f"stdout: {_decode(self.stdout)}")
        if self.stderr.strip():
            lines.append(f"stderr: {_decode(self.stderr)}")
        return "\n".join(lines)


class CommandError(RuntimeError):
    """Raised when a command fails."""

    def __init__(self, result: CommandResult):
        super().__init__(result.describe())
        self.result = result


class CommandRunner:
    """Abstract command runner interface.

    Implementations execute ``command`` (an argument vector, never a shell
    string), optionally feeding ``input`` to its standard input, and return the
    exit status together with the captured standard output and error streams.
    """

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        input: bytes | None = None,
        check: bool = True,
        note: str | None = None,
    ) -> CommandResult:
        raise NotImplementedError

    def format_command(self, command: Sequence[str]) -> str:
        return format_command(command)

    def _finalize(self, result: CommandResult, *, check: bool) -> CommandResult:
        if check and result.returncode != 0:
            raise CommandError(result)
        return result


class SubprocessCommandRunner(CommandRunner):
    """Command runner that executes commands via :mod:`subprocess`."""

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        input: bytes | None = None,
        check: bool = True,
        note: str | None = None,
    ) -> CommandResult:
        argv = [str(part) for part in command]
        try:
            process = subprocess.run(
                argv,
                cwd=str(cwd) if cwd else None,
                input=input,
                capture_output=True,
                check=False,
            )
        except OSError as exc:
            # Missing or non-executable program: report it like a failed run.
            result = CommandResult(
                command=argv,
                returncode=MISSING_EXECUTABLE_RETURNCODE,
                stderr=str(exc).encode("utf-8"),
            )
        else:
            result = CommandResult(
                command=argv,
                returncode=process.returncode,
                stdout=process.stdout,
                stderr=process.stderr,
            )
        return self._finalize(result, check=check)


@dataclass(slots=True)
class RecordedCommand:
    command: List[str]
    cwd: str | None
    input: bytes | None
    note: str | None


Responder = Callable[[RecordedCommand], CommandResult | None]


class RecordingCommandRunner(CommandRunner):
    """Command runner that records commands instead of executing them.

    ``responder`` may script the outcome of each command; when it is omitted
    (or returns ``None``) the command "succeeds" with empty output.
    """

    def __init__(self, responder: Responder | None = None) -> None:
        self.commands: List[RecordedCommand] = []
        self._responder = responder

    @staticmethod
    def _record_entry(
        *,
        command: Sequence[str],
        cwd: Path | None,
        input: bytes | None,
        note: str | None,
    ) -> RecordedCommand:
        return RecordedCommand(
            command=[str(part) for part in command],
            cwd=str(cwd) if cwd else None,
            input=input,
            note=note,
        )

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        input: bytes | None = None,
        check: bool = True,
        note: str | None = None,
    ) -> CommandResult:
        record = self._record_entry(command=command, cwd=cwd, input=input, note=note)
        self.commands.append(record)
        result = self._responder(record) if self._responder else None
        if result is None:
            result = CommandResult(command=record.command, returncode=0)
        return self._finalize(result, check=check)

    def iter_commands(self) -> Iterable[RecordedCommand]:
        return iter(self.commands)

    def iter_formatted(self, *, workspace: Path | None = None) -> Iterable[str]:
        """Yield one ``[dry-run]`` line per recorded command, in call order."""
        fallback = str(workspace) if workspace else None
        for record in self.commands:
            cwd = record.cwd or fallback
            parts = ["[dry-run]", record.note, f"(cwd={cwd})" if cwd else None]
            parts.append(self.format_command(record.command))
            yield " ".join(part for part in parts if part)
