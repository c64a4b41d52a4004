"""Post-processing of rendered manifests through external commands."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Sequence
import shlex

from core.command_runner import CommandRunner

from .errors import PipelineError


@dataclass(frozen=True, slots=True)
class PipeStage:
    command_line: str
    argv: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class PipeChain:
    """Ordered post-processing stages; stage ``n`` reads what stage ``n-1`` wrote."""

    stages: tuple[PipeStage, ...] = ()

    @classmethod
    def from_command_lines(cls, command_lines: Iterable[str]) -> "PipeChain":
        stages: List[PipeStage] = []
        for index, line in enumerate(command_lines):
            try:
                argv = shlex.split(line)
            except ValueError as exc:
                raise ValueError(f"Pipe stage {index} ({line!r}) cannot be parsed: {exc}") from exc
            if not argv:
                raise ValueError(f"Pipe stage {index} is empty")
            stages.append(PipeStage(command_line=line, argv=tuple(argv)))
        return cls(stages=tuple(stages))

    def __bool__(self) -> bool:
        return bool(self.stages)

    def __len__(self) -> int:
        return len(self.stages)

    @property
    def command_lines(self) -> Sequence[str]:
        return [stage.command_line for stage in self.stages]

    def run(
        self,
        runner: CommandRunner,
        data: bytes,
        *,
        deployment: str,
        cwd: Path | None = None,
    ) -> bytes:
        """Feed ``data`` through every stage and return the last stage's output.

        The first failing stage raises :class:`PipelineError`; no later stage
        is started.
        """
        for index, stage in enumerate(self.stages):
            result = runner.run(
                stage.argv,
                cwd=cwd,
                input=data,
                check=False,
                note=f"pipe[{index}] {deployment}",
            )
            if result.returncode != 0:
                raise PipelineError(
                    deployment,
                    stage_index=index,
                    command=stage.command_line,
                    captured_stderr=result.stderr,
                )
            data = result.stdout
        return data
