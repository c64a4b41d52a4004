"""Render orchestration across all deployments of a workload."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import BinaryIO, List, Pattern

from core.command_runner import CommandResult

from .command import DEFAULT_HELM_BINARY, build_dependency_update_command, build_render_command
from .config import WorkloadConfig
from .context import Context
from .errors import ConfigError, DependencyRefreshError, DeploymentError, RenderError, WriteError
from .output import OutputMode, OutputSink, deployment_directory, make_sink
from .pipeline import PipeChain
from .resolver import EffectiveDeployment, compile_filter, resolve_deployments


class RunState(str, Enum):
    IDLE = "idle"
    DEPENDENCIES_REFRESHING = "dependencies-refreshing"
    RENDERING = "rendering"
    DONE = "done"
    FAILED = "failed"


@dataclass(slots=True)
class RenderOptions:
    name_filter: str | Pattern[str] | None = None
    pipe_chain: PipeChain = field(default_factory=PipeChain)
    output_mode: OutputMode = OutputMode.FILE
    refresh_dependencies: bool = False
    additional_options: List[str] = field(default_factory=list)
    dry_run: bool = False


@dataclass(slots=True)
class DeploymentOutcome:
    name: str
    release_name: str
    output: Path | None = None
    error: DeploymentError | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class RenderReport:
    workload: str
    state: RunState = RunState.IDLE
    outcomes: List[DeploymentOutcome] = field(default_factory=list)

    @property
    def failures(self) -> List[DeploymentOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.succeeded]

    @property
    def succeeded(self) -> bool:
        return self.state is RunState.DONE

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1

    def summary(self) -> str:
        failures = self.failures
        if not failures:
            return f"{self.workload}: rendered {len(self.outcomes)} deployment(s)"
        lines = [f"{self.workload}: {len(failures)} of {len(self.outcomes)} deployment(s) failed"]
        for outcome in failures:
            lines.append(f"  [{outcome.name}] {outcome.error}")
        return "\n".join(lines)


class Orchestrator:
    """Render every effective deployment of a workload, one after another.

    Deployments never overlap: helm may touch shared local caches while it
    renders, so each deployment finishes (render, pipe, write) before the next
    one starts.
    """

    def __init__(
        self,
        ctx: Context,
        *,
        helm_bin: str = DEFAULT_HELM_BINARY,
        stream: BinaryIO | None = None,
    ) -> None:
        self._ctx = ctx
        self._helm_bin = helm_bin
        self._stream = stream

    @staticmethod
    def preflight(config: WorkloadConfig, options: RenderOptions) -> None:
        """Reject option combinations that cannot work before anything runs."""
        compile_filter(options.name_filter)
        if options.output_mode is OutputMode.FILE:
            if config.output_base_path is None:
                raise ConfigError(
                    "'output_path' is required unless rendering to stdout",
                    field="output_path",
                    source=config.source,
                )
            if options.pipe_chain and not config.schema_version.single_file_output:
                raise ConfigError(
                    f"--pipe requires single-file output; schema {config.schema_version.value} writes a directory tree",
                    field="version",
                    source=config.source,
                )

    def run(self, config: WorkloadConfig, options: RenderOptions) -> RenderReport:
        """Render ``config``; per-deployment failures are collected, not raised.

        Raises :class:`DependencyRefreshError` when the dependency refresh
        fails, in which case no deployment is rendered.
        """
        console = self._ctx.console
        report = RenderReport(workload=config.label)

        self.preflight(config, options)
        config = config.with_additional_options(options.additional_options)
        deployments = resolve_deployments(config, options.name_filter)
        sink = None if options.dry_run else self._make_sink(config, options)

        if options.refresh_dependencies:
            report.state = RunState.DEPENDENCIES_REFRESHING
            self._refresh_dependencies(config)

        report.state = RunState.RENDERING
        for deployment in deployments:
            console.trace(f"Effective deployment: {deployment}")
            outcome = DeploymentOutcome(name=deployment.name, release_name=deployment.release_name)
            try:
                outcome.output = self._process(config, deployment, options, sink)
            except DeploymentError as exc:
                outcome.error = exc
                console.error(str(exc))
            report.outcomes.append(outcome)

        if not report.outcomes:
            console.info(f"{config.label}: no deployments to render")

        report.state = RunState.FAILED if report.failures else RunState.DONE
        return report

    def _make_sink(self, config: WorkloadConfig, options: RenderOptions) -> OutputSink | None:
        if options.output_mode is OutputMode.FILE and not config.schema_version.single_file_output:
            return None
        return make_sink(options.output_mode, base_path=config.output_base_path, stream=self._stream)

    def _run(self, command: List[str], *, cwd: Path, note: str) -> CommandResult:
        console = self._ctx.console
        console.debug(f"Running: {self._ctx.runner.format_command(command)}")
        result = self._ctx.runner.run(command, cwd=cwd, check=False, note=note)
        if result.returncode == 0 and result.stderr.strip():
            console.trace(result.stderr.decode("utf-8", errors="replace").rstrip())
        return result

    def _refresh_dependencies(self, config: WorkloadConfig) -> None:
        self._ctx.console.info(f"Updating chart dependencies of {config.chart_path}")
        command = build_dependency_update_command(config.chart_path, helm_bin=self._helm_bin)
        result = self._run(command, cwd=config.base_dir, note="dependencies")
        if result.returncode != 0:
            raise DependencyRefreshError(result)

    def _process(
        self,
        config: WorkloadConfig,
        deployment: EffectiveDeployment,
        options: RenderOptions,
        sink: OutputSink | None,
    ) -> Path | None:
        output_dir: Path | None = None
        if options.output_mode is OutputMode.FILE and not config.schema_version.single_file_output:
            output_dir = deployment_directory(config.output_base_path, deployment)
            if not options.dry_run:
                try:
                    output_dir.mkdir(parents=True, exist_ok=True)
                except OSError as exc:
                    raise WriteError(deployment.name, output_dir, str(exc)) from exc

        command = build_render_command(deployment, helm_bin=self._helm_bin, output_dir=output_dir)
        result = self._run(command, cwd=config.base_dir, note=f"render {deployment.name}")
        if result.returncode != 0:
            raise RenderError(deployment.name, result)

        if output_dir is not None:
            self._ctx.console.info(f"Rendered {deployment.name} -> {output_dir}")
            return output_dir

        data = options.pipe_chain.run(
            self._ctx.runner,
            result.stdout,
            deployment=deployment.name,
            cwd=config.base_dir,
        )

        if sink is None:
            self._ctx.console.info(f"Rendered {deployment.name} (dry run, nothing written)")
            return None
        written = sink.write(deployment, data)
        self._ctx.console.info(f"Rendered {deployment.name} -> {sink.describe(deployment)}")
        return written
