"""Command line interface for templexer."""
from __future__ import annotations

from argparse import ArgumentParser, Namespace
from pathlib import Path
from typing import Iterable, List
import sys

from core.command_runner import RecordingCommandRunner, SubprocessCommandRunner

from .command import DEFAULT_HELM_BINARY, split_options
from .config import WorkloadConfig
from .context import Console, Context, level_for_verbosity
from .errors import ConfigError, DependencyRefreshError, FilterError
from .orchestrator import Orchestrator, RenderOptions, RenderReport
from .output import OutputMode
from .pipeline import PipeChain
from .resolver import compile_filter
from .validation import validate_workload


EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def _make_runner(dry_run: bool) -> SubprocessCommandRunner | RecordingCommandRunner:
    return RecordingCommandRunner() if dry_run else SubprocessCommandRunner()


def _emit_dry_run_output(runner: RecordingCommandRunner) -> None:
    for line in runner.iter_formatted():
        print(line)


def _verbosity_parent() -> ArgumentParser:
    parent = ArgumentParser(add_help=False)
    parent.add_argument(
        "-v",
        "--verbose",
        dest="sub_verbose",
        action="count",
        default=0,
        help="Increase diagnostic output on stderr (-v, -vv, -vvv)",
    )
    return parent


def _parse_arguments(argv: Iterable[str]) -> Namespace:
    parser = ArgumentParser(
        prog="templexer",
        description="Render Helm charts for multiple environments using explicit config",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        dest="verbose",
        action="count",
        default=0,
        help="Increase diagnostic output on stderr (-v, -vv, -vvv)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    verbosity = _verbosity_parent()

    render_parser = subparsers.add_parser(
        "render",
        parents=[verbosity],
        help="Render deployments for given configuration file(s)",
    )
    render_parser.add_argument(
        "input_files",
        nargs="+",
        type=Path,
        metavar="CONFIG",
        help="Configuration file(s) to render deployments for (toml, yaml, json)",
    )
    render_parser.add_argument(
        "-a",
        "--additional-options",
        dest="additional_options",
        action="append",
        default=[],
        metavar="OPTION",
        help="Pass an additional option to every 'helm template' call, e.g. "
        "--additional-options='--set-string image.tag=abc' (repeatable)",
    )
    render_parser.add_argument(
        "-f",
        "--filter",
        dest="name_filter",
        metavar="REGEX",
        help="Only render deployments whose name fully matches REGEX",
    )
    render_parser.add_argument(
        "-u",
        "--update-dependencies",
        dest="update_dependencies",
        action="store_true",
        help="Run 'helm dependency update' once before rendering",
    )
    render_parser.add_argument(
        "-p",
        "--pipe",
        dest="pipe",
        action="append",
        default=[],
        metavar="COMMAND",
        help="Pipe rendered manifests through COMMAND before writing (repeatable, applied in order)",
    )
    render_parser.add_argument(
        "--stdout",
        action="store_true",
        help="Write rendered manifests to stdout instead of the output path",
    )
    render_parser.add_argument(
        "--helm-bin",
        dest="helm_bin",
        default=DEFAULT_HELM_BINARY,
        metavar="PATH",
        help="helm binary to use (default: helm from PATH)",
    )
    render_parser.add_argument(
        "-n",
        "--dry-run",
        dest="dry_run",
        action="store_true",
        help="Print commands without executing them",
    )

    validate_parser = subparsers.add_parser(
        "validate",
        parents=[verbosity],
        help="Validate given configuration file(s)",
    )
    validate_parser.add_argument(
        "input_files",
        nargs="+",
        type=Path,
        metavar="CONFIG",
        help="Configuration file(s) to validate (toml, yaml, json)",
    )
    validate_parser.add_argument(
        "-s",
        "--skip-disabled",
        dest="skip_disabled",
        action="store_true",
        help="Skip validation of files whose 'enabled' is set to false",
    )

    return parser.parse_args(list(argv))


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_arguments(sys.argv[1:] if argv is None else argv)
    console = Console(level=level_for_verbosity(args.verbose + args.sub_verbose))

    if args.command == "render":
        return _handle_render(args, console)
    if args.command == "validate":
        return _handle_validate(args, console)
    raise ValueError(f"Unknown command: {args.command}")


def _load_workloads(paths: Iterable[Path], *, streaming: bool) -> List[WorkloadConfig]:
    return [WorkloadConfig.load(path, streaming=streaming) for path in paths]


def _handle_render(args: Namespace, console: Console) -> int:
    try:
        pipe_chain = PipeChain.from_command_lines(args.pipe)
        split_options(args.additional_options)
    except ValueError as exc:
        console.error(str(exc))
        return EXIT_CONFIG

    options = RenderOptions(
        pipe_chain=pipe_chain,
        output_mode=OutputMode.STREAM if args.stdout else OutputMode.FILE,
        refresh_dependencies=args.update_dependencies,
        additional_options=list(args.additional_options),
        dry_run=args.dry_run,
    )

    # Every file is loaded and checked before the first deployment renders.
    try:
        options.name_filter = compile_filter(args.name_filter)
        workloads = _load_workloads(args.input_files, streaming=args.stdout)
        for workload in workloads:
            Orchestrator.preflight(workload, options)
    except (ConfigError, FilterError) as exc:
        console.error(str(exc))
        return EXIT_CONFIG

    runner = _make_runner(args.dry_run)
    orchestrator = Orchestrator(Context(console=console, runner=runner), helm_bin=args.helm_bin)

    reports: List[RenderReport] = []
    for workload in workloads:
        try:
            reports.append(orchestrator.run(workload, options))
        except DependencyRefreshError as exc:
            console.error(f"{workload.label}: {exc}")
            return EXIT_FAILED

    if args.dry_run and isinstance(runner, RecordingCommandRunner):
        _emit_dry_run_output(runner)

    failed = [report for report in reports if not report.succeeded]
    for report in reports:
        if report.succeeded:
            console.info(report.summary())
        else:
            console.error(report.summary())

    if failed:
        console.error("Rendering failed")
        return EXIT_FAILED
    return EXIT_OK


def _handle_validate(args: Namespace, console: Console) -> int:
    try:
        workloads = _load_workloads(args.input_files, streaming=False)
    except ConfigError as exc:
        console.error(f"Configuration failed validation: {exc}")
        return EXIT_CONFIG

    errors: List[tuple[str, str]] = []
    for workload in workloads:
        for message in validate_workload(workload, skip_disabled=args.skip_disabled, console=console):
            errors.append((workload.label, message))

    if errors:
        console.error("Validation failed:")
        for label, message in errors:
            console.error(f"  [{label}] {message}")
        return EXIT_FAILED

    console.info("Validation successful")
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
