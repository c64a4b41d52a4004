"""Shared fixtures: workload files on disk and a scripted helm stand-in."""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, List
import textwrap

from core.command_runner import CommandResult, RecordedCommand, RecordingCommandRunner


WORKLOAD_YAML = """
version: v2
enabled: true
chart: charts/nginx
namespace: my-namespace
release_name: my-app
output_path: manifests
additional_options:
  - "--skip-crds"
  - "--no-hooks"
values:
  - values/default.yaml
deployments:
  - name: edge-eu-w4
    values:
      - values/edge.yaml
    additional_options:
      - "--set image.tag=latest"
  - name: next-edge-eu-w4
    enabled: false
    values:
      - values/edge.yaml
      - values/next-edge.yaml
  - name: stage-eu-w4
    values:
      - values/stage.yaml
  - name: prod-eu-w4
    release_name: my-app-prod-eu-w4
    values:
      - values/prod.yaml
      - values/prod-eu-w4.yaml
"""


def write_file(root: Path, name: str, content: str) -> Path:
    path = root / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content).lstrip())
    return path


def write_chart(root: Path, *value_files: str) -> None:
    write_file(root, "charts/nginx/Chart.yaml", "apiVersion: v2\nname: nginx\nversion: 0.1.0\n")
    for name in value_files:
        write_file(root, name, "replicaCount: 1\n")


def manifest_for(argv: List[str]) -> bytes:
    release = argv[2]
    lines = ["---", f"# release: {release}", "kind: Deployment", f"image: nginx:{release}"]
    return ("\n".join(lines) + "\n").encode()


class FakeHelm:
    """Responder for :class:`RecordingCommandRunner` imitating helm and a few filters.

    ``helm template`` prints a small manifest naming the release. Pipe stages
    understand ``upper``, ``grep <word>`` and ``fail``. Render calls fail when
    any argument is listed in ``fail_on``.
    """

    def __init__(self, *, fail_on: Iterable[str] = (), fail_dependencies: bool = False) -> None:
        self.fail_on = set(fail_on)
        self.fail_dependencies = fail_dependencies

    def __call__(self, record: RecordedCommand) -> CommandResult:
        argv = record.command
        if argv[:1] == ["upper"]:
            return CommandResult(argv, 0, (record.input or b"").upper())
        if argv[:1] == ["grep"]:
            kept = [line for line in (record.input or b"").splitlines(keepends=True) if argv[1].encode() in line]
            return CommandResult(argv, 0 if kept else 1, b"".join(kept))
        if argv[:1] == ["fail"]:
            return CommandResult(argv, 2, b"", b"stage exploded\n")
        if argv[1:3] == ["dependency", "update"]:
            if self.fail_dependencies:
                return CommandResult(argv, 1, b"", b"Error: no repository definition\n")
            return CommandResult(argv, 0, b"Hang tight while we grab the latest\n")
        if argv[1:2] == ["template"]:
            if self.fail_on.intersection(argv):
                return CommandResult(argv, 1, b"partial output\n", b"Error: values file is broken\n")
            return CommandResult(argv, 0, manifest_for(argv), b"")
        raise AssertionError(f"unexpected command: {argv}")


def fake_runner(**kwargs) -> RecordingCommandRunner:
    return RecordingCommandRunner(FakeHelm(**kwargs))


def commands_of(runner: RecordingCommandRunner, subcommand: str) -> List[List[str]]:
    return [record.command for record in runner.iter_commands() if record.command[1:2] == [subcommand]]
