"""Argument vectors for the external helm calls."""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, List
import shlex

from .resolver import EffectiveDeployment


DEFAULT_HELM_BINARY = "helm"


def split_options(options: Iterable[str]) -> List[str]:
    """Tokenize passthrough options the way a shell would, keeping their order.

    ``"--set image.tag=latest"`` becomes ``["--set", "image.tag=latest"]``;
    nothing is reordered, merged or dropped.
    """
    tokens: List[str] = []
    for option in options:
        tokens.extend(shlex.split(option))
    return tokens


def build_render_command(
    deployment: EffectiveDeployment,
    *,
    helm_bin: str = DEFAULT_HELM_BINARY,
    output_dir: Path | None = None,
) -> List[str]:
    """Build the ``helm template`` invocation for ``deployment``.

    Value files keep their declared order because helm lets later files win
    on conflicting keys.
    """
    command = [helm_bin, "template", deployment.release_name, str(deployment.chart_path)]
    if deployment.namespace:
        command.extend(["--namespace", deployment.namespace])
    for values_file in deployment.values:
        command.extend(["--values", str(values_file)])
    if output_dir is not None:
        command.extend(["--output-dir", str(output_dir)])
    command.extend(split_options(deployment.options))
    return command


def build_dependency_update_command(chart_path: Path, *, helm_bin: str = DEFAULT_HELM_BINARY) -> List[str]:
    return [helm_bin, "dependency", "update", str(chart_path)]
