"""Resolve the effective settings of every deployment to render."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Pattern
import re

from .config import DeploymentSpec, WorkloadConfig
from .errors import FilterError


@dataclass(frozen=True, slots=True)
class EffectiveDeployment:
    """Global settings merged with one deployment's overrides."""

    name: str
    release_name: str
    namespace: str | None
    chart_path: Path
    values: tuple[Path, ...]
    options: tuple[str, ...]


def compile_filter(pattern: str | Pattern[str] | None) -> Pattern[str] | None:
    """Compile a deployment name filter, raising :class:`FilterError` if invalid."""
    if pattern is None or isinstance(pattern, re.Pattern):
        return pattern
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise FilterError(pattern, str(exc)) from exc


def merge_deployment(config: WorkloadConfig, deployment: DeploymentSpec) -> EffectiveDeployment:
    return EffectiveDeployment(
        name=deployment.name,
        release_name=deployment.release_name or config.release_name,
        namespace=config.namespace,
        chart_path=config.chart_path,
        values=config.global_values + deployment.values,
        options=config.global_additional_options + deployment.additional_options,
    )


def resolve_deployments(
    config: WorkloadConfig,
    name_filter: str | Pattern[str] | None = None,
) -> Iterator[EffectiveDeployment]:
    """Yield effective deployments in declaration order.

    Disabled workloads and deployments are skipped, as are deployments whose
    name does not fully match ``name_filter``. The filter is compiled before
    the first deployment is produced, so an invalid pattern fails even when
    nothing would be rendered.
    """
    pattern = compile_filter(name_filter)
    return _iter_effective(config, pattern)


def _iter_effective(config: WorkloadConfig, pattern: Pattern[str] | None) -> Iterator[EffectiveDeployment]:
    for deployment in config.enabled_deployments():
        if pattern is not None and pattern.fullmatch(deployment.name) is None:
            continue
        yield merge_deployment(config, deployment)
