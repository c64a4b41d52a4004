"""Pre-render checks for workload configuration files."""
from __future__ import annotations

from typing import List

from .config import WorkloadConfig
from .context import Console


def validate_workload(
    config: WorkloadConfig,
    *,
    skip_disabled: bool = False,
    console: Console | None = None,
) -> List[str]:
    """Return every problem found in ``config``; an empty list means valid.

    Value files of disabled deployments are not checked.
    """

    if skip_disabled and not config.enabled:
        if console is not None:
            console.info(f"{config.label}: skipped validation of disabled file")
        return []

    errors: List[str] = []
    if not config.chart_path.exists():
        errors.append(f"Chart {str(config.chart_path)!r} does not exist or is not readable")

    for values_file in config.iter_value_files():
        if not values_file.is_file():
            errors.append(f"Values file {str(values_file)!r} does not exist or is not readable")

    if not any(deployment.enabled for deployment in config.deployments):
        errors.append("All deployments are disabled; enable at least one")

    return errors
