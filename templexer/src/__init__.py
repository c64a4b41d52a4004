"""templexer: render one Helm chart for every deployment of a workload file."""

from .cli import main
from .config import DeploymentSpec, SchemaVersion, WorkloadConfig
from .errors import (
    ConfigError,
    DependencyRefreshError,
    DeploymentError,
    FilterError,
    PipelineError,
    RenderError,
    TemplexerError,
    WriteError,
)
from .orchestrator import Orchestrator, RenderOptions, RenderReport, RunState
from .resolver import EffectiveDeployment, resolve_deployments

__all__ = [
    "main",
    "DeploymentSpec",
    "SchemaVersion",
    "WorkloadConfig",
    "ConfigError",
    "DependencyRefreshError",
    "DeploymentError",
    "FilterError",
    "PipelineError",
    "RenderError",
    "TemplexerError",
    "WriteError",
    "Orchestrator",
    "RenderOptions",
    "RenderReport",
    "RunState",
    "EffectiveDeployment",
    "resolve_deployments",
]
