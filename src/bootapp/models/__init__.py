"""Pydantic models for configuration, manifests and runtime views."""

from bootapp.models.config import BootfileConfig, BootappSettings, MachineEnvironment, StageConfig
from bootapp.models.manifest import (
    BuildSpec,
    ComposeManifest,
    IpamConfig,
    IpamSpec,
    LoggingSpec,
    NetworkSpec,
    ServiceNetwork,
    ServiceSpec,
)
from bootapp.models.runtime import ContainerListEntry, NetworkView, RunningContainerView

__all__ = [
    "BootfileConfig",
    "BootappSettings",
    "MachineEnvironment",
    "StageConfig",
    "BuildSpec",
    "ComposeManifest",
    "IpamConfig",
    "IpamSpec",
    "LoggingSpec",
    "NetworkSpec",
    "ServiceNetwork",
    "ServiceSpec",
    "ContainerListEntry",
    "NetworkView",
    "RunningContainerView",
]
