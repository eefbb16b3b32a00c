"""
Bootapp - isolated docker projects on one developer machine.

Each project gets its own subnet, containers created from a compose
manifest, host routes into the VM and hosts-file entries for its domains.
"""

__version__ = "1.0.0"

from bootapp.models.config import BootfileConfig, BootappSettings
from bootapp.models.manifest import ComposeManifest, ServiceSpec

__all__ = [
    "BootfileConfig",
    "BootappSettings",
    "ComposeManifest",
    "ServiceSpec",
]
