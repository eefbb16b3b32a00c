"""Per-invocation reconciliation context."""

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


DEFAULT_PALETTE = [
    "green",
    "yellow",
    "blue",
    "magenta",
    "cyan",
    "red",
    "bright_green",
    "bright_yellow",
    "bright_blue",
    "bright_magenta",
    "bright_cyan",
    "bright_red",
]


def is_linux_host() -> bool:
    """Whether containers are directly reachable from this host."""
    return sys.platform.startswith("linux")


@dataclass
class ReconcileContext:
    """State shared by the reconcilers during one command.

    Everything a reconciler needs to know about the current project travels
    in this object; nothing is kept on module or class level.
    """
    cwd: Path
    machine_name: str
    project_name: str
    stage_name: str = "local"
    is_linux: bool = field(default_factory=is_linux_host)
    machine_ip: str = ""
    network_names: List[str] = field(default_factory=list)
    palette: List[str] = field(default_factory=lambda: list(DEFAULT_PALETTE))
    palette_cursor: int = 0

    def container_name(self, service_name: str) -> str:
        """Canonical container name for a service."""
        return f"{self.project_name}-{service_name}"

    @property
    def marker_id(self) -> str:
        return f"{self.machine_name}_{self.project_name}"

    @property
    def marker(self) -> str:
        """Hosts-file comment token owned by this project."""
        return f"## {self.marker_id}"

    @property
    def primary_network(self) -> Optional[str]:
        return self.network_names[0] if self.network_names else None

    def next_color(self) -> str:
        """Hand out palette colors round-robin."""
        color = self.palette[self.palette_cursor % len(self.palette)]
        self.palette_cursor += 1
        return color
