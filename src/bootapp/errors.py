"""Exception hierarchy for bootapp."""

from typing import List, Optional


class BootappError(Exception):
    """Base class for all bootapp errors."""
    pass


class ValidationError(BootappError):
    """Malformed manifest or configuration field."""
    pass


class ConfigNotFound(BootappError):
    """Bootfile or compose file could not be located."""
    pass


class AllocationExhausted(BootappError):
    """No free subnet is left for a new project."""
    pass


class NetworkConflict(BootappError):
    """A foreign network occupies a subnet the project needs."""

    def __init__(self, network: str, other: str, subnet: str):
        self.network = network
        self.other = other
        self.subnet = subnet
        super().__init__(f"{network} conflicts with network {other}, subnet {subnet}")


class NetworkNotFound(BootappError):
    """Network has no subnet after creation."""
    pass


class RouteSetupFailed(BootappError):
    """Host route to the container subnet could not be installed."""
    pass


class BuildFailed(BootappError):
    """Image build failed for one service."""

    def __init__(self, service: str, reason: str = ""):
        self.service = service
        super().__init__(f"build failed for {service}: {reason}" if reason else f"build failed for {service}")


class PullFailed(BootappError):
    """Image pull failed for one service."""
    pass


class MachineError(BootappError):
    """VM host is in a state bootapp cannot recover from."""
    pass


class CertError(BootappError):
    """Certificate files are inconsistent or could not be issued."""
    pass


class CommandFailed(BootappError):
    """External command exited with a non-zero status."""

    def __init__(
        self,
        cmd: List[str],
        exit_code: int,
        stdout: str = "",
        stderr: str = "",
    ):
        self.cmd = list(cmd)
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        detail = stderr.strip() or stdout.strip() or "no output"
        super().__init__(f"{detail} ({exit_code})")

    @property
    def returncode(self) -> int:
        """Alias matching subprocess.CalledProcessError."""
        return self.exit_code


def first_line(text: Optional[str]) -> str:
    """Return the first non-empty line of text, for compact log messages."""
    for line in (text or "").splitlines():
        if line.strip():
            return line.strip()
    return ""
