"""Hosts file reconciliation."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from bootapp.context import ReconcileContext
from bootapp.docker.client import DockerClient
from bootapp.utils.process import run_command


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HostEntry:
    """One IP to domain mapping owned by a project."""
    ip: str
    domain: str

    def render(self, marker_id: str) -> str:
        return f"{self.ip:<15} {self.domain:<20}          ## {marker_id}"


def _owner(line: str) -> Optional[str]:
    """Marker id a managed line carries, if any."""
    _, sep, tail = line.partition("##")
    return tail.strip() if sep else None


def _fields(line: str) -> List[str]:
    """Address and names of a hosts line, comments removed."""
    return line.split("#", 1)[0].split()


def rewrite_hosts(content: str, entries: Iterable[HostEntry], marker_id: str) -> str:
    """Return ``content`` with the project's lines replaced by ``entries``.

    Three passes run before anything is appended: lines carrying the marker,
    lines whose address is wanted, lines naming a wanted domain. The result
    therefore never holds two lines for the same address or domain.
    """
    entries = list(dict.fromkeys(entries))
    ips = {entry.ip for entry in entries}
    domains = {entry.domain for entry in entries}

    lines = content.splitlines()
    lines = [line for line in lines if _owner(line) != marker_id]
    lines = [line for line in lines if not (_fields(line) and _fields(line)[0] in ips)]
    lines = [line for line in lines if not domains.intersection(_fields(line)[1:])]

    lines.extend(entry.render(marker_id) for entry in entries)
    return "\n".join(lines) + "\n" if lines else ""


class HostsFileReconciler:
    """Maps running project containers to their DOMAIN names in the hosts file."""

    def __init__(
        self,
        docker: DockerClient,
        hosts_path: Path = Path("/etc/hosts"),
        use_sudo: bool = True,
        runner=None,
    ):
        self.docker = docker
        self.hosts_path = Path(hosts_path)
        self.use_sudo = use_sudo
        self._runner = runner or run_command

    async def desired_entries(self, context: ReconcileContext, container_names: Iterable[str]) -> List[HostEntry]:
        names = set(container_names)
        entries = []
        for view in await self.docker.running_containers():
            if view.name not in names:
                continue
            ip = view.networks.get(context.primary_network or "") or view.ip
            if not ip:
                logger.warning(f"{view.name} has no IP address, skipping its domains")
                continue
            entries.extend(HostEntry(ip, domain) for domain in view.domains)
        return entries

    async def reconcile(self, context: ReconcileContext, container_names: Iterable[str]) -> List[HostEntry]:
        """Rewrite the hosts file for the running project containers."""
        entries = await self.desired_entries(context, container_names)
        await self._apply(entries, context.marker_id)
        for entry in entries:
            logger.info(f"hosts   | {entry.ip} {entry.domain}")
        return entries

    async def remove(self, context: ReconcileContext):
        """Drop every line the project owns."""
        await self._apply([], context.marker_id)

    async def _apply(self, entries: List[HostEntry], marker_id: str):
        current = self.hosts_path.read_text() if self.hosts_path.exists() else ""
        updated = rewrite_hosts(current, entries, marker_id)
        if updated == current:
            logger.debug(f"{self.hosts_path} is up to date")
            return
        await self.write(updated)

    async def write(self, content: str):
        if self.use_sudo:
            await self._runner(["sudo", "tee", str(self.hosts_path)], input=content)
        else:
            self.hosts_path.write_text(content)
        logger.debug(f"Updated {self.hosts_path}")
