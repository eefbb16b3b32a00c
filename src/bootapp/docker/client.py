"""Docker CLI wrapper.

Every ``docker`` invocation and every parse of its output happens here.
Callers only ever see the typed views from :mod:`bootapp.models.runtime`.
"""

import json
import logging
import shlex
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from bootapp.errors import BootappError
from bootapp.models.runtime import ContainerListEntry, NetworkView, RunningContainerView
from bootapp.utils.process import CommandResult, run_command


logger = logging.getLogger(__name__)

Runner = Callable[..., Awaitable[CommandResult]]


def _load_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise BootappError(f"Unexpected docker output: {e}") from e


def parse_labels(raw: Any) -> Dict[str, str]:
    """Labels arrive as a mapping from inspect and as ``k=v,k=v`` from ps."""
    if not raw:
        return {}
    if isinstance(raw, dict):
        return {str(k): str(v) for k, v in raw.items()}
    labels = {}
    for item in str(raw).split(","):
        key, _, value = item.partition("=")
        if key:
            labels[key.strip()] = value
    return labels


def parse_env(raw: Optional[List[str]]) -> Dict[str, str]:
    """Turn ``["K=V", ...]`` into an ordered mapping."""
    env = {}
    for item in raw or []:
        key, _, value = item.partition("=")
        env[key] = value
    return env


def parse_network_inspect(text: str) -> List[NetworkView]:
    """Parse ``docker network inspect`` JSON."""
    if not text.strip():
        return []
    views = []
    for raw in _load_json(text):
        ipam_config = (raw.get("IPAM") or {}).get("Config") or []
        subnets = [c["Subnet"] for c in ipam_config if c.get("Subnet")]
        gateways = [c["Gateway"] for c in ipam_config if c.get("Gateway")]
        views.append(NetworkView(
            name=raw.get("Name", ""),
            id=raw.get("Id", ""),
            driver=raw.get("Driver", ""),
            subnets=subnets,
            gateway=gateways[0] if gateways else None,
        ))
    return views


def parse_container_inspect(text: str) -> List[RunningContainerView]:
    """Parse ``docker inspect`` JSON for containers."""
    if not text.strip():
        return []
    views = []
    for raw in _load_json(text):
        config = raw.get("Config") or {}
        networks = (raw.get("NetworkSettings") or {}).get("Networks") or {}
        views.append(RunningContainerView(
            id=raw.get("Id", ""),
            name=raw.get("Name", "").lstrip("/"),
            image=config.get("Image", ""),
            status=(raw.get("State") or {}).get("Status", ""),
            created=raw.get("Created", ""),
            networks={name: (net or {}).get("IPAddress", "") for name, net in networks.items()},
            labels=parse_labels(config.get("Labels")),
            env=parse_env(config.get("Env")),
        ))
    return views


def parse_ps(text: str) -> List[ContainerListEntry]:
    """Parse ``docker ps --format '{{json .}}'`` output, one object per line."""
    entries = []
    for line in text.splitlines():
        if not line.strip():
            continue
        raw = _load_json(line)
        entries.append(ContainerListEntry(
            id=raw.get("ID", ""),
            image=raw.get("Image", ""),
            command=raw.get("Command", ""),
            created_at=raw.get("CreatedAt", ""),
            running_for=raw.get("RunningFor", ""),
            ports=raw.get("Ports", ""),
            status=raw.get("Status", ""),
            size=raw.get("Size", ""),
            names=raw.get("Names", ""),
            labels=parse_labels(raw.get("Labels")),
        ))
    return entries


class DockerClient:
    """Thin async facade over the docker binary."""

    def __init__(self, docker_bin: str = "docker", runner: Optional[Runner] = None):
        """Initialize client."""
        self.docker_bin = docker_bin
        self._runner = runner or run_command

    def command(self, *args: str) -> List[str]:
        return [self.docker_bin, *args]

    async def run(
        self,
        args: List[str],
        check: bool = True,
        cwd: Optional[Path] = None,
        timeout: Optional[int] = None,
    ) -> CommandResult:
        """Run a docker argv; a leading ``docker`` maps to the configured binary."""
        if args and args[0] == "docker":
            args = [self.docker_bin, *args[1:]]
        kwargs = {}
        if cwd is not None:
            kwargs["cwd"] = str(cwd)
        return await self._runner(args, check=check, timeout=timeout, **kwargs)

    # Networks

    async def network_ids(self) -> List[str]:
        result = await self.run(self.command("network", "ls", "-q"))
        return result.lines

    async def list_networks(self) -> Dict[str, NetworkView]:
        """All runtime networks keyed by name."""
        ids = await self.network_ids()
        if not ids:
            return {}
        result = await self.run(self.command("network", "inspect", *ids))
        return {view.name: view for view in parse_network_inspect(result.stdout)}

    async def inspect_network(self, name: str) -> Optional[NetworkView]:
        result = await self.run(self.command("network", "inspect", name), check=False)
        if result.returncode != 0:
            return None
        views = parse_network_inspect(result.stdout)
        return views[0] if views else None

    async def bridge_subnet(self) -> Optional[str]:
        """Subnet of the runtime's default bridge network."""
        view = await self.inspect_network("bridge")
        if view and view.subnets:
            return view.subnets[0]
        return None

    async def create_network(self, name: str, subnets: Iterable[str], driver: str = "bridge") -> None:
        args = ["network", "create", f"--driver={driver}"]
        args.extend(f"--subnet={subnet}" for subnet in subnets)
        args.append(name)
        await self.run(self.command(*args))

    async def remove_network(self, name: str, check: bool = True) -> bool:
        result = await self.run(self.command("network", "rm", name), check=check)
        return result.returncode == 0

    # Containers

    async def container_ids(self, all_containers: bool = False, labels: Iterable[str] = ()) -> List[str]:
        args = ["ps", "-q"]
        if all_containers:
            args.append("-a")
        for label in labels:
            args.extend(["--filter", f"label={label}"])
        result = await self.run(self.command(*args))
        return result.lines

    async def inspect_containers(self, ids: List[str]) -> List[RunningContainerView]:
        if not ids:
            return []
        result = await self.run(self.command("inspect", *ids))
        return parse_container_inspect(result.stdout)

    async def inspect_container(self, name: str) -> Optional[RunningContainerView]:
        result = await self.run(self.command("inspect", name), check=False)
        if result.returncode != 0:
            return None
        views = parse_container_inspect(result.stdout)
        return views[0] if views else None

    async def running_containers(self) -> List[RunningContainerView]:
        """Inspect views of every running container."""
        return await self.inspect_containers(await self.container_ids())

    async def list_containers(self) -> List[ContainerListEntry]:
        result = await self.run(self.command("ps", "--no-trunc", "--format", "{{json .}}"))
        return parse_ps(result.stdout)

    async def remove_container(self, name: str) -> bool:
        """Force-remove a container; a missing container is not an error."""
        result = await self.run(self.command("rm", "-f", name), check=False)
        return result.returncode == 0

    async def remove_containers(self, ids: List[str]) -> bool:
        if not ids:
            return True
        result = await self.run(self.command("rm", "-f", *ids), check=False)
        return result.returncode == 0

    async def start(self, name: str) -> None:
        await self.run(self.command("start", name))

    async def pull(self, image: str) -> None:
        await self.run(self.command("pull", image))

    async def execute(self, argv: List[str], cwd: Optional[Path] = None) -> CommandResult:
        """Run a synthesized docker invocation."""
        return await self.run(argv, cwd=cwd)

    def log_stream_command(self, name: str) -> List[str]:
        """Replay a container's logs, then follow it attached."""
        docker = shlex.quote(self.docker_bin)
        quoted = shlex.quote(name)
        return [
            "sh", "-c",
            f"{docker} logs {quoted} && {docker} attach --sig-proxy=true {quoted}",
        ]
