"""Translate compose services into docker command lines.

Everything in this module is a pure function of its arguments: no docker
calls, no filesystem access. Translating an unchanged service twice yields
the same argument vector.
"""

import json
import re
import shlex
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from bootapp.context import ReconcileContext
from bootapp.errors import ValidationError
from bootapp.models.manifest import BuildSpec, ComposeManifest, ServiceSpec
from bootapp.models.runtime import DOMAIN_LABEL, PROJECT_LABEL, SERVICE_LABEL


ATTACH = "attach"
DETACH = "detach"
MODES = (ATTACH, DETACH)

_RELATIVE_VOLUME = re.compile(r"^\.(/|:)")
_VOLUME_MODE = re.compile(r":r[ow]$")


def env_value(value: Any) -> str:
    """Render an environment value; structured values become compact JSON."""
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def volume_real_path(path: str, cwd: Union[str, Path]) -> str:
    """Rebase ``./`` and ``.:`` volumes onto cwd and default the mode to rw."""
    real = _RELATIVE_VOLUME.sub(lambda m: f"{cwd}{m.group(1)}", path)
    if not _VOLUME_MODE.search(path):
        real += ":rw"
    return real


def _split_command(command: Optional[Union[str, List[str]]]) -> List[str]:
    if command is None:
        return []
    if isinstance(command, str):
        return shlex.split(command)
    return [str(part) for part in command]


def image_reference(service: ServiceSpec, context: ReconcileContext) -> Optional[str]:
    """Image the container is created from; built images carry the canonical name."""
    if service.build is not None:
        return context.container_name(service.service_name)
    return service.image


def build_command(service: ServiceSpec, context: ReconcileContext) -> List[str]:
    """``docker build`` invocation for a service with a ``build`` section."""
    if service.build is None:
        raise ValidationError(f"service {service.service_name} has no build section")

    argv = [
        "docker", "build",
        "--no-cache",
        "--pull",
        f"--tag={context.container_name(service.service_name)}",
    ]

    if isinstance(service.build, BuildSpec):
        if not service.build.context:
            raise ValidationError(f"build context not found for service {service.service_name}")
        for key, value in service.build.args.items():
            argv.extend(["--build-arg", f"{key}={env_value(value)}"])
        if service.build.dockerfile:
            argv.extend(["-f", service.build.dockerfile])
        argv.append(service.build.context)
    else:
        argv.append(service.build)

    return argv


def validate_manifest(manifest: ComposeManifest, context: ReconcileContext) -> None:
    """Fail on malformed services before anything touches the runtime."""
    for key, service in manifest.services.items():
        if service.build is None and not service.image:
            raise ValidationError(f"service {service.service_name} needs an image or a build section")
        if service.build is not None:
            build_command(service, context)


def translate(
    service: ServiceSpec,
    context: ReconcileContext,
    mode: str = DETACH,
    link_hosts: Optional[Dict[str, str]] = None,
) -> List[str]:
    """Build the ``docker create``/``docker run`` argv for one service.

    ``link_hosts`` maps host names to IPs for linked containers; resolving
    them requires inspecting the runtime, so the caller does it.
    """
    if mode not in MODES:
        raise ValidationError(f"unknown mode {mode!r}")

    name = service.service_name
    argv: List[str] = []

    if mode == ATTACH:
        argv.extend(["docker", "create", "-a", "STDIN", "-a", "STDOUT", "-a", "STDERR", "-i"])
    else:
        argv.extend(["docker", "run", "-d", "-i"])
        if service.tty:
            argv.append("--tty")

    if service.privileged:
        argv.append("--privileged")

    if context.primary_network:
        argv.append(f"--net={context.primary_network}")

    for network in service.networks.values():
        if network.ipv4_address:
            argv.append(f"--ip={network.ipv4_address}")
        if network.ipv6_address:
            argv.append(f"--ip6={network.ipv6_address}")

    argv.extend(f"--dns={server}" for server in service.dns)
    argv.extend(f"--env-file={path}" for path in service.env_file)

    argv.extend(["-e", "TERM=xterm"])
    for key, value in service.environment.items():
        argv.extend(["-e", f"{key}={env_value(value)}"])

    if service.logging:
        if service.logging.driver:
            argv.append(f"--log-driver={service.logging.driver}")
        for key, value in service.logging.options.items():
            argv.append(f"--log-opt={key}={env_value(value)}")

    argv.extend(f"--expose={port}" for port in service.expose)

    if service.user:
        argv.append(f"--user={service.user}")
    if service.hostname:
        argv.append(f"--hostname={service.hostname}")

    for host, ip in (link_hosts or {}).items():
        argv.append(f"--add-host={host}:{ip}")
    argv.extend(f"--link={context.container_name(link)}" for link in service.links)
    argv.extend(f"--add-host={host}" for host in service.extra_hosts)

    if service.net:
        argv.append(f"--net={service.net}")
    if service.working_dir:
        argv.append(f"--workdir={service.working_dir}")

    argv.extend(f"--publish={port}" for port in service.ports)

    if service.restart:
        argv.append(f"--restart={service.restart}")

    for volume in service.volumes:
        argv.extend(["-v", volume_real_path(volume, context.cwd)])
    argv.extend(f"--volumes-from={context.container_name(source)}" for source in service.volumes_from)

    command = _split_command(service.command)
    if service.entrypoint is not None:
        entrypoint = _split_command(service.entrypoint)
        if entrypoint:
            argv.append(f"--entrypoint={entrypoint[0]}")
            command = entrypoint[1:] + command

    argv.append(f"--name={context.container_name(name)}")

    for key, value in service.labels.items():
        argv.append(f"--label={key}={value}")
    argv.append(f"--label={PROJECT_LABEL}={context.project_name}")
    argv.append(f"--label={SERVICE_LABEL}={name}")
    if service.domain is not None:
        argv.append(f"--label={DOMAIN_LABEL}={service.domain}")

    image = image_reference(service, context)
    if image:
        argv.append(image)

    argv.extend(command)
    return argv
