"""docker-machine VM management."""

import asyncio
import logging
import os
import re
from enum import Enum
from typing import Dict, MutableMapping, Optional

from bootapp.context import is_linux_host
from bootapp.errors import MachineError
from bootapp.models.config import MachineEnvironment
from bootapp.prompt import Prompter
from bootapp.utils.process import CommandResult, run_command


logger = logging.getLogger(__name__)

ENV_ATTEMPTS = 10
READY_ATTEMPTS = 10

_EXPORT = re.compile(r'export (?P<key>[^=\s]+)="(?P<value>.*)"')
_MEMORY = re.compile(r"Memory size:?\s+(?P<size>\d+)\s*MB")
_READY = re.compile(r"^\s*Containers", re.MULTILINE)


class MachineStatus(Enum):
    """docker-machine VM states."""
    RUNNING = "running"
    STOPPED = "stopped"
    PAUSED = "paused"
    SAVED = "saved"
    ERROR = "error"
    MISSING = "missing"


def parse_status(output: str) -> MachineStatus:
    """Anything docker-machine does not report as a known state means no VM."""
    text = output.strip().lower()
    for status in MachineStatus:
        if text == status.value:
            return status
    return MachineStatus.MISSING


def parse_env_exports(output: str) -> Dict[str, str]:
    """``export KEY="VALUE"`` lines of ``docker-machine env``."""
    return {m["key"]: m["value"] for m in _EXPORT.finditer(output)}


def parse_memory_size(output: str) -> Optional[int]:
    match = _MEMORY.search(output)
    return int(match["size"]) if match else None


class MachineManager:
    """Brings the VM that hosts the docker daemon into a usable state."""

    def __init__(
        self,
        machine_name: str,
        environment: Optional[MachineEnvironment] = None,
        prompter: Optional[Prompter] = None,
        is_linux: Optional[bool] = None,
        runner=None,
        environ: Optional[MutableMapping[str, str]] = None,
        retry_delay: float = 1.0,
        docker_bin: str = "docker",
    ):
        """Initialize machine manager."""
        self.machine_name = machine_name
        self.environment = environment or MachineEnvironment()
        self.prompter = prompter
        self.is_linux = is_linux_host() if is_linux is None else is_linux
        self._runner = runner or run_command
        self.environ = os.environ if environ is None else environ
        self.retry_delay = retry_delay
        self.docker_bin = docker_bin

    async def _run(self, *args: str, check: bool = True) -> CommandResult:
        return await self._runner(list(args), check=check)

    async def status(self) -> MachineStatus:
        result = await self._run("docker-machine", "status", self.machine_name, check=False)
        return parse_status(result.stdout or result.stderr)

    async def init(self) -> MachineStatus:
        """Create, resize and start the VM, then point docker at it."""
        if self.is_linux:
            logger.debug("Native docker host, no machine to manage")
            return MachineStatus.RUNNING

        status = await self.status()
        logger.info(f'docker  | Machine status "{status.value}"')

        if status == MachineStatus.ERROR:
            await self.delete()
            await self.create()
            status = await self.status()
        elif status == MachineStatus.MISSING:
            await self.create()
            status = await self.status()

        status = await self.apply_memory_size(status)

        if status == MachineStatus.STOPPED:
            await self.start()
        elif status == MachineStatus.PAUSED:
            await self._run("vboxmanage", "controlvm", self.machine_name, "resume")
        elif status == MachineStatus.SAVED:
            await self.discard_state()
            await self.start()
        elif status == MachineStatus.ERROR:
            await self.start()

        await self.export_env()
        await self.wait_ready()
        await self.run_init_scripts()
        return await self.status()

    async def apply_memory_size(self, status: MachineStatus) -> MachineStatus:
        """Resize the VM when ``environment.memory_size`` asks for it."""
        wanted = self.environment.memory_size
        if not wanted:
            return status

        result = await self._run("VBoxManage", "showvminfo", self.machine_name, check=False)
        current = parse_memory_size(result.stdout)
        if current == wanted:
            return status

        if status in (MachineStatus.RUNNING, MachineStatus.PAUSED):
            await self.halt()
        elif status == MachineStatus.SAVED:
            await self.discard_state()

        await self._run("VBoxManage", "modifyvm", self.machine_name, "--memory", str(wanted))
        logger.info(f"docker  | Memory size changed from {current} to {wanted}")
        return await self.status()

    async def create(self):
        logger.info("docker  | Creating docker-machine")
        await self._run(
            "docker-machine", "create",
            "--driver=virtualbox",
            "--virtualbox-memory=4096",
            "--virtualbox-disk-size=200000",
            "--virtualbox-cpu-count=2",
            self.machine_name,
        )

    async def delete(self):
        if not self._confirm("Machine Error, delete?"):
            raise MachineError("machine status error. please check.")
        await self._run("docker-machine", "rm", "-f", self.machine_name)

    async def discard_state(self):
        if not self._confirm("Machine Saved, discardstate?"):
            raise MachineError("machine status saved. please check.")
        await self._run("vboxmanage", "discardstate", self.machine_name)

    async def start(self):
        logger.info("docker  | Starting docker-machine")
        await self._run("docker-machine", "start", self.machine_name)

    async def halt(self):
        logger.info(f'docker  | Machine "{self.machine_name}" HALT')
        await self._run("docker-machine", "stop", self.machine_name)

    def _confirm(self, question: str) -> bool:
        return self.prompter is not None and self.prompter.confirm(question)

    async def export_env(self):
        """Load ``docker-machine env`` exports into the process environment."""
        for _ in range(ENV_ATTEMPTS):
            result = await self._run("docker-machine", "env", self.machine_name, check=False)
            output = result.stdout + result.stderr
            if "regenerate-certs" in output or "Could not read CA certificate" in output:
                await self._run("docker-machine", "regenerate-certs", "-f", self.machine_name)
            elif "Error checking TLS connection:" not in output:
                break
            await asyncio.sleep(self.retry_delay)
        else:
            raise MachineError("Error checking TLS connection: Host is not running")

        self.environ.update(parse_env_exports(result.stdout))
        if not self.environ.get("DOCKER_HOST"):
            raise MachineError("docker-host not found")
        logger.info(f"docker  | {self.environ['DOCKER_HOST']}")

    async def wait_ready(self):
        """Poll ``docker info`` until the daemon answers."""
        for _ in range(READY_ATTEMPTS):
            result = await self._run(self.docker_bin, "info", check=False)
            if result.returncode == 0 and _READY.search(result.stdout):
                logger.info("docker  | engine ready")
                return
            await asyncio.sleep(self.retry_delay)
        raise MachineError("Please check your docker connection and try again.")

    async def run_init_scripts(self):
        for index, script in enumerate(self.environment.init_scripts):
            await self._run("docker-machine", "ssh", self.machine_name, script)
            logger.info(f"{'init' if index == 0 else '':<7} | {script}")

    async def ip(self) -> str:
        """Guest IP of the VM; empty on a native Linux host or when unknown."""
        if self.is_linux:
            return ""
        result = await self._run("docker-machine", "ip", self.machine_name, check=False)
        if result.returncode != 0:
            logger.warning(f"docker  | guest ip not found: {result.stderr.strip()}")
            return ""
        return result.stdout.strip()
