"""Command orchestration."""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from rich.console import Console

from bootapp.cert import CertManager
from bootapp.compose.loader import ProjectLoader
from bootapp.compose.translator import ATTACH, DETACH, validate_manifest
from bootapp.context import ReconcileContext, is_linux_host
from bootapp.docker.client import DockerClient
from bootapp.errors import BootappError
from bootapp.machine import MachineManager
from bootapp.models.config import BootappSettings, BootfileConfig
from bootapp.models.runtime import PROJECT_LABEL, RunningContainerView
from bootapp.network.reconciler import NetworkReconciler
from bootapp.network.subnet import SubnetAllocator, SubnetRegistry
from bootapp.prompt import PolicyPrompter, Prompter
from bootapp.reconcilers.containers import ContainerReconciler
from bootapp.reconcilers.hosts import HostsFileReconciler
from bootapp.reconcilers.route import RouteReconciler
from bootapp.reconcilers.supervisor import LogStreamSupervisor


logger = logging.getLogger(__name__)

LS_COLUMNS = ("service", "image", "status", "ip", "ports", "domain")


class BootappEngine:
    """Runs ``up``, ``ls`` and ``down`` for the project around ``cwd``."""

    def __init__(
        self,
        settings: Optional[BootappSettings] = None,
        prompter: Optional[Prompter] = None,
        cwd: Optional[Path] = None,
        runner=None,
        is_linux: Optional[bool] = None,
        console: Optional[Console] = None,
    ):
        """Initialize engine."""
        self.settings = settings or BootappSettings()
        self.prompter = prompter or PolicyPrompter()
        self.cwd = Path(cwd or Path.cwd())
        self.runner = runner
        self.is_linux = is_linux_host() if is_linux is None else is_linux
        self.console = console

        self.loader = ProjectLoader(self.settings.bootfile_name)
        self.docker = DockerClient(self.settings.docker_bin, runner=runner)
        self.allocator = SubnetAllocator(SubnetRegistry(self.settings.registry_file))
        self.networks = NetworkReconciler(self.docker, self.allocator, self.prompter)
        self.containers = ContainerReconciler(
            self.docker,
            self.networks,
            self.loader,
            self.prompter,
            audit_log_name=self.settings.audit_log_name,
        )
        self.hosts = HostsFileReconciler(
            self.docker,
            hosts_path=Path(self.settings.hosts_path),
            use_sudo=self.settings.use_sudo,
            runner=runner,
        )
        self.routes = RouteReconciler(self.docker, runner=runner)
        self.certs = CertManager(runner=runner)

    def load_project(self) -> Tuple[BootfileConfig, ReconcileContext]:
        """Read the Bootfile and build the context for this command."""
        bootfile = self.loader.find_bootfile(self.cwd)
        config = self.loader.load_bootfile(bootfile)
        context = ReconcileContext(
            cwd=bootfile.parent,
            machine_name=config.machine_name,
            project_name=config.project_name or "",
            stage_name=config.stage_name,
            is_linux=self.is_linux,
        )
        return config, context

    def machine(self, config: BootfileConfig) -> MachineManager:
        return MachineManager(
            config.machine_name,
            environment=config.environment,
            prompter=self.prompter,
            is_linux=self.is_linux,
            runner=self.runner,
            docker_bin=self.settings.docker_bin,
        )

    async def up(self, mode: str = DETACH, pull: bool = False) -> List[RunningContainerView]:
        """Manifest, machine, certificates, containers, routes, hosts.

        The manifest is validated before any external command runs. In
        attach mode this keeps streaming container output until the streams
        end or the session is stopped.
        """
        config, context = self.load_project()

        manifest = self.loader.load_manifest(context.cwd, config)
        validate_manifest(manifest, context)

        machine = self.machine(config)
        await machine.init()

        await self.certs.install(manifest, context)

        supervisor = None
        if mode == ATTACH:
            supervisor = LogStreamSupervisor(self.docker, context, console=self.console)

        try:
            views = await self.containers.run(manifest, context, mode=mode, pull=pull, supervisor=supervisor)

            context.machine_ip = await machine.ip()
            await self.routes.reconcile(context, context.network_names)

            names = [context.container_name(s.service_name) for s in manifest.services.values()]
            await self.hosts.reconcile(context, names)
        except BaseException:
            if supervisor:
                await supervisor.shutdown()
            raise

        if supervisor:
            supervisor.install_signal_handlers()
            await supervisor.wait()

        return views

    async def ls(self, show_all: bool = False) -> List[Dict[str, str]]:
        """Rows for the project's running containers.

        Without ``show_all`` a container with several ports or domains gets
        one row per port/domain pair, the later rows carrying only those
        two columns. With ``show_all`` each container yields one mapping of
        every known field.
        """
        _, context = self.load_project()
        if not context.project_name:
            return []

        views = {
            view.id: view
            for view in await self.docker.running_containers()
            if view.project == context.project_name
        }

        rows = []
        for entry in await self.docker.list_containers():
            view = views.get(entry.id)
            if view is None:
                continue

            if show_all:
                details = entry.model_dump(exclude={"labels"})
                details.update(
                    name=view.name,
                    service=view.service,
                    ip=view.ip,
                    domain=view.domain,
                    created=view.created,
                )
                rows.append({key: str(value) for key, value in details.items()})
                continue

            ports = entry.port_list or [""]
            domains = view.domains or [""]
            for index in range(max(len(ports), len(domains))):
                first = index == 0
                rows.append({
                    "service": view.service if first else "",
                    "image": entry.image if first else "",
                    "status": entry.status if first else "",
                    "ip": view.ip if first else "",
                    "ports": ports[index] if index < len(ports) else "",
                    "domain": domains[index] if index < len(domains) else "",
                })
        return rows

    async def down(self) -> List[str]:
        """Remove the project's containers, hosts lines and host route."""
        _, context = self.load_project()
        if not context.project_name:
            raise BootappError("project_name is not set in the Bootfile")

        ids = await self.docker.container_ids(
            all_containers=True, labels=[f"{PROJECT_LABEL}={context.project_name}"]
        )
        await self.docker.remove_containers(ids)
        await self.hosts.remove(context)

        subnet = self.allocator.registry.lookup(context.machine_name, context.project_name)
        if subnet:
            await self.routes.remove(context, [subnet])
        logger.info(f"Removed {len(ids)} containers of {context.project_name}")
        return ids
