"""Container reconciliation."""

import logging
import shlex
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Set

from bootapp.compose.loader import ProjectLoader
from bootapp.compose.translator import ATTACH, DETACH, build_command, translate, validate_manifest
from bootapp.context import ReconcileContext
from bootapp.docker.client import DockerClient
from bootapp.errors import BuildFailed, CommandFailed, PullFailed, ValidationError, first_line
from bootapp.models.config import BootfileConfig
from bootapp.models.manifest import ComposeManifest, ServiceSpec
from bootapp.models.runtime import PROJECT_LABEL, RunningContainerView
from bootapp.network.reconciler import NetworkReconciler
from bootapp.prompt import Prompter
from bootapp.reconcilers.supervisor import LogStreamSupervisor


logger = logging.getLogger(__name__)


class ContainerReconciler:
    """Replaces a project's containers with freshly created ones."""

    def __init__(
        self,
        docker: DockerClient,
        networks: NetworkReconciler,
        loader: ProjectLoader,
        prompter: Prompter,
        audit_log_name: str = ".bootapp.log",
    ):
        """Initialize container reconciler."""
        self.docker = docker
        self.networks = networks
        self.loader = loader
        self.prompter = prompter
        self.audit_log_name = audit_log_name

    async def run(
        self,
        manifest: ComposeManifest,
        context: ReconcileContext,
        mode: str = DETACH,
        pull: bool = False,
        supervisor: Optional[LogStreamSupervisor] = None,
    ) -> List[RunningContainerView]:
        """Pull, build, remove, network, create, in that order.

        Nothing is run against the docker daemon before every build section
        has been validated. A failed create aborts the whole run.
        """
        validate_manifest(manifest, context)
        if mode == ATTACH and supervisor is None:
            raise ValidationError("attach mode needs a log stream supervisor")

        if not context.project_name:
            context.project_name = await self.ask_project_name()
            self.loader.save_project_name(context.cwd / self.loader.bootfile_name, context.project_name)

        logger.info(f"machine | {context.machine_name}")
        logger.info(f"project | {context.project_name}")
        logger.info(f"stage   | {context.stage_name}")

        skipped: Set[str] = set()
        if pull:
            skipped.update(await self._pull(manifest))
        skipped.update(await self._build(manifest, context))

        for service in manifest.services.values():
            await self.docker.remove_container(context.container_name(service.service_name))
        logger.info(f"remove  | {' '.join(s.service_name for s in manifest.services.values())}")

        await self.networks.reconcile_all(manifest, context)

        for key, service in manifest.services.items():
            if key in skipped:
                logger.warning(f"Skipping {service.service_name}")
                continue
            await self._create(service, context, mode, supervisor)

        return await self.project_containers(context)

    async def ask_project_name(self) -> str:
        """Ask until the operator gives a name no container is labelled with."""
        while True:
            name = self.prompter.ask("Please project a name")
            try:
                name = BootfileConfig(project_name=name).project_name
            except ValueError as e:
                logger.warning(f"Name invalid. {e}")
                continue
            if not name:
                logger.warning("Name invalid.")
                continue
            existing = await self.docker.container_ids(
                all_containers=True, labels=[f"{PROJECT_LABEL}={name}"]
            )
            if not existing:
                return name
            logger.warning(f"Name invalid. {name} is already in use")

    async def _pull(self, manifest: ComposeManifest) -> List[str]:
        failed = []
        for key, service in manifest.services.items():
            if service.build is not None or not service.image:
                continue
            try:
                await self.docker.pull(service.image)
                logger.info(f"pull    | {service.service_name}")
            except CommandFailed as e:
                logger.error(str(PullFailed(f"pull failed for {service.image}: {first_line(e.stderr)}")))
                failed.append(key)
        return failed

    async def _build(self, manifest: ComposeManifest, context: ReconcileContext) -> List[str]:
        failed = []
        for key, service in manifest.services.items():
            if service.build is None:
                continue
            try:
                await self.docker.run(build_command(service, context), cwd=context.cwd)
                logger.info(f"build   | {service.service_name}")
            except CommandFailed as e:
                logger.error(str(BuildFailed(service.service_name, first_line(e.stderr or e.stdout))))
                failed.append(key)
        return failed

    async def resolve_links(self, service: ServiceSpec, context: ReconcileContext) -> Dict[str, str]:
        """Host entries for linked containers that already exist."""
        hosts: Dict[str, str] = {}
        for link in service.links:
            canonical = context.container_name(link)
            view = await self.docker.inspect_container(canonical)
            if view is None:
                continue
            ip = view.networks.get(context.primary_network or "") or view.ip
            if not ip:
                continue
            if view.service:
                hosts[view.service] = ip
            hosts[canonical] = ip
        return hosts

    async def _create(
        self,
        service: ServiceSpec,
        context: ReconcileContext,
        mode: str,
        supervisor: Optional[LogStreamSupervisor],
    ):
        name = context.container_name(service.service_name)
        link_hosts = await self.resolve_links(service, context)
        argv = translate(service, context, mode, link_hosts=link_hosts)

        self.audit(context.cwd, argv)
        await self.docker.execute(argv, cwd=context.cwd)
        logger.info(f"{'start' if mode == ATTACH else 'run':<7} | {service.service_name}")

        if mode == ATTACH:
            await self.docker.start(name)
            await supervisor.spawn(name, self.docker.log_stream_command(name))

    def audit(self, project_root: Path, argv: List[str]):
        """Append the command line to the project's audit log."""
        path = Path(project_root) / self.audit_log_name
        stamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        with path.open("a") as f:
            f.write(f"{stamp}\n{shlex.join(argv)}\n\n")

    async def project_containers(self, context: ReconcileContext) -> List[RunningContainerView]:
        ids = await self.docker.container_ids(
            all_containers=True, labels=[f"{PROJECT_LABEL}={context.project_name}"]
        )
        return await self.docker.inspect_containers(ids)
