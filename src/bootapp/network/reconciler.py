"""Project network reconciliation."""

import logging
from typing import List

from bootapp.context import ReconcileContext
from bootapp.docker.client import DockerClient
from bootapp.errors import NetworkConflict, NetworkNotFound
from bootapp.models.manifest import ComposeManifest, NetworkSpec
from bootapp.network.subnet import SubnetAllocator
from bootapp.prompt import Prompter


logger = logging.getLogger(__name__)


class NetworkReconciler:
    """Recreates project networks on non-conflicting subnets."""

    def __init__(self, docker: DockerClient, allocator: SubnetAllocator, prompter: Prompter):
        self.docker = docker
        self.allocator = allocator
        self.prompter = prompter

    async def reconcile(self, spec: NetworkSpec, context: ReconcileContext) -> List[str]:
        """Recreate one network and return the subnets it ended up with.

        A same-named network is always removed first. Any other network that
        holds one of the intended subnets is removed only if the operator
        agrees; otherwise :class:`NetworkConflict` is raised before anything
        is created.
        """
        name = spec.resolved_name(context.project_name)
        networks = await self.docker.list_networks()

        if name in networks:
            logger.info(f"Removing existing network {name}")
            await self.docker.remove_network(name)
            del networks[name]

        explicit = spec.subnets
        reserved = []
        if not explicit:
            bridge = await self.docker.bridge_subnet()
            if bridge:
                reserved.append(bridge)
        subnets = self.allocator.allocate(
            context.machine_name, context.project_name, explicit, reserved=reserved
        )

        for other, view in networks.items():
            for subnet in subnets:
                if subnet not in view.subnets:
                    continue
                conflict = NetworkConflict(name, other, subnet)
                logger.warning(str(conflict))
                if not self.prompter.confirm(f"{conflict}. delete?"):
                    raise conflict
                logger.info(f"Removing conflicting network {other}")
                await self.docker.remove_network(other)

        await self.docker.create_network(name, subnets, driver="bridge")

        view = await self.docker.inspect_network(name)
        if view is None or not view.subnets:
            raise NetworkNotFound(f"network {name} not found")

        logger.info(f"network | recreate {name}, subnet {' '.join(view.subnets)}")
        return view.subnets

    async def reconcile_all(self, manifest: ComposeManifest, context: ReconcileContext) -> List[str]:
        """Reconcile every declared network and record the realized names."""
        names = []
        for spec in manifest.network_specs():
            await self.reconcile(spec, context)
            names.append(spec.resolved_name(context.project_name))
        context.network_names = names
        return names
