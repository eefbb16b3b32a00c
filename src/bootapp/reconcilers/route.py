"""Host route reconciliation."""

import logging
from typing import Iterable, List, Tuple

from bootapp.context import ReconcileContext
from bootapp.docker.client import DockerClient
from bootapp.errors import CommandFailed, RouteSetupFailed
from bootapp.utils.process import run_command


logger = logging.getLogger(__name__)


class RouteReconciler:
    """Routes project subnets through the VM on hosts that need it."""

    def __init__(self, docker: DockerClient, runner=None):
        self.docker = docker
        self._runner = runner or run_command

    async def reconcile(self, context: ReconcileContext, network_names: Iterable[str]) -> List[Tuple[str, str]]:
        """Replace the host route of each network's subnet; no-op on Linux."""
        if context.is_linux:
            logger.debug("Containers are reachable directly, skipping routes")
            return []

        routes = []
        for name in network_names:
            view = await self.docker.inspect_network(name)
            if view is None or not view.subnets:
                raise RouteSetupFailed(f"guest subnet ip not found for network {name}")
            subnet = view.subnets[-1]

            if not context.machine_ip:
                raise RouteSetupFailed("guest ip not found")

            logger.info(f"route   | add {subnet} {context.machine_ip}")
            await self._runner(
                ["sudo", "route", "-n", "delete", subnet, context.machine_ip], check=False
            )
            try:
                await self._runner(["sudo", "route", "-n", "add", subnet, context.machine_ip])
            except CommandFailed as e:
                raise RouteSetupFailed(f"route add {subnet} {context.machine_ip} failed: {e}") from e
            routes.append((subnet, context.machine_ip))
        return routes

    async def remove(self, context: ReconcileContext, subnets: Iterable[str]) -> List[str]:
        """Drop the host routes of ``subnets``; a missing route is not an error."""
        if context.is_linux:
            return []

        removed = []
        for subnet in subnets:
            result = await self._runner(["sudo", "route", "-n", "delete", "-net", subnet], check=False)
            if result.returncode == 0:
                logger.info(f"route   | delete {subnet}")
                removed.append(subnet)
        return removed
