"""Reconcilers that bring runtime and host state in line with a project."""

from bootapp.reconcilers.containers import ContainerReconciler
from bootapp.reconcilers.hosts import HostEntry, HostsFileReconciler, rewrite_hosts
from bootapp.reconcilers.route import RouteReconciler
from bootapp.reconcilers.supervisor import LogStreamSupervisor

__all__ = [
    "ContainerReconciler",
    "HostEntry",
    "HostsFileReconciler",
    "rewrite_hosts",
    "RouteReconciler",
    "LogStreamSupervisor",
]
