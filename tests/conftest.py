"""Shared fixtures."""

import json
from typing import Dict, List, Optional

import pytest

from bootapp.context import ReconcileContext
from bootapp.docker.client import DockerClient
from bootapp.errors import CommandFailed
from bootapp.utils.process import CommandResult


class RecordingRunner:
    """Stands in for run_command: records argv, answers by longest matching prefix.

    Several results registered for one prefix are handed out in order, the
    last one repeating.
    """

    def __init__(self):
        self.calls: List[List[str]] = []
        self.inputs: List[Optional[str]] = []
        self.kwargs: List[Dict] = []
        self._responses: Dict[tuple, List[CommandResult]] = {}

    def on(self, *prefix: str, stdout: str = "", stderr: str = "", returncode: int = 0):
        self._responses.setdefault(tuple(prefix), []).append(
            CommandResult(returncode=returncode, stdout=stdout, stderr=stderr)
        )
        return self

    def _lookup(self, cmd: List[str]) -> CommandResult:
        best = None
        for prefix in self._responses:
            if tuple(cmd[:len(prefix)]) == prefix and (best is None or len(prefix) > len(best)):
                best = prefix
        if best is None:
            return CommandResult(returncode=0)
        results = self._responses[best]
        return results.pop(0) if len(results) > 1 else results[0]

    async def __call__(self, cmd, check=True, capture_output=True, timeout=None, input=None, **kwargs):
        self.calls.append(list(cmd))
        self.inputs.append(input)
        self.kwargs.append(kwargs)
        result = self._lookup(list(cmd))
        if check and result.returncode != 0:
            raise CommandFailed(cmd, result.returncode, result.stdout, result.stderr)
        return result

    def commands(self, *prefix: str) -> List[List[str]]:
        """Recorded calls starting with ``prefix``."""
        return [call for call in self.calls if tuple(call[:len(prefix)]) == prefix]


@pytest.fixture
def runner():
    return RecordingRunner()


@pytest.fixture
def docker(runner):
    return DockerClient(runner=runner)


@pytest.fixture
def context(tmp_path):
    return ReconcileContext(
        cwd=tmp_path,
        machine_name="bootapp-docker-machine",
        project_name="demo",
        is_linux=True,
    )


@pytest.fixture
def network_json():
    """Build ``docker network inspect`` output."""
    def build(*networks):
        return json.dumps([
            {
                "Name": name,
                "Id": f"id-{name}",
                "Driver": "bridge",
                "IPAM": {"Config": [{"Subnet": subnet} for subnet in subnets]},
            }
            for name, subnets in networks
        ])
    return build


@pytest.fixture
def container_json():
    """Build ``docker inspect`` output for containers."""
    def build(*containers):
        return json.dumps([
            {
                "Id": c.get("id", f"id-{c['name']}"),
                "Name": f"/{c['name']}",
                "Created": "2024-01-01T00:00:00Z",
                "State": {"Status": c.get("status", "running")},
                "Config": {
                    "Image": c.get("image", "nginx"),
                    "Labels": c.get("labels", {}),
                    "Env": [f"{k}={v}" for k, v in c.get("env", {}).items()],
                },
                "NetworkSettings": {
                    "Networks": {
                        c.get("network", "default[demo]"): {"IPAddress": c.get("ip", "")},
                    },
                },
            }
            for c in containers
        ])
    return build
