"""Tests for network reconciliation."""

import random

import pytest

from bootapp.errors import NetworkConflict, NetworkNotFound
from bootapp.models.manifest import ComposeManifest, NetworkSpec
from bootapp.network.reconciler import NetworkReconciler
from bootapp.network.subnet import SubnetAllocator, SubnetRegistry
from bootapp.prompt import PolicyPrompter


EXPLICIT = NetworkSpec(name="default", ipam={"config": [{"subnet": "10.9.0.0/16"}]})


@pytest.fixture
def allocator(tmp_path):
    return SubnetAllocator(SubnetRegistry(tmp_path / "subnets.yaml"), rng=random.Random(1))


def existing(runner, network_json, *networks):
    """Register the runtime's current networks."""
    ids = " ".join(f"id-{name}" for name, _ in networks)
    runner.on("docker", "network", "ls", "-q", stdout="\n".join(f"id-{name}" for name, _ in networks))
    runner.on("docker", "network", "inspect", *ids.split(), stdout=network_json(*networks))


@pytest.mark.asyncio
class TestNetworkReconciler:
    """Test network recreation and conflict handling."""

    async def test_creates_project_default(self, runner, docker, context, allocator, network_json):
        existing(runner, network_json, ("bridge", ["172.17.0.0/16"]))
        runner.on("docker", "network", "inspect", "bridge", stdout=network_json(("bridge", ["172.17.0.0/16"])))
        runner.on("docker", "network", "inspect", "default[demo]", stdout=network_json(("default[demo]", ["172.40.0.0/16"])))
        reconciler = NetworkReconciler(docker, allocator, PolicyPrompter())

        subnets = await reconciler.reconcile(NetworkSpec(name="default"), context)

        assert subnets == ["172.40.0.0/16"]
        create = runner.commands("docker", "network", "create")
        assert len(create) == 1
        assert create[0][3] == "--driver=bridge"
        assert create[0][-1] == "default[demo]"
        allocated = allocator.registry.lookup("bootapp-docker-machine", "demo")
        assert create[0][4] == f"--subnet={allocated}"
        assert allocated != "172.17.0.0/16"

    async def test_same_name_removed_first(self, runner, docker, context, allocator, network_json):
        existing(runner, network_json, ("default[demo]", ["10.9.0.0/16"]))
        runner.on("docker", "network", "inspect", "default[demo]", stdout=network_json(("default[demo]", ["10.9.0.0/16"])))
        prompter = PolicyPrompter(allow=False)
        reconciler = NetworkReconciler(docker, allocator, prompter)

        await reconciler.reconcile(EXPLICIT, context)

        assert prompter.questions == []
        assert runner.commands("docker", "network", "rm") == [["docker", "network", "rm", "default[demo]"]]
        rm_index = runner.calls.index(["docker", "network", "rm", "default[demo]"])
        create_index = runner.calls.index(runner.commands("docker", "network", "create")[0])
        assert rm_index < create_index

    async def test_conflict_declined(self, runner, docker, context, allocator, network_json):
        """Declining leaves the foreign network alone and creates nothing."""
        existing(runner, network_json, ("legacy", ["10.9.0.0/16"]))
        prompter = PolicyPrompter(allow=False)
        reconciler = NetworkReconciler(docker, allocator, prompter)

        with pytest.raises(NetworkConflict) as exc_info:
            await reconciler.reconcile(EXPLICIT, context)

        assert str(exc_info.value) == "default[demo] conflicts with network legacy, subnet 10.9.0.0/16"
        assert prompter.questions == ["default[demo] conflicts with network legacy, subnet 10.9.0.0/16. delete?"]
        assert runner.commands("docker", "network", "create") == []
        assert runner.commands("docker", "network", "rm") == []

    async def test_conflict_accepted(self, runner, docker, context, allocator, network_json):
        existing(runner, network_json, ("legacy", ["10.9.0.0/16"]))
        runner.on("docker", "network", "inspect", "default[demo]", stdout=network_json(("default[demo]", ["10.9.0.0/16"])))
        reconciler = NetworkReconciler(docker, allocator, PolicyPrompter(allow=True))

        subnets = await reconciler.reconcile(EXPLICIT, context)

        assert subnets == ["10.9.0.0/16"]
        assert runner.commands("docker", "network", "rm") == [["docker", "network", "rm", "legacy"]]
        assert runner.commands("docker", "network", "create") == [
            ["docker", "network", "create", "--driver=bridge", "--subnet=10.9.0.0/16", "default[demo]"]
        ]

    async def test_missing_after_create(self, runner, docker, context, allocator, network_json):
        existing(runner, network_json, ("bridge", ["172.17.0.0/16"]))
        runner.on("docker", "network", "inspect", "default[demo]", returncode=1, stderr="No such network")
        reconciler = NetworkReconciler(docker, allocator, PolicyPrompter())

        with pytest.raises(NetworkNotFound):
            await reconciler.reconcile(EXPLICIT, context)

    async def test_reconcile_all_records_names(self, runner, docker, context, allocator, network_json):
        existing(runner, network_json, ("bridge", ["172.17.0.0/16"]))
        runner.on("docker", "network", "inspect", "front", stdout=network_json(("front", ["10.1.0.0/16"])))
        runner.on("docker", "network", "inspect", "back", stdout=network_json(("back", ["10.2.0.0/16"])))
        manifest = ComposeManifest(networks={
            "front": {"ipam": {"config": [{"subnet": "10.1.0.0/16"}]}},
            "back": {"ipam": {"config": [{"subnet": "10.2.0.0/16"}]}},
        })
        reconciler = NetworkReconciler(docker, allocator, PolicyPrompter())

        names = await reconciler.reconcile_all(manifest, context)

        assert names == ["front", "back"]
        assert context.network_names == ["front", "back"]
        assert context.primary_network == "front"
