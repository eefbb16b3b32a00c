"""Tests for subnet allocation."""

import random
import re
from concurrent.futures import ThreadPoolExecutor

import pytest

from bootapp.errors import AllocationExhausted
from bootapp.network.subnet import SubnetAllocator, SubnetRegistry


@pytest.fixture
def registry(tmp_path):
    return SubnetRegistry(tmp_path / ".docker" / "docker-machine-subnet.yaml")


@pytest.fixture
def allocator(registry):
    return SubnetAllocator(registry, rng=random.Random(42))


class TestSubnetAllocator:
    """Test subnet allocation and persistence."""

    def test_explicit_wins(self, allocator, registry):
        assert allocator.allocate("m", "shop", ["10.1.0.0/16"]) == ["10.1.0.0/16"]
        assert not registry.path.exists()

    def test_allocation_is_persisted(self, allocator, registry):
        subnets = allocator.allocate("m", "shop")

        assert len(subnets) == 1
        assert subnets[0].startswith("172.") and subnets[0].endswith(".0.0/16")
        assert registry.load() == {"m": {"shop": subnets[0]}}

    def test_stable_across_calls(self, allocator):
        first = allocator.allocate("m", "shop")
        second = allocator.allocate("m", "shop", reserved=[first[0]])

        assert first == second

    def test_stable_across_allocators(self, allocator, registry):
        first = allocator.allocate("m", "shop")
        assert SubnetAllocator(registry).allocate("m", "shop") == first

    def test_projects_never_share(self, allocator):
        seen = set()
        for index in range(50):
            subnet = allocator.allocate("m", f"p{index}")[0]
            assert subnet not in seen
            seen.add(subnet)

    def test_unique_across_machines(self, allocator, registry):
        a = allocator.allocate("m1", "shop")[0]
        b = allocator.allocate("m2", "shop")[0]

        assert a != b
        assert registry.lookup("m1", "shop") == a
        assert registry.lookup("m2", "shop") == b

    def test_bridge_excluded(self, registry):
        taken = {f"172.{i}.0.0/16" for i in range(256)} - {"172.17.0.0/16", "172.99.0.0/16"}
        registry.save({"other": {f"p{i}": subnet for i, subnet in enumerate(sorted(taken))}})

        allocator = SubnetAllocator(registry, rng=random.Random(7))
        subnet = allocator.allocate("m", "shop", reserved=["172.17.0.0/16"])

        assert subnet == ["172.99.0.0/16"]

    def test_exhausted(self, registry):
        registry.save({"other": {f"p{i}": f"172.{i}.0.0/16" for i in range(256)}})

        with pytest.raises(AllocationExhausted):
            SubnetAllocator(registry).allocate("m", "shop")

    def test_registry_file_keeps_other_entries(self, allocator, registry):
        registry.save({"m": {"old": "172.5.0.0/16"}})

        allocator.allocate("m", "shop")

        data = registry.load()
        assert data["m"]["old"] == "172.5.0.0/16"
        assert "shop" in data["m"]

    def test_empty_registry_file(self, registry, allocator):
        registry.path.parent.mkdir(parents=True)
        registry.path.write_text("")

        assert registry.load() == {}
        assert allocator.allocate("m", "shop")

    def test_concurrent_allocators_keep_file_valid(self, registry):
        """Racing writers may lose entries but never leave a broken file."""
        def allocate(index):
            own = SubnetAllocator(SubnetRegistry(registry.path), rng=random.Random(index))
            return own.allocate("m", f"p{index}")[0]

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(allocate, range(20)))

        assert len(results) == 20
        data = SubnetRegistry(registry.path).load()
        assert data["m"]
        for project, subnet in data["m"].items():
            assert re.fullmatch(r"172\.(\d{1,3})\.0\.0/16", subnet)
            assert subnet == results[int(project[1:])]
        assert not list(registry.path.parent.glob("*.tmp"))
