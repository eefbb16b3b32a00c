"""Per-project subnet allocation."""

import logging
import os
import random
import tempfile
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from bootapp.errors import AllocationExhausted, ValidationError


logger = logging.getLogger(__name__)

SUBNET_TEMPLATE = "172.{}.0.0/16"
SUBNET_CANDIDATES = 256


class SubnetRegistry:
    """``{machine: {project: cidr}}`` mapping persisted as YAML.

    The file is only rewritten when an allocation adds an entry; entries are
    never pruned.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self.yaml = YAML()

    def load(self) -> Dict[str, Dict[str, str]]:
        if not self.path.is_file():
            return {}
        try:
            data = self.yaml.load(self.path.read_text())
        except YAMLError as e:
            raise ValidationError(f"Invalid subnet registry {self.path}: {e}") from e
        if not isinstance(data, dict):
            return {}
        registry: Dict[str, Dict[str, str]] = {}
        for machine, projects in data.items():
            if isinstance(projects, dict):
                registry[str(machine)] = {str(p): str(c) for p, c in projects.items()}
        return registry

    def save(self, registry: Dict[str, Dict[str, str]]):
        """Atomically replace the registry file."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                self.yaml.dump(registry, f)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def lookup(self, machine: str, project: str) -> Optional[str]:
        return self.load().get(machine, {}).get(project)


class SubnetAllocator:
    """Picks a free ``172.X.0.0/16`` for projects without an explicit subnet."""

    def __init__(self, registry: SubnetRegistry, rng: Optional[random.Random] = None):
        self.registry = registry
        self.rng = rng or random.Random()

    def allocate(
        self,
        machine: str,
        project: str,
        explicit: Sequence[str] = (),
        reserved: Iterable[str] = (),
    ) -> List[str]:
        """Return the subnets a project network should be created with."""
        if explicit:
            return list(explicit)

        registry = self.registry.load()
        existing = registry.get(machine, {}).get(project)
        if existing:
            logger.debug(f"Reusing subnet {existing} for {machine}/{project}")
            return [existing]

        taken = set(reserved)
        for projects in registry.values():
            taken.update(projects.values())

        for octet in self.rng.sample(range(SUBNET_CANDIDATES), SUBNET_CANDIDATES):
            subnet = SUBNET_TEMPLATE.format(octet)
            if subnet not in taken:
                break
        else:
            raise AllocationExhausted(f"No free subnet left for {machine}/{project}")

        registry.setdefault(machine, {})[project] = subnet
        self.registry.save(registry)
        logger.info(f"Allocated subnet {subnet} for {machine}/{project}")
        return [subnet]
