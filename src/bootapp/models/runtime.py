"""Typed views of runtime state reported by the Docker CLI."""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field


PROJECT_LABEL = "com.docker.bootapp.project"
SERVICE_LABEL = "com.docker.bootapp.service"
DOMAIN_LABEL = "com.docker.bootapp.domain"


class NetworkView(BaseModel):
    """A runtime network and its IPAM subnets."""
    name: str
    id: str = ""
    driver: str = ""
    subnets: List[str] = Field(default_factory=list)
    gateway: Optional[str] = None


class RunningContainerView(BaseModel):
    """A container as reported by ``docker inspect``."""
    id: str
    name: str
    image: str = ""
    status: str = ""
    created: str = ""
    networks: Dict[str, str] = Field(default_factory=dict, description="Network name to IP")
    labels: Dict[str, str] = Field(default_factory=dict)
    env: Dict[str, str] = Field(default_factory=dict)

    @property
    def ip(self) -> str:
        """First non-empty IP across networks."""
        for address in self.networks.values():
            if address:
                return address
        return ""

    @property
    def service(self) -> str:
        return self.labels.get(SERVICE_LABEL, "")

    @property
    def project(self) -> str:
        return self.labels.get(PROJECT_LABEL, "")

    @property
    def domain(self) -> str:
        """DOMAIN from the container's live environment."""
        return self.env.get("DOMAIN", "")

    @property
    def domains(self) -> List[str]:
        return self.domain.split()


class ContainerListEntry(BaseModel):
    """A row of ``docker ps``."""
    id: str
    image: str = ""
    command: str = ""
    created_at: str = ""
    running_for: str = ""
    ports: str = ""
    status: str = ""
    size: str = ""
    names: str = ""
    labels: Dict[str, str] = Field(default_factory=dict)

    @property
    def port_list(self) -> List[str]:
        """Individual published port mappings."""
        return [p.strip() for p in self.ports.split(",") if p.strip()]
