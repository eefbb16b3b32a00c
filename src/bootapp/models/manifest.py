"""Compose manifest models."""

from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _scalar(value: Any) -> str:
    """Render a YAML scalar the way it is passed on a command line."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _string_list(value: Any) -> List[str]:
    """Coerce a scalar or a list of scalars to a list of strings."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [_scalar(item) for item in value]
    return [_scalar(value)]


def _key_value_mapping(value: Any) -> Dict[str, Any]:
    """Normalize the compose ``["K=V", ...]`` list form to a mapping."""
    if value is None:
        return {}
    if isinstance(value, dict):
        return dict(value)
    result: Dict[str, Any] = {}
    for item in value:
        key, sep, val = str(item).partition("=")
        result[key] = val if sep else None
    return result


class BuildSpec(BaseModel):
    """Structured ``build`` section."""
    context: Optional[str] = None
    dockerfile: Optional[str] = None
    args: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="allow")

    @field_validator("args", mode="before")
    @classmethod
    def normalize_args(cls, v):
        """Accept both list and mapping forms."""
        return _key_value_mapping(v)


class LoggingSpec(BaseModel):
    """Logging driver configuration."""
    driver: Optional[str] = None
    options: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("options", mode="before")
    @classmethod
    def normalize_options(cls, v):
        return v or {}


class ServiceNetwork(BaseModel):
    """Per-service attachment options for one network."""
    ipv4_address: Optional[str] = None
    ipv6_address: Optional[str] = None
    aliases: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")


class ServiceSpec(BaseModel):
    """A single service of the compose manifest."""
    key: Optional[str] = Field(default=None, exclude=True, description="Manifest key")
    name: Optional[str] = None
    image: Optional[str] = None
    build: Optional[Union[str, BuildSpec]] = None
    command: Optional[Union[str, List[str]]] = None
    entrypoint: Optional[Union[str, List[str]]] = None
    environment: Dict[str, Any] = Field(default_factory=dict)
    env_file: List[str] = Field(default_factory=list)
    ports: List[str] = Field(default_factory=list)
    expose: List[str] = Field(default_factory=list)
    volumes: List[str] = Field(default_factory=list)
    volumes_from: List[str] = Field(default_factory=list)
    links: List[str] = Field(default_factory=list)
    extra_hosts: List[str] = Field(default_factory=list)
    networks: Dict[str, ServiceNetwork] = Field(default_factory=dict)
    dns: List[str] = Field(default_factory=list)
    labels: Dict[str, str] = Field(default_factory=dict)
    logging: Optional[LoggingSpec] = None
    restart: Optional[str] = None
    user: Optional[str] = None
    hostname: Optional[str] = None
    working_dir: Optional[str] = None
    net: Optional[str] = None
    privileged: bool = False
    tty: bool = False

    model_config = ConfigDict(extra="allow")

    @model_validator(mode="before")
    @classmethod
    def normalize_aliases(cls, data):
        """Fold the ``env-file`` spelling into ``env_file``."""
        if isinstance(data, dict) and "env-file" in data:
            data = dict(data)
            data["env_file"] = _string_list(data.get("env_file")) + _string_list(data.pop("env-file"))
        return data

    @field_validator("environment", mode="before")
    @classmethod
    def normalize_environment(cls, v):
        return _key_value_mapping(v)

    @field_validator("labels", mode="before")
    @classmethod
    def normalize_labels(cls, v):
        return {key: _scalar(val) for key, val in _key_value_mapping(v).items()}

    @field_validator(
        "env_file", "ports", "expose", "volumes", "volumes_from", "links", "dns",
        mode="before",
    )
    @classmethod
    def normalize_string_lists(cls, v):
        return _string_list(v)

    @field_validator("extra_hosts", mode="before")
    @classmethod
    def normalize_extra_hosts(cls, v):
        """Mapping form ``{host: ip}`` becomes ``host:ip``."""
        if isinstance(v, dict):
            return [f"{host}:{ip}" for host, ip in v.items()]
        return _string_list(v)

    @field_validator("networks", mode="before")
    @classmethod
    def normalize_networks(cls, v):
        """List form names networks without options."""
        if v is None:
            return {}
        if isinstance(v, (list, tuple)):
            return {str(name): {} for name in v}
        return {name: (conf or {}) for name, conf in v.items()}

    @field_validator("restart", "user", "hostname", "working_dir", "net", "image", mode="before")
    @classmethod
    def normalize_scalars(cls, v):
        return None if v is None else _scalar(v)

    @property
    def service_name(self) -> str:
        """Declared name, falling back to the manifest key."""
        return self.name or self.key or ""

    @property
    def domain(self) -> Optional[str]:
        """Raw DOMAIN environment value, if declared."""
        value = self.environment.get("DOMAIN")
        return None if value is None else _scalar(value)

    @property
    def domains(self) -> List[str]:
        """DOMAIN split into individual host names."""
        return (self.domain or "").split()

    @property
    def use_ssl(self) -> bool:
        """Whether the service asks for a TLS certificate."""
        return "USE_SSL" in self.environment


class IpamConfig(BaseModel):
    """One IPAM pool entry."""
    subnet: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class IpamSpec(BaseModel):
    """IPAM section of a network."""
    config: List[IpamConfig] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")

    @field_validator("config", mode="before")
    @classmethod
    def normalize_config(cls, v):
        """Bare list items (``- subnet``) carry no subnet value."""
        if v is None:
            return []
        return [item if isinstance(item, dict) else {} for item in v]


class NetworkSpec(BaseModel):
    """A network declared at the top level of the manifest."""
    name: str = Field(..., description="Manifest key")
    driver: Optional[str] = None
    ipam: IpamSpec = Field(default_factory=IpamSpec)

    model_config = ConfigDict(extra="allow")

    @field_validator("ipam", mode="before")
    @classmethod
    def normalize_ipam(cls, v):
        return v or {}

    @property
    def subnets(self) -> List[str]:
        """Explicitly configured subnets, in declaration order."""
        return [c.subnet for c in self.ipam.config if c.subnet]

    def resolved_name(self, project_name: str) -> str:
        """Runtime network name; ``default`` is scoped to the project."""
        if self.name == "default":
            return f"default[{project_name}]"
        return self.name


class ComposeManifest(BaseModel):
    """Parsed docker-compose.<stage>.yml."""
    version: Optional[str] = None
    services: Dict[str, ServiceSpec] = Field(default_factory=dict)
    networks: Dict[str, NetworkSpec] = Field(default_factory=dict)

    model_config = ConfigDict(extra="allow")

    @field_validator("version", mode="before")
    @classmethod
    def normalize_version(cls, v):
        return None if v is None else str(v)

    @field_validator("services", mode="before")
    @classmethod
    def inject_service_keys(cls, v):
        """Remember each service's manifest key."""
        if v is None:
            return {}
        services = {}
        for key, spec in v.items():
            if isinstance(spec, ServiceSpec):
                services[key] = spec.model_copy(update={"key": key})
                continue
            spec = dict(spec or {})
            spec["key"] = key
            services[key] = spec
        return services

    @field_validator("networks", mode="before")
    @classmethod
    def inject_network_names(cls, v):
        if v is None:
            return {}
        networks = {}
        for key, spec in v.items():
            if isinstance(spec, NetworkSpec):
                networks[key] = spec
                continue
            spec = dict(spec or {})
            spec["name"] = key
            networks[key] = spec
        return networks

    def network_specs(self) -> List[NetworkSpec]:
        """Declared networks, or the implicit project default."""
        if self.networks:
            return list(self.networks.values())
        return [NetworkSpec(name="default")]
