"""Configuration models."""

from pathlib import Path
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_MACHINE_NAME = "bootapp-docker-machine"
DEFAULT_STAGE_NAME = "local"


class MachineEnvironment(BaseModel):
    """VM sizing and provisioning hooks."""
    memory_size: int = Field(default=0, ge=0, description="VM memory in MB, 0 leaves it untouched")
    init_scripts: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")

    @field_validator("memory_size", mode="before")
    @classmethod
    def validate_memory_size(cls, v):
        """Reject anything that is not a whole number of megabytes."""
        if v is None:
            return 0
        if isinstance(v, bool) or not isinstance(v, int):
            raise ValueError("Environment memory_size field must be a number in MB.")
        return v

    @field_validator("init_scripts", mode="before")
    @classmethod
    def validate_init_scripts(cls, v):
        """Accept a single script line as well as a list."""
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v


class StageConfig(BaseModel):
    """Per-stage overrides."""
    services: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="allow")


class BootfileConfig(BaseModel):
    """Project configuration read from Bootfile.yml."""
    project_name: Optional[str] = None
    machine_name: str = Field(default=DEFAULT_MACHINE_NAME)
    stage_name: str = Field(default=DEFAULT_STAGE_NAME)
    environment: MachineEnvironment = Field(default_factory=MachineEnvironment)
    services: Optional[Dict[str, Any]] = None
    networks: Optional[Dict[str, Any]] = None
    stages: Dict[str, StageConfig] = Field(default_factory=dict)

    model_config = ConfigDict(extra="allow")

    @field_validator("project_name")
    @classmethod
    def validate_project_name(cls, v):
        """Project names become container name prefixes."""
        if v is None:
            return v
        v = str(v).strip()
        if not v:
            return None
        if any(c.isspace() for c in v) or "/" in v:
            raise ValueError(f"Invalid project name: {v!r}")
        return v

    @field_validator("machine_name", "stage_name", mode="before")
    @classmethod
    def default_when_empty(cls, v, info):
        """Blank values fall back to the defaults."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_MACHINE_NAME if info.field_name == "machine_name" else DEFAULT_STAGE_NAME
        return v

    @field_validator("stages", mode="before")
    @classmethod
    def validate_stages(cls, v):
        """A YAML key with no body parses as None."""
        if v is None:
            return {}
        return {name: (stage or {}) for name, stage in v.items()}


class BootappSettings(BaseSettings):
    """Process-wide settings, read from BOOTAPP_* environment variables."""
    log_level: str = Field(default="INFO")
    bootfile_name: str = Field(default="Bootfile.yml")
    registry_path: str = Field(default="~/.docker/docker-machine-subnet.yaml")
    hosts_path: str = Field(default="/etc/hosts")
    audit_log_name: str = Field(default=".bootapp.log")
    docker_bin: str = Field(default="docker")
    use_sudo: bool = Field(default=True)

    model_config = SettingsConfigDict(env_prefix="BOOTAPP_", extra="ignore")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()

    @property
    def registry_file(self) -> Path:
        """Expanded path of the subnet registry."""
        return Path(self.registry_path).expanduser()
