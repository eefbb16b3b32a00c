"""Bootfile and compose manifest loading."""

import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

import pydantic
from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap
from ruamel.yaml.error import YAMLError

from bootapp.errors import ConfigNotFound, ValidationError
from bootapp.models.config import BootfileConfig
from bootapp.models.manifest import ComposeManifest
from bootapp.utils.templates import merge_services


logger = logging.getLogger(__name__)

DEFAULT_BOOTFILE_NAME = "Bootfile.yml"


def compose_file_name(stage_name: str) -> str:
    return f"docker-compose.{stage_name}.yml"


class ProjectLoader:
    """Finds the project root and loads its configuration files."""

    def __init__(self, bootfile_name: str = DEFAULT_BOOTFILE_NAME):
        """Initialize loader."""
        self.bootfile_name = bootfile_name
        self.yaml = YAML()
        self.yaml.preserve_quotes = True
        self.yaml.indent(mapping=2, sequence=4, offset=2)

    def find_bootfile(self, start: Optional[Path] = None) -> Path:
        """Search ``start`` and its parents for the Bootfile."""
        current = Path(start or Path.cwd()).resolve()
        for directory in (current, *current.parents):
            candidate = directory / self.bootfile_name
            if candidate.is_file():
                logger.debug(f"Found {candidate}")
                return candidate
        raise ConfigNotFound(f'"{self.bootfile_name}" file not exists.')

    def read_yaml(self, path: Path) -> Dict[str, Any]:
        """Read a YAML mapping; an empty file reads as an empty mapping."""
        if not path.is_file():
            raise ConfigNotFound(f'"{path.name}" file not exists.')
        try:
            data = self.yaml.load(path.read_text())
        except YAMLError as e:
            raise ValidationError(f"Invalid YAML in {path}: {e}") from e
        if data is None:
            return CommentedMap()
        if not isinstance(data, dict):
            raise ValidationError(f"{path} must contain a mapping")
        return data

    def write_yaml(self, path: Path, data: Dict[str, Any]):
        """Replace ``path`` atomically with the YAML dump of ``data``."""
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                self.yaml.dump(data, f)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def load_bootfile(self, path: Path) -> BootfileConfig:
        data = self.read_yaml(path)
        try:
            return BootfileConfig(**data)
        except pydantic.ValidationError as e:
            logger.error(f"Invalid {path.name}: {e}")
            raise ValidationError(f"Invalid {path.name}: {e}") from e

    def save_project_name(self, path: Path, project_name: str):
        """Write ``project_name`` as the first key, keeping everything else."""
        data = self.read_yaml(path)
        if not isinstance(data, CommentedMap):
            data = CommentedMap(data)
        if "project_name" in data:
            data["project_name"] = project_name
        else:
            data.insert(0, "project_name", project_name)
        self.write_yaml(path, data)
        logger.info(f"Saved project name {project_name} to {path}")

    def generate_compose(self, config: BootfileConfig) -> Dict[str, Any]:
        """Compose document from Bootfile services with stage overrides."""
        services: Dict[str, Any] = dict(config.services or {})
        stage = config.stages.get(config.stage_name)
        if stage:
            services = merge_services(services, stage.services)

        document: Dict[str, Any] = {"version": "2", "services": services}
        if config.networks:
            document["networks"] = dict(config.networks)
        return document

    def load_manifest(self, project_root: Path, config: BootfileConfig) -> ComposeManifest:
        """Load ``docker-compose.<stage>.yml``, regenerating it from the Bootfile when it declares services."""
        compose_path = project_root / compose_file_name(config.stage_name)

        if config.services:
            document = self.generate_compose(config)
            self.write_yaml(compose_path, document)
            logger.info(f"Generated {compose_path.name}")
        else:
            document = self.read_yaml(compose_path)

        try:
            return ComposeManifest(**document)
        except pydantic.ValidationError as e:
            logger.error(f"Invalid {compose_path.name}: {e}")
            raise ValidationError(f"Invalid {compose_path.name}: {e}") from e
