"""Rendering and merging helpers for generated project files."""

import logging
from typing import Any, Dict, Mapping

from jinja2 import Environment, StrictUndefined, TemplateError


logger = logging.getLogger(__name__)

_environment = Environment(undefined=StrictUndefined, keep_trailing_newline=True)


def render_template(template_str: str, **context: Any) -> str:
    """Render a Jinja2 template string; a missing variable is an error."""
    try:
        return _environment.from_string(template_str).render(**context)
    except TemplateError as e:
        logger.error(f"Template rendering error: {e}")
        raise


def merge_services(services: Mapping[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    """Overlay stage service overrides on the Bootfile services.

    Mappings merge key by key at any depth; any other value in ``overrides``
    replaces the base value outright. Service order follows ``services``,
    with services only the stage declares appended.
    """
    merged = dict(services)
    for key, value in overrides.items():
        base = merged.get(key)
        if isinstance(base, Mapping) and isinstance(value, Mapping):
            merged[key] = merge_services(base, value)
        else:
            merged[key] = value
    return merged
