"""Connector registry for django-website-storage.

Connectors are listed by dotted path in the ``CONNECTORS`` setting, the first
one is the default. Each class is instantiated once per process.
"""

from __future__ import annotations

import functools
import logging
from importlib import import_module
from typing import Any

from .conf import get_setting
from .exceptions import NotFound

logger = logging.getLogger(__name__)


@functools.cache
def get_connectors() -> dict[str, Any]:
    """Import and instantiate the configured connectors, keyed by id."""
    connectors: dict[str, Any] = {}
    for dotted_path in get_setting("CONNECTORS"):
        connector = import_class(dotted_path)()
        if connector.connector_id in connectors:
            logger.warning(
                "Connector id %s is used twice, %s is ignored",
                connector.connector_id,
                dotted_path,
            )
            continue
        connectors[connector.connector_id] = connector
    return connectors


def get_connector(connector_id: str | None = None) -> Any:
    """Return the connector with this id, or the default one."""
    connectors = get_connectors()
    if connector_id is None:
        return get_default_connector()
    try:
        return connectors[connector_id]
    except KeyError:
        raise NotFound(f"Connector {connector_id} not found") from None


def get_default_connector() -> Any:
    connectors = get_connectors()
    if not connectors:
        raise NotFound("No connector configured")
    return next(iter(connectors.values()))


def import_class(dotted_path: str) -> type:
    """Import a class from a dotted path string."""
    module_path, class_name = dotted_path.rsplit(".", 1)
    module = import_module(module_path)
    return getattr(module, class_name)  # type: ignore[no-any-return]
