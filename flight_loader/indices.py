"""Index administration for the flights index."""

from __future__ import annotations

import logging
from typing import Dict

from elasticsearch import Elasticsearch

from .errors import IndexAdminError

LOGGER = logging.getLogger(__name__)


def ensure_index(client: Elasticsearch, index_name: str, mapping: Dict[str, object]) -> bool:
    """Create ``index_name`` with ``mapping`` unless it already exists.

    Returns True when the index was created by this call.
    """
    try:
        if client.indices.exists(index=index_name):
            LOGGER.warning("Index '%s' already exists", index_name)
            return False
    except Exception as exc:
        raise IndexAdminError(f"Failed to see if index '{index_name}' exists: {exc}") from exc

    LOGGER.info("Creating index: %s", index_name)
    try:
        response = client.indices.create(index=index_name, body=mapping)
    except Exception as exc:
        raise IndexAdminError(f"Index creation failed for '{index_name}': {exc}") from exc

    body = getattr(response, "body", response)
    if not body.get("acknowledged", False):
        raise IndexAdminError(f"Create index '{index_name}' not acknowledged")
    LOGGER.warning("Index '%s' created", index_name)
    return True


def delete_index(client: Elasticsearch, index_name: str) -> bool:
    try:
        if not client.indices.exists(index=index_name):
            LOGGER.warning("Index '%s' was not found", index_name)
            return False
        response = client.indices.delete(index=index_name)
    except Exception as exc:
        raise IndexAdminError(f"Failed to delete index '{index_name}': {exc}") from exc

    body = getattr(response, "body", response)
    if not body.get("acknowledged", False):
        raise IndexAdminError(f"Failed to acknowledge deletion of index '{index_name}'")
    LOGGER.warning("Index '%s' deleted", index_name)
    return True


def report_status(client: Elasticsearch) -> Dict[str, object]:
    try:
        response = client.cluster.health()
    except Exception as exc:
        raise IndexAdminError(f"Failed to retrieve cluster status: {exc}") from exc

    status = getattr(response, "body", response)
    LOGGER.info("Cluster status: %s", status.get("status"))
    LOGGER.info(
        "Active shards: %s, node count: %s",
        status.get("active_shards"),
        status.get("number_of_nodes"),
    )
    return status
