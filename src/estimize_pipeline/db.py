"""MongoDB helpers for persisting the release registry.

Centralizes creation of Mongo clients and the batched upsert used to index
registry entries by `(release_id, symbol)`.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable
from pymongo import MongoClient, UpdateOne
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

import certifi

from estimize_pipeline.models import RegistryEntry

log = logging.getLogger(__name__)

REGISTRY_COLLECTION = "release_registry"


def get_client(uri: str) -> MongoClient:
    """Return a configured PyMongo MongoClient for the provided URI.

    TLS is only enabled for `mongodb+srv://` URIs so a local unauthenticated
    instance works without certificates.

    Args:
        uri: MongoDB connection URI.

    Returns:
        Configured MongoClient instance.
    """
    kwargs: dict[str, Any] = {
        "serverSelectionTimeoutMS": 30000,
        "socketTimeoutMS": 30000,
        "connectTimeoutMS": 30000,
    }
    if uri.startswith("mongodb+srv://"):
        kwargs.update(tls=True, tlsCAFile=certifi.where())
    return MongoClient(uri, **kwargs)


def get_db(
    client: MongoClient[dict[str, Any]],
    db_name: str,
) -> Database[dict[str, Any]]:
    """Return the named Database instance from a MongoClient."""
    return client[db_name]


def upsert_registry(
    collection: Collection[dict[str, Any]],
    entries: Iterable[RegistryEntry],
    batch_size: int = 1000,
) -> int:
    """Bulk upsert registry entries keyed by `(release_id, symbol)`.

    Entries are written in a stable order so repeated runs issue identical
    batches. A failed batch is logged and skipped.

    Args:
        collection: Target PyMongo collection.
        entries: Registry entries to upsert.
        batch_size: Number of ops per bulk_write call.

    Returns:
        Integer number of entries attempted.
    """
    ops: list[UpdateOne] = []
    attempted = 0

    ordered = sorted(entries, key=lambda e: (e.release_id, e.symbol))
    for entry in ordered:
        doc = entry.model_dump()
        ops.append(
            UpdateOne(
                {"release_id": entry.release_id, "symbol": entry.symbol},
                {"$set": doc},
                upsert=True,
            )
        )
        attempted += 1

        if len(ops) >= batch_size:
            _flush(collection, ops)
            ops = []

    if ops:
        _flush(collection, ops)

    log.info("Upserted %d registry entries into %s", attempted, collection.name)
    return attempted


def _flush(collection: Collection[dict[str, Any]], ops: list[UpdateOne]) -> None:
    try:
        collection.bulk_write(ops, ordered=False)
    except PyMongoError as e:
        log.warning("Registry bulk upsert batch failed: %s", e)
