"""
Elasticsearch client - optional full-text search backend for cars.
Every query is filtered by owner and by all requested tags; ranking is multi_match
relevance. Returns None when the cluster is unreachable so callers can fall back.
Sync helpers are used by Celery workers (no event loop in fork).
"""

import logging
from typing import Any
from urllib.parse import urlparse

from elasticsearch import AsyncElasticsearch, Elasticsearch

from garage.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

CARS_INDEX = "cars"

_es_client: AsyncElasticsearch | None = None


def _es_client_options() -> dict:
    """Build Elasticsearch client options from settings (supports HTTPS + basic auth in URL)."""
    url = settings.elasticsearch_url
    basic_auth = None
    parsed = urlparse(url)
    if parsed.username and parsed.password:
        basic_auth = (parsed.username, parsed.password)
        # The client takes credentials separately
        netloc = parsed.hostname or ""
        if parsed.port:
            netloc += f":{parsed.port}"
        url = f"{parsed.scheme}://{netloc}"
    opts = {
        "hosts": [url],
        "verify_certs": settings.elasticsearch_verify_certs,
        "request_timeout": 30,
    }
    if basic_auth:
        opts["basic_auth"] = basic_auth
    return opts


async def get_elasticsearch() -> AsyncElasticsearch:
    """Get Elasticsearch client, created on first use."""
    global _es_client
    if _es_client is None:
        _es_client = AsyncElasticsearch(**_es_client_options())
    return _es_client


async def close_elasticsearch() -> None:
    global _es_client
    if _es_client is not None:
        await _es_client.close()
        _es_client = None


def _cars_index_mappings() -> dict:
    """Mapping for the cars index. tags is a keyword for exact filters, tags.text for matching."""
    return {
        "properties": {
            "id": {"type": "keyword"},
            "owner_id": {"type": "keyword"},
            "title": {"type": "text", "analyzer": "standard"},
            "description": {"type": "text", "analyzer": "standard"},
            "tags": {
                "type": "keyword",
                "fields": {"text": {"type": "text", "analyzer": "standard"}},
            },
            "created_at": {"type": "date"},
        }
    }


def build_search_query(owner_id: str, text: str, tags: list[str]) -> dict[str, Any]:
    """Owner filter + one term filter per tag (all must match) + relevance query."""
    filters: list[dict[str, Any]] = [{"term": {"owner_id": owner_id}}]
    filters.extend({"term": {"tags": tag}} for tag in tags)
    return {
        "bool": {
            "must": {
                "multi_match": {
                    "query": text,
                    "fields": ["title^2", "description", "tags.text"],
                }
            },
            "filter": filters,
        }
    }


async def ensure_cars_index() -> None:
    """Create cars index with mapping if not exists. Single-node: 0 replicas to avoid unassigned shards."""
    es = await get_elasticsearch()
    if not await es.indices.exists(index=CARS_INDEX):
        await es.indices.create(
            index=CARS_INDEX,
            settings={"index": {"number_of_replicas": 0}},
            mappings=_cars_index_mappings(),
        )


async def search_car_ids(owner_id: str, text: str, tags: list[str], limit: int = 100) -> list[str] | None:
    """Ranked ids of the owner's matching cars, or None if the search backend failed."""
    try:
        es = await get_elasticsearch()
        response = await es.search(
            index=CARS_INDEX,
            query=build_search_query(owner_id, text, tags),
            size=limit,
            source=False,
        )
    except Exception as e:
        logger.warning("search_car_ids failed: query=%r error=%s", text, e)
        return None
    body = getattr(response, "body", response)
    return [hit["_id"] for hit in body["hits"]["hits"]]


# --- Sync API for Celery (workers run in sync context; async + new_event_loop fails after fork) ---

def _sync_es_client() -> Elasticsearch:
    """New sync client per call (safe in forked Celery worker)."""
    return Elasticsearch(**_es_client_options())


def ensure_cars_index_sync(es: Elasticsearch) -> None:
    if not es.indices.exists(index=CARS_INDEX):
        es.indices.create(
            index=CARS_INDEX,
            settings={"index": {"number_of_replicas": 0}},
            mappings=_cars_index_mappings(),
        )


def index_car_sync(doc: dict[str, Any]) -> None:
    """Index one car document. Raises so the Celery task can retry."""
    es = _sync_es_client()
    try:
        ensure_cars_index_sync(es)
        es.index(index=CARS_INDEX, id=str(doc["id"]), document=doc)
    finally:
        es.close()


def remove_car_sync(car_id: str) -> None:
    """Remove a car from the index; a missing document is not an error."""
    es = _sync_es_client()
    try:
        es.options(ignore_status=404).delete(index=CARS_INDEX, id=car_id)
    finally:
        es.close()
