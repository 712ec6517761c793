#!/usr/bin/env python3
"""
Reindex every car from the database into Elasticsearch via Celery.
Reads the database directly (the API only shows a user their own cars).
A Celery worker must be running to process the queue.

  python scripts/reindex_elasticsearch.py
  python scripts/reindex_elasticsearch.py --reset-index
"""

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import select

from garage.config import get_settings
from garage.db.models import Car
from garage.db.session import Database
from garage.queue.tasks import index_car_task
from garage.search.elasticsearch_client import CARS_INDEX, _sync_es_client
from garage.services.car_service import car_to_doc


def delete_cars_index():
    """Delete the cars index; the first indexing task recreates it."""
    es = _sync_es_client()
    if es.indices.exists(index=CARS_INDEX):
        es.indices.delete(index=CARS_INDEX)
        print(f"Deleted index '{CARS_INDEX}'.")
    else:
        print(f"Index '{CARS_INDEX}' does not exist.")


async def load_docs() -> list[dict]:
    settings = get_settings()
    database = Database(settings.database_url)
    try:
        async with database.session_maker() as session:
            result = await session.execute(select(Car))
            return [car_to_doc(car) for car in result.scalars().all()]
    finally:
        await database.dispose()


def main():
    ap = argparse.ArgumentParser(description="Enqueue all cars for Elasticsearch reindex")
    ap.add_argument("--reset-index", action="store_true", help="Delete the cars index first")
    args = ap.parse_args()

    if args.reset_index:
        delete_cars_index()

    docs = asyncio.run(load_docs())
    if not docs:
        print("No cars in DB. Run seed_data.py first.")
        return
    for doc in docs:
        index_car_task.delay(doc)
    print(f"Enqueued {len(docs)} cars for reindex. Ensure the Celery worker is running.")


if __name__ == "__main__":
    main()
