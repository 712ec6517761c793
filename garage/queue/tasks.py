"""
Celery tasks - search index maintenance.
Fired after car create/update/delete when the Elasticsearch backend is active.
"""

from garage.queue.celery_app import celery_app
from garage.search.elasticsearch_client import index_car_sync, remove_car_sync


@celery_app.task(bind=True, max_retries=3)
def index_car_task(self, car_doc: dict):
    """Index (or re-index) one car document."""
    try:
        index_car_sync(car_doc)
    except Exception as exc:
        raise self.retry(exc=exc, countdown=5)


@celery_app.task(bind=True, max_retries=3)
def remove_car_task(self, car_id: str):
    """Drop a deleted car from the index."""
    try:
        remove_car_sync(car_id)
    except Exception as exc:
        raise self.retry(exc=exc, countdown=5)
