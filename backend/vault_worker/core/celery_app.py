"""
Celery application for the document pipeline.

Queues:
- documents: process-document, classify-document, classify-image, embed-document-tags
- notifications: activity events (consumed by another service)
- maintenance: cleanup-stale-documents, run by beat
"""
import logging

from celery import Celery
from celery.signals import setup_logging
from kombu import Queue

from vault_worker.core.config import settings

DOCUMENTS_QUEUE = "documents"
NOTIFICATIONS_QUEUE = "notifications"
MAINTENANCE_QUEUE = "maintenance"

celery_app = Celery(
    "vault_worker",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["vault_worker.workers.tasks"],
)

celery_app.conf.task_queues = (
    Queue(DOCUMENTS_QUEUE, routing_key=DOCUMENTS_QUEUE),
    Queue(MAINTENANCE_QUEUE, routing_key=MAINTENANCE_QUEUE),
)

celery_app.conf.update(
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_default_queue=DOCUMENTS_QUEUE,
    task_routes={
        "cleanup-stale-documents": {"queue": MAINTENANCE_QUEUE},
    },
    timezone="UTC",
)

celery_app.conf.beat_schedule = {
    "cleanup-stale-documents": {
        "task": "cleanup-stale-documents",
        "schedule": settings.STALE_DOCUMENT_SWEEP_INTERVAL_SECONDS,
        "options": {"queue": MAINTENANCE_QUEUE},
    },
}


@setup_logging.connect
def configure_logging(**kwargs) -> None:
    """Use the worker's own log format instead of Celery's."""
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
