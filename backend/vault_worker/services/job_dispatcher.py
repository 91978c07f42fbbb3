"""
Job Dispatch

Enqueues follow-up pipeline jobs and activity notifications. Dispatch is
fire-and-forget: the caller never waits for the dispatched job to finish.
"""

import logging
from typing import Any, Dict, Optional

from celery import Celery

from vault_worker.core.celery_app import NOTIFICATIONS_QUEUE, celery_app
from vault_worker.core.config import settings
from vault_worker.core.executor import run_blocking
from vault_worker.core.timeout import with_timeout

logger = logging.getLogger(__name__)


class JobDispatcher:
    """Thin async wrapper over Celery's ``send_task``."""

    def __init__(self, app: Optional[Celery] = None):
        self.app = app or celery_app

    async def enqueue(self, job_name: str, payload: Dict[str, Any], queue_name: str) -> str:
        """
        Enqueue a job by name.

        Args:
            job_name: Registered task name (e.g. 'classify-document')
            payload: Keyword arguments for the task
            queue_name: Target queue

        Returns:
            The dispatched job's ID
        """
        result = await with_timeout(
            run_blocking(self.app.send_task, job_name, kwargs=payload, queue=queue_name),
            settings.JOB_DISPATCH_TIMEOUT,
            f"Dispatch of {job_name} timed out after {settings.JOB_DISPATCH_TIMEOUT}s",
        )
        logger.info(f"Dispatched {job_name} to {queue_name} (job {result.id})")
        return result.id

    async def notify(self, event_type: str, payload: Dict[str, Any]) -> Optional[str]:
        """
        Emit an activity notification; failures are logged, never raised.

        Args:
            event_type: Notification type (e.g. 'document_uploaded')
            payload: Event fields

        Returns:
            The notification job ID, or None if it could not be enqueued
        """
        try:
            return await self.enqueue("notification", {"type": event_type, **payload}, NOTIFICATIONS_QUEUE)
        except Exception as e:
            logger.warning(
                f"Failed to trigger {event_type} notification for team {payload.get('team_id')}: {e}"
            )
            return None
