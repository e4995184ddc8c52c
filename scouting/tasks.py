"""
Scouting Celery tasks.

Scheduled via Celery Beat (see core/celery.py).
"""
from celery import shared_task
from django.conf import settings
import logging

logger = logging.getLogger(__name__)


@shared_task
def report_pending_uploads():
    """
    Log how many rows are still waiting to be pushed to the cloud.

    Only meaningful on an edge runtime; in cloud mode every write is
    already SYNCED and the task does nothing.
    """
    if getattr(settings, 'SCOUTING_RUNTIME_MODE', 'cloud') != 'edge':
        return None

    from scouting.services.sync import SyncCoordinator

    counts = SyncCoordinator().pending_upload_counts()
    if any(counts.values()):
        logger.info(
            f"Edge sync pending: {counts['sessions']} sessions, "
            f"{counts['observations']} observations, {counts['photos']} photos"
        )
    else:
        logger.debug("Edge sync: nothing pending upload")
    return counts
