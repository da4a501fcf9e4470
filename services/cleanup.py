"""Background purge of object storage bytes orphaned by thread deletion."""
import logging
from typing import Any, Dict, List
from celery import Task

from celery_app import celery
from services.minio import minio_service

logger = logging.getLogger(__name__)


@celery.task(bind=True, name='purge_objects', max_retries=3)
def purge_objects(self: Task, object_names: List[str]) -> Dict[str, Any]:
    """
    Celery task to delete stored objects whose metadata rows are gone.

    Objects that fail to delete are retried as a batch; objects that were
    already removed are not sent again.

    Args:
        object_names: Object keys in the default bucket

    Returns:
        Dict with the number of deleted objects
    """
    failed = [name for name in object_names if not minio_service.delete_file(name)]
    deleted = len(object_names) - len(failed)

    logger.info(f"Purged {deleted} of {len(object_names)} objects")

    if failed:
        logger.error(f"Failed to purge {len(failed)} objects, retrying")
        raise self.retry(args=[failed], countdown=60)

    return {"deleted": deleted}
