"""Celery application running storage purges outside the request path."""
from celery import Celery
import os

celery = Celery(
    'finops_copilot',
    broker=os.getenv('CELERY_BROKER_URL', 'redis://localhost:6379/0'),
    backend=os.getenv('CELERY_RESULT_BACKEND', 'redis://localhost:6379/0'),
    include=['services.cleanup']
)

celery.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
    result_expires=3600,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    # Purges are short; anything longer is a stuck storage call
    task_time_limit=2 * 60,
    task_soft_time_limit=90,
)

if __name__ == '__main__':
    celery.start()
