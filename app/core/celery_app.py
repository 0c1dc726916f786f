"""Celery application configuration"""

from celery import Celery
from kombu import Exchange, Queue
from app.core.config import settings

# Create Celery app
celery_app = Celery(
    "hostrefer",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "app.tasks.reward_tasks",
    ]
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=5 * 60,  # 5 minutes
    task_soft_time_limit=4 * 60,  # 4 minutes
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,

    # Task routing
    task_routes={
        "app.tasks.reward_tasks.*": {"queue": "rewards"},
    },

    # Retry configuration
    task_default_retry_delay=60,  # 1 minute
    task_max_retries=5,

    # Result backend configuration
    result_expires=3600,  # 1 hour
)

# Define queues
celery_app.conf.task_queues = (
    Queue("default", Exchange("default"), routing_key="default"),
    Queue("rewards", Exchange("rewards"), routing_key="rewards"),
)

# Beat schedule for periodic tasks
celery_app.conf.beat_schedule = {
    "reissue-missing-confirmation-rewards": {
        "task": "app.tasks.reward_tasks.reissue_missing_rewards",
        "schedule": 60 * 60,  # Every hour
        "options": {"queue": "rewards"}
    },
}
