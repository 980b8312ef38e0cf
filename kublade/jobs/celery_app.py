"""Celery application configuration."""

from celery import Celery

from kublade.server.core.config import settings

queue_settings = settings.queue

# Create Celery app
celery_app = Celery(
    "kublade",
    broker=queue_settings.broker_url,
    backend=queue_settings.broker_url,
    include=[
        "kublade.jobs.template.actions",
        "kublade.jobs.template.dispatchers",
    ],
)

# Configure Celery
celery_app.conf.update(
    # Task settings
    task_default_queue=queue_settings.default_queue,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    # Serialization
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    # Time settings
    timezone="UTC",
    enable_utc=True,
    # Result backend
    result_expires=86400,
    # Task tracking
    task_track_started=True,
    task_send_sent_event=True,
)

# Beat only triggers the dispatcher; uniqueness is enforced when it enqueues
celery_app.conf.beat_schedule = {
    "template-git-import-dispatcher": {
        "task": "kublade.jobs.template.dispatchers.schedule_git_import",
        "schedule": queue_settings.git_import_interval_seconds,
    },
}
