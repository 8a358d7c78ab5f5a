"""Celery application for the analysis worker."""

from celery import Celery

from config import configure_logging, settings

configure_logging()

celery_app = Celery(
    "sitegrade",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["worker.tasks"],
)

celery_app.conf.update(
    # Serialization: task arguments are request ids only
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Every analysis task lands on one queue
    task_default_queue="analyses",
    task_routes={
        "worker.tasks.*": {"queue": "analyses"},
    },

    # At-least-once delivery; a lost claim makes redelivery harmless
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_track_started=True,

    # Each analysis drives a Chromium process, so one at a time per worker
    # and a fresh child every few dozen runs
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=50,

    # Outcomes are only for debugging; the database holds the real state
    result_expires=3 * 86400,

    broker_connection_retry_on_startup=True,
)
