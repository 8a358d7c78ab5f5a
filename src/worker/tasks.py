"""Celery tasks for running website analyses."""

import uuid

from celery.utils.log import get_task_logger

from notifications import create_email_service
from worker.celery_app import celery_app
from worker.pipeline import AnalysisPipeline
from worker.store import AnalysisStore

# Logger for tasks
logger = get_task_logger(__name__)


def build_pipeline(store: AnalysisStore) -> AnalysisPipeline:
    """Pipeline wired with the configured email transport."""
    return AnalysisPipeline(store, email_service=create_email_service())


@celery_app.task(bind=True, name="worker.tasks.start_analysis")
def start_analysis(self, request_id: str) -> dict:
    """
    Claim a pending request and run the full pipeline.

    Redelivered messages lose the claim and are skipped.
    """
    request_uuid = uuid.UUID(request_id)
    store = AnalysisStore()

    if not store.claim_for_processing(request_uuid):
        logger.info(f"Analysis {request_id} already claimed, skipping")
        return {"request_id": request_id, "status": "skipped"}

    logger.info(f"Claimed analysis {request_id}")
    return build_pipeline(store).run(request_uuid).to_dict()


@celery_app.task(bind=True, name="worker.tasks.run_analysis")
def run_analysis(self, request_id: str) -> dict:
    """Run the pipeline for a request the API already moved to processing."""
    logger.info(f"Running analysis {request_id}")
    store = AnalysisStore()
    return build_pipeline(store).run(uuid.UUID(request_id)).to_dict()


def enqueue_analysis(request_id: uuid.UUID, claimed: bool = False) -> None:
    """Hand a request to the worker queue; `claimed` requests skip the claim step."""
    task = run_analysis if claimed else start_analysis
    task.delay(str(request_id))
