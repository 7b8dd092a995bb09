import logging
from celery import Task
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from livecode.celery_app import celery
from livecode.config import Config

logger = logging.getLogger(__name__)


class ExecutionTask(Task):
    """Runs inside the Flask app context; retains jobs that exhaust their retries."""

    def __call__(self, *args, **kwargs):
        with self.app.flask_app.app_context():
            return self.run(*args, **kwargs)

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        logger.error(f"Job {task_id} failed after {self.request.retries + 1} attempt(s): {exc}")
        with self.app.flask_app.app_context():
            current_app.extensions['dead_letters'].retain(task_id, args, exc)


@celery.task(
    name='execute_code_task',
    bind=True,
    base=ExecutionTask,
    acks_late=True,
    reject_on_worker_lost=True,
    ignore_result=True,
    # only store outages reach the queue; job-level errors end as FAILED
    autoretry_for=(SQLAlchemyError,),
    max_retries=Config.JOB_ATTEMPTS - 1,
    retry_backoff=max(1, Config.JOB_BACKOFF_MS // 1000),
    retry_jitter=False,
)
def execute_code_task(self, execution_id, language, source_code):
    worker = current_app.extensions['execution_worker']
    return worker.process(execution_id, language, source_code)
