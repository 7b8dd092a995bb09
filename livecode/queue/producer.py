import logging

logger = logging.getLogger(__name__)


class ExecutionProducer:
    """Hands execution jobs to the worker pool.

    Publishing is fire-and-forget: the job's outcome is only ever observed
    through the execution record.
    """

    def __init__(self, task, queue=None, publish_retries=1, publish_interval=1.0):
        self.task = task
        self.queue = queue
        self.retry_policy = {
            'max_retries': publish_retries,
            'interval_start': publish_interval,
            'interval_step': publish_interval,
            'interval_max': publish_interval * 2,
        }

    def enqueue(self, execution_id, language, code):
        self.task.apply_async(
            args=[str(execution_id), language, code or ''],
            queue=self.queue,
            retry=True,
            retry_policy=self.retry_policy,
        )
        logger.info(f"📤 Task sent to Celery for execution {execution_id}")
