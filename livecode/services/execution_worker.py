import logging
import time
from livecode.sandbox.runner import Failed

logger = logging.getLogger(__name__)


class ExecutionWorker:
    """Drives one leased job from QUEUED to a persisted terminal status.

    Anything the sandbox raises is folded into a FAILED outcome. Only
    status-store errors escape, so the queue can retry the delivery.
    """

    def __init__(self, store, runner, max_output_size=1024 * 100):
        self.store = store
        self.runner = runner
        self.max_output_size = max_output_size

    def process(self, execution_id, language, source_code):
        started_at = time.monotonic()

        # moving from queue to running
        execution = self.store.claim(execution_id)
        if execution is None:
            return self._skip(execution_id)
        logger.info(f"Execution {execution_id}: QUEUED → RUNNING")

        try:
            outcome = self.runner.run(execution_id, language, source_code, started_at=started_at)
        except Exception as e:
            logger.exception(f"Execution {execution_id} failed with exception: {e}")
            outcome = Failed(str(e) or type(e).__name__, int((time.monotonic() - started_at) * 1000))

        stdout = self._truncate(execution_id, 'stdout', outcome.stdout)
        stderr = self._truncate(execution_id, 'stderr', outcome.stderr)

        finished = self.store.finish(execution_id, outcome.status, stdout, stderr, outcome.duration_ms)
        if finished is None:
            current = self.store.get_execution(execution_id)
            status = current.status if current is not None else None
            logger.warning(
                f"Execution {execution_id} was settled elsewhere as {status}; discarding {outcome.status}"
            )
            return {'execution_id': str(execution_id), 'status': status}

        # from RUNNING → COMPLETED/FAILED/TIMEOUT
        logger.info(f"Execution {execution_id}: RUNNING → {outcome.status} ({outcome.duration_ms}ms)")
        return {'execution_id': str(execution_id), 'status': outcome.status}

    def _skip(self, execution_id):
        existing = self.store.get_execution(execution_id)
        if existing is None:
            logger.error(f"Execution {execution_id} not found")
            return {'execution_id': str(execution_id), 'error': 'Execution not found'}

        # redelivered after a previous lease already finished the job
        logger.warning(f"Execution {execution_id} is already {existing.status}; not running it again")
        return {'execution_id': str(execution_id), 'status': existing.status}

    def _truncate(self, execution_id, stream, text):
        if text is None or len(text) <= self.max_output_size:
            return text
        logger.warning(
            f"Execution {execution_id} {stream} truncated from {len(text)} to {self.max_output_size} bytes"
        )
        return text[:self.max_output_size] + f"\n... [{stream} truncated - exceeded {self.max_output_size // 1024}KB limit]"
