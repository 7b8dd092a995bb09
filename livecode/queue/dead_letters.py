import json
import logging
from datetime import datetime

import redis

logger = logging.getLogger(__name__)


class DeadLetterQueue:
    """Redis list holding jobs whose delivery attempts are exhausted."""

    def __init__(self, client, key='code-execution:failed'):
        self.client = client
        self.key = key

    @classmethod
    def from_url(cls, url, key='code-execution:failed'):
        return cls(redis.from_url(url), key)

    def retain(self, task_id, args, error):
        execution_id, language, code = (list(args) + [None, None, None])[:3]
        entry = {
            'task_id': task_id,
            'execution_id': execution_id,
            'language': language,
            'code': code,
            'error': f"{type(error).__name__}: {error}",
            'failed_at': datetime.utcnow().isoformat(),
        }
        try:
            self.client.rpush(self.key, json.dumps(entry))
        except redis.RedisError as e:
            logger.error(f"Could not retain failed job {task_id} for execution {execution_id}: {e}; payload: {entry}")
            return None
        logger.warning(f"Job {task_id} for execution {execution_id} exhausted its retries and was retained")
        return entry

    def count(self):
        return self.client.llen(self.key)

    def peek(self, limit=20):
        return [json.loads(raw) for raw in self.client.lrange(self.key, 0, limit - 1)]
