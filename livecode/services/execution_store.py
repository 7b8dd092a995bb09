import logging
import uuid
from datetime import datetime
from sqlalchemy import update
from livecode.errors import SessionNotFound
from livecode.models.code_sessions_model import CodeSession
from livecode.models.execution_model import Execution
from livecode.models.status import ExecutionStatus

logger = logging.getLogger(__name__)


def as_uuid(value):
    """Coerce an opaque identifier to a UUID, or None when it is not one."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


class ExecutionStore:
    """Status store for execution records.

    Every write is a single-row update keyed by execution id. Callers that
    pass ``expected`` get a compare-and-set: the row is only touched while
    its current status is one of the expected ones.
    """

    def __init__(self, database):
        self.db = database

    def create_execution(self, session_id, execution_id=None):
        session_key = as_uuid(session_id)
        code_session = self.db.session.get(CodeSession, session_key) if session_key else None
        if code_session is None:
            raise SessionNotFound(session_id)

        execution = Execution(
            id=as_uuid(execution_id) or uuid.uuid4(),
            session_id=code_session.id,
            status=ExecutionStatus.QUEUED,
            queued_at=datetime.utcnow(),
        )
        self.db.session.add(execution)
        self.db.session.commit()
        logger.info(f"Execution {execution.id} created with status QUEUED for session {code_session.id}")
        return execution

    def get_execution(self, execution_id):
        key = as_uuid(execution_id)
        if key is None:
            return None
        return self.db.session.get(Execution, key, populate_existing=True)

    def list_executions(self, session_id):
        key = as_uuid(session_id)
        if key is None:
            return []
        return (
            Execution.query.filter_by(session_id=key)
            .order_by(Execution.queued_at.desc())
            .populate_existing()
            .all()
        )

    def update_execution_status(self, execution_id, status, stdout=None, stderr=None,
                                duration_ms=None, expected=None):
        """Overwrite an execution's status and result fields.

        Returns the refreshed execution, or None when the id is unknown or
        the current status is not in ``expected``.
        """
        if status not in ExecutionStatus.ALL:
            raise ValueError(f"Unknown execution status: {status}")
        key = as_uuid(execution_id)
        if key is None:
            return None

        now = datetime.utcnow()
        values = {
            'status': status,
            'stdout': stdout,
            'stderr': stderr,
            'execution_time_ms': duration_ms,
            'updated_at': now,
        }
        if status == ExecutionStatus.RUNNING:
            values['started_at'] = now
        elif status in ExecutionStatus.TERMINAL:
            values['finished_at'] = now

        stmt = update(Execution).where(Execution.id == key).values(**values)
        if expected is not None:
            stmt = stmt.where(Execution.status.in_(tuple(expected)))

        result = self.db.session.execute(stmt.execution_options(synchronize_session=False))
        self.db.session.commit()
        if result.rowcount == 0:
            return None
        return self.get_execution(key)

    def claim(self, execution_id):
        """Move a leased execution to RUNNING.

        A redelivered job may find its execution still RUNNING from a lost
        lease and takes it over; a terminal execution is never claimed.
        """
        return self.update_execution_status(
            execution_id,
            ExecutionStatus.RUNNING,
            expected=(ExecutionStatus.QUEUED, ExecutionStatus.RUNNING),
        )

    def finish(self, execution_id, status, stdout, stderr, duration_ms):
        if status not in ExecutionStatus.TERMINAL:
            raise ValueError(f"{status} is not a terminal status")
        return self.update_execution_status(
            execution_id, status, stdout, stderr, duration_ms,
            expected=(ExecutionStatus.RUNNING,),
        )
