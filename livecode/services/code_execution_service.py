import logging
from flask import current_app
from livecode.errors import SessionNotFound
from livecode.models.status import ExecutionStatus

# Configure logging
logger = logging.getLogger(__name__)


def _isoformat(value):
    return value.isoformat() if value else None


class CodeExecutionService:

    @staticmethod
    def execute_code(session_id):
        """Execute code from a session asynchronously"""
        logger.info(f"🚀 Starting execution for session {session_id}")

        store = current_app.extensions['execution_store']
        try:
            execution = store.create_execution(session_id)
        except SessionNotFound:
            logger.error(f"❌ Session {session_id} not found")
            return None

        session = execution.session
        result = {
            "execution_id": str(execution.id),
            "status": execution.status
        }
        language, source_code = session.language, session.source_code

        current_app.extensions['execution_producer'].enqueue(result["execution_id"], language, source_code)

        return result

    @staticmethod
    def get_execution(execution_id):
        """Get execution status and result"""
        execution = current_app.extensions['execution_store'].get_execution(execution_id)

        if not execution:
            logger.warning(f"⚠️ Execution {execution_id} not found")
            return None

        logger.info(f"📊 Retrieving execution {execution_id} - Status: {execution.status}")

        result = {
            "execution_id": str(execution.id),
            "session_id": str(execution.session_id),
            "status": execution.status
        }

        # Include timestamps for tracking lifecycle
        if execution.queued_at:
            result["queued_at"] = execution.queued_at.isoformat()
        if execution.started_at:
            result["started_at"] = execution.started_at.isoformat()
        if execution.finished_at:
            result["finished_at"] = execution.finished_at.isoformat()

        # Results only exist once the execution is terminal
        if execution.status in ExecutionStatus.TERMINAL:
            result.update({
                "stdout": execution.stdout,
                "stderr": execution.stderr,
                "execution_time_ms": execution.execution_time_ms
            })
            if execution.status == ExecutionStatus.COMPLETED:
                logger.info(f"✅ Execution {execution_id} completed in {execution.execution_time_ms}ms")
            else:
                logger.warning(f"⚠️ Execution {execution_id} ended with status {execution.status}")

        return result

    @staticmethod
    def get_session_executions(session_id):
        """Get all executions for a session"""
        executions = current_app.extensions['execution_store'].list_executions(session_id)

        return [{
            "execution_id": str(execution.id),
            "status": execution.status,
            "queued_at": _isoformat(execution.queued_at),
            "finished_at": _isoformat(execution.finished_at),
            "execution_time_ms": execution.execution_time_ms
        } for execution in executions]
