import threading
import uuid
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy.exc import SQLAlchemyError

from livecode import create_app
from livecode.config import TestConfig
from livecode.models.db import db
from livecode.queue.dead_letters import DeadLetterQueue
from livecode.services.code_session_service import Session_Service
from livecode.models.status import ExecutionStatus
from livecode.sandbox.runner import TIMEOUT_MESSAGE, Completed, Failed
from livecode.services.execution_worker import ExecutionWorker


class RecordingRunner:
    """Stands in for the sandbox and captures what the store looked like mid-run."""

    def __init__(self, store, outcome=None, error=None):
        self.store = store
        self.outcome = outcome or Completed("ok\n", "", 3)
        self.error = error
        self.calls = []
        self.seen = []

    def run(self, execution_id, language, source_code, started_at=None):
        self.calls.append((execution_id, language, source_code))
        execution = self.store.get_execution(execution_id)
        self.seen.append({
            "status": execution.status,
            "stdout": execution.stdout,
            "execution_time_ms": execution.execution_time_ms,
        })
        if self.error is not None:
            raise self.error
        return self.outcome


@pytest.fixture
def worker(app):
    return app.extensions['execution_worker']


@pytest.fixture
def queued(store, make_session):
    def _queued(**kwargs):
        return str(store.create_execution(make_session(**kwargs)).id)
    return _queued


def test_prints_hi(worker, store, queued):
    execution_id = queued()
    result = worker.process(execution_id, "python", "print('hi')")

    execution = store.get_execution(execution_id)
    assert result == {'execution_id': execution_id, 'status': ExecutionStatus.COMPLETED}
    assert execution.status == ExecutionStatus.COMPLETED
    assert execution.stdout == "hi\n"
    assert execution.stderr == ""
    assert execution.execution_time_ms is not None


def test_syntax_error_is_failed(worker, store, queued):
    execution_id = queued()
    worker.process(execution_id, "python", "print('broken")

    execution = store.get_execution(execution_id)
    assert execution.status == ExecutionStatus.FAILED
    assert execution.stderr
    assert execution.stdout is None


def test_timeout(worker, store, queued, temp_dir):
    execution_id = queued()
    worker.process(execution_id, "python", "import time\ntime.sleep(6)")

    execution = store.get_execution(execution_id)
    assert execution.status == ExecutionStatus.TIMEOUT
    assert execution.stderr == TIMEOUT_MESSAGE
    assert execution.stdout is None
    assert execution.execution_time_ms >= 1000
    assert not (temp_dir / f"{execution_id}.py").exists()


def test_unsupported_language_is_failed(worker, store, queued, temp_dir):
    execution_id = queued(language="ruby", source_code="puts 'hi'")
    worker.process(execution_id, "ruby", "puts 'hi'")

    execution = store.get_execution(execution_id)
    assert execution.status == ExecutionStatus.FAILED
    assert execution.stderr == "Unsupported language: ruby"
    assert not temp_dir.exists() or list(temp_dir.iterdir()) == []


def test_running_is_visible_before_the_sandbox_starts(store, queued):
    runner = RecordingRunner(store)
    execution_id = queued()

    ExecutionWorker(store, runner).process(execution_id, "python", "print('ok')")

    during = runner.seen[0]
    assert during == {"status": ExecutionStatus.RUNNING, "stdout": None, "execution_time_ms": None}
    assert store.get_execution(execution_id).status == ExecutionStatus.COMPLETED


def test_sandbox_exception_resolves_to_failed(store, queued):
    runner = RecordingRunner(store, error=RuntimeError("sandbox exploded"))
    execution_id = queued()

    result = ExecutionWorker(store, runner).process(execution_id, "python", "print('ok')")

    execution = store.get_execution(execution_id)
    assert result['status'] == ExecutionStatus.FAILED
    assert execution.status == ExecutionStatus.FAILED
    assert execution.stderr == "sandbox exploded"
    assert execution.execution_time_ms is not None


def test_redelivered_terminal_job_is_not_rerun(store, queued):
    runner = RecordingRunner(store)
    worker = ExecutionWorker(store, runner)
    execution_id = queued()

    worker.process(execution_id, "python", "print('ok')")
    runner.outcome = Failed("second run")
    result = worker.process(execution_id, "python", "print('ok')")

    assert len(runner.calls) == 1
    assert result['status'] == ExecutionStatus.COMPLETED
    assert store.get_execution(execution_id).stdout == "ok\n"


def test_missing_execution(worker):
    execution_id = str(uuid.uuid4())

    assert worker.process(execution_id, "python", "print('hi')") == {
        'execution_id': execution_id,
        'error': 'Execution not found',
    }


def test_large_output_is_truncated(store, queued):
    runner = RecordingRunner(store, outcome=Completed("x" * 50, "", 1))
    execution_id = queued()

    ExecutionWorker(store, runner, max_output_size=10).process(execution_id, "python", "")

    stdout = store.get_execution(execution_id).stdout
    assert stdout.startswith("x" * 10 + "\n")
    assert "truncated" in stdout


def test_executions_of_one_session_are_independent(worker, store, make_session):
    session_id = make_session()
    good = str(store.create_execution(session_id).id)
    bad = str(store.create_execution(session_id).id)

    worker.process(bad, "python", "print('broken")
    worker.process(good, "python", "print('hi')")

    assert store.get_execution(bad).status == ExecutionStatus.FAILED
    assert store.get_execution(good).status == ExecutionStatus.COMPLETED
    assert store.get_execution(good).stdout == "hi\n"


class FailingStore:
    """Wraps the real store and fails one of its writes like an unreachable database."""

    def __init__(self, store, failing):
        self.store = store
        self.failing = failing

    def __getattr__(self, name):
        if name == self.failing:
            def fail(*args, **kwargs):
                raise SQLAlchemyError("database unreachable")
            return fail
        return getattr(self.store, name)


def test_store_outage_on_claim_reaches_the_queue(store, queued):
    runner = RecordingRunner(store)
    execution_id = queued()

    with pytest.raises(SQLAlchemyError):
        ExecutionWorker(FailingStore(store, "claim"), runner).process(execution_id, "python", "print('ok')")

    assert runner.calls == []
    assert store.get_execution(execution_id).status == ExecutionStatus.QUEUED


def test_store_outage_on_finish_reaches_the_queue(store, queued):
    runner = RecordingRunner(store)
    execution_id = queued()

    with pytest.raises(SQLAlchemyError):
        ExecutionWorker(FailingStore(store, "finish"), runner).process(execution_id, "python", "print('ok')")

    # the retried delivery can claim it again
    assert store.get_execution(execution_id).status == ExecutionStatus.RUNNING


@pytest.fixture
def file_app(tmp_path, fake_redis):
    class _Config(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'livecode.db'}"
        EXECUTION_TEMP_DIR = str(tmp_path / "exec")
        EXECUTION_TIMEOUT_MS = 5000

    app = create_app(_Config)
    app.extensions['dead_letters'] = DeadLetterQueue(fake_redis, _Config.DEAD_LETTER_KEY)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def test_executions_of_one_session_run_concurrently(file_app):
    worker = file_app.extensions['execution_worker']
    store = file_app.extensions['execution_store']
    with file_app.app_context():
        session_id = Session_Service.create_session(source_code="print('hi')")["session_id"]
        good = str(store.create_execution(session_id).id)
        bad = str(store.create_execution(session_id).id)

    started = threading.Barrier(2)

    def process(execution_id, code):
        with file_app.app_context():
            started.wait(timeout=5)
            return worker.process(execution_id, "python", code)

    with ThreadPoolExecutor(max_workers=2) as pool:
        good_result = pool.submit(process, good, "import time\ntime.sleep(0.5)\nprint('hi')")
        bad_result = pool.submit(process, bad, "print('broken")
        results = [good_result.result(timeout=30), bad_result.result(timeout=30)]

    assert [r['status'] for r in results] == [ExecutionStatus.COMPLETED, ExecutionStatus.FAILED]
    with file_app.app_context():
        assert store.get_execution(good).stdout == "hi\n"
        assert store.get_execution(bad).status == ExecutionStatus.FAILED
        assert store.get_execution(bad).stdout is None
