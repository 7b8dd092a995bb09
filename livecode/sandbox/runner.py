import logging
import os
import selectors
import signal
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from livecode.models.status import ExecutionStatus
from livecode.sandbox.languages import build_runtimes

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Execution Timed Out"


@dataclass(frozen=True)
class Completed:
    """The process exited before the deadline, whatever its exit code."""
    stdout: str
    stderr: str
    duration_ms: int

    status = ExecutionStatus.COMPLETED


@dataclass(frozen=True)
class Failed:
    """The job could not be run at all."""
    message: str
    duration_ms: int = 0

    status = ExecutionStatus.FAILED
    stdout = None

    @property
    def stderr(self):
        return self.message


@dataclass(frozen=True)
class TimedOut:
    duration_ms: int

    status = ExecutionStatus.TIMEOUT
    stdout = None
    stderr = TIMEOUT_MESSAGE


def _elapsed_ms(started_at):
    return int((time.monotonic() - started_at) * 1000)


class _Settlement:
    """Cancellation token shared by the process wait and the deadline timer.

    The first side to settle wins; the other learns it lost and backs off.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.winner = None

    def settle(self, side):
        with self._lock:
            if self.winner is None:
                self.winner = side
                return True
            return False


class _PipeDrain(threading.Thread):
    """Reads stdout and stderr as data arrives until EOF or until stopped.

    Keeps a chatty child from blocking on a full pipe, and lets the runner
    walk away from pipes still held open by descendants it cannot kill.
    """

    def __init__(self, stdout, stderr):
        super().__init__(daemon=True)
        self._pipes = (stdout, stderr)
        self._chunks = {pipe.fileno(): [] for pipe in self._pipes}
        self._stopped = threading.Event()

    def run(self):
        with selectors.DefaultSelector() as selector:
            for pipe in self._pipes:
                selector.register(pipe, selectors.EVENT_READ)
            while selector.get_map() and not self._stopped.is_set():
                for key, _ in selector.select(timeout=0.1):
                    data = os.read(key.fd, 65536)
                    if data:
                        self._chunks[key.fd].append(data)
                    else:
                        selector.unregister(key.fileobj)

    def stop(self):
        self._stopped.set()
        self.join()
        for pipe in self._pipes:
            pipe.close()

    def collect(self, grace):
        """Wait up to ``grace`` seconds for EOF, then return what was read."""
        self.join(grace)
        reached_eof = not self.is_alive()
        self.stop()
        stdout, stderr = (
            b''.join(self._chunks[fd]).decode('utf-8', errors='replace')
            for fd in self._chunks
        )
        return stdout, stderr, reached_eof


def _kill_process_group(proc):
    try:
        if os.name == 'nt':
            proc.kill()
        else:
            # the child leads its own session, so this also reaches its children
            os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
    except PermissionError:
        proc.kill()


class SandboxRunner:
    """Runs one source file per job in a subprocess bounded by a wall-clock timeout."""

    def __init__(self, temp_dir, timeout_ms=5000, runtimes=None, drain_grace_ms=500):
        self.temp_dir = Path(temp_dir)
        self.timeout_ms = timeout_ms
        self.runtimes = runtimes if runtimes is not None else build_runtimes()
        self.drain_grace_ms = drain_grace_ms

    @classmethod
    def from_config(cls, config):
        return cls(
            config['EXECUTION_TEMP_DIR'],
            timeout_ms=config['EXECUTION_TIMEOUT_MS'],
            runtimes=build_runtimes(config['PYTHON_INTERPRETER'], config['NODE_INTERPRETER']),
        )

    def source_path(self, execution_id, runtime):
        return self.temp_dir / f"{execution_id}{runtime.extension}"

    def run(self, execution_id, language, source_code, started_at=None):
        """Run ``source_code`` and classify the result.

        ``started_at`` is the ``time.monotonic()`` reading taken when the
        job was leased; durations are measured from it. The source file is
        removed on every path out of this method.
        """
        if started_at is None:
            started_at = time.monotonic()

        runtime = self.runtimes.get(language)
        if runtime is None:
            logger.error(f"Unsupported language: {language}")
            return Failed(f"Unsupported language: {language}", _elapsed_ms(started_at))

        source_path = self.source_path(execution_id, runtime)
        try:
            if runtime.syntax_check is not None:
                error = runtime.syntax_check(source_code, source_path.name)
                if error:
                    logger.warning(f"Execution {execution_id}: {language} source does not compile")
                    return Failed(error, _elapsed_ms(started_at))

            self.temp_dir.mkdir(parents=True, exist_ok=True)
            source_path.write_text(source_code, encoding='utf-8')

            logger.info(f"Executing {language} code for execution {execution_id} (timeout: {self.timeout_ms}ms)")
            return self._race(execution_id, runtime.command(source_path), started_at)
        except Exception as e:
            logger.error(f"Execution {execution_id} could not be run: {e}")
            return Failed(str(e) or type(e).__name__, _elapsed_ms(started_at))
        finally:
            self._cleanup(source_path)

    def _race(self, execution_id, command, started_at):
        proc = subprocess.Popen(
            command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            cwd=str(self.temp_dir),
            start_new_session=os.name != 'nt',
        )
        drain = _PipeDrain(proc.stdout, proc.stderr)
        drain.start()
        settlement = _Settlement()

        def on_deadline():
            if settlement.settle('deadline'):
                _kill_process_group(proc)

        timer = threading.Timer(self.timeout_ms / 1000, on_deadline)
        timer.daemon = True
        timer.start()
        try:
            # the race is decided by the process exiting, not by its pipes closing
            proc.wait()
        except Exception:
            if settlement.settle('error'):
                _kill_process_group(proc)
            drain.stop()
            proc.wait()
            raise
        finally:
            timer.cancel()

        if not settlement.settle('exit'):
            # the group is already killed; whatever the drain read is dropped
            drain.stop()
            logger.warning(f"Execution {execution_id} exceeded {self.timeout_ms}ms and was killed")
            return TimedOut(_elapsed_ms(started_at))

        duration_ms = _elapsed_ms(started_at)
        # anything the program left running in its group goes with it
        _kill_process_group(proc)
        stdout, stderr, reached_eof = drain.collect(self.drain_grace_ms / 1000)
        if not reached_eof:
            logger.warning(f"Execution {execution_id}: output pipes held open by a detached process; output may be incomplete")

        if proc.returncode != 0:
            logger.info(f"Execution {execution_id} exited with return code {proc.returncode}")
        return Completed(stdout, stderr, duration_ms)

    def _cleanup(self, source_path):
        try:
            source_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to clean up {source_path}: {e}")
