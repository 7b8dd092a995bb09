class ExecutionStatus:
    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    TIMEOUT = "TIMEOUT"

    ALL = (QUEUED, RUNNING, COMPLETED, FAILED, TIMEOUT)
    TERMINAL = frozenset({COMPLETED, FAILED, TIMEOUT})
