class SessionNotFound(LookupError):
    """Raised when an execution is requested for a session that does not exist."""

    def __init__(self, session_id):
        super().__init__(f"Session {session_id} not found")
        self.session_id = session_id
