import uuid
from datetime import datetime
from livecode.models.db import db
from livecode.models.status import ExecutionStatus


class Execution(db.Model):
    __tablename__ = "executions"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    session_id = db.Column(db.Uuid, db.ForeignKey("code_sessions.id"), nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False, default=ExecutionStatus.QUEUED)
    stdout = db.Column(db.Text)
    stderr = db.Column(db.Text)
    execution_time_ms = db.Column(db.Integer)
    queued_at = db.Column(db.DateTime)
    started_at = db.Column(db.DateTime)
    finished_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def is_terminal(self):
        return self.status in ExecutionStatus.TERMINAL
