import uuid
from datetime import datetime
from livecode.models.db import db

SESSION_ACTIVE = "ACTIVE"
SESSION_ARCHIVED = "ARCHIVED"


class CodeSession(db.Model):
    __tablename__ = "code_sessions"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    language = db.Column(db.String(20), nullable=False)
    source_code = db.Column(db.Text, nullable=False, default="")
    status = db.Column(db.String(20), nullable=False, default=SESSION_ACTIVE)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    executions = db.relationship("Execution", backref="session", lazy=True)
