# celery -A celery_worker.celery worker -Q code-execution
from livecode import create_app
from livecode.celery_app import celery

# Create Flask app; tasks push their own app context per job
app = create_app()

# Import tasks to register them with Celery
from livecode.tasks import execution_tasks  # noqa: E402,F401
