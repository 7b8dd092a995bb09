from celery import Celery

celery = Celery('livecode_execution')


def init_celery(app):
    """Configure the shared Celery app from a Flask app and bind it to that app."""
    celery.conf.update(
        broker_url=app.config['CELERY_BROKER_URL'],
        task_serializer='json',
        accept_content=['json'],
        timezone='UTC',
        enable_utc=True,
        imports=['livecode.tasks.execution_tasks'],  # Auto-discover tasks
        task_default_queue=app.config['QUEUE_NAME'],
        # a job is acknowledged only once processed, so a crashed worker's job is redelivered
        task_acks_late=True,
        task_reject_on_worker_lost=True,
        task_ignore_result=True,
        worker_prefetch_multiplier=1,
        worker_concurrency=app.config['WORKER_CONCURRENCY'],
        broker_transport_options={'visibility_timeout': app.config['CELERY_VISIBILITY_TIMEOUT']},
        task_always_eager=app.config['CELERY_TASK_ALWAYS_EAGER'],
        task_eager_propagates=app.config['CELERY_TASK_ALWAYS_EAGER'],
    )
    celery.flask_app = app
    return celery
