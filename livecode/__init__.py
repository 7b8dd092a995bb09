import logging
from flask import Flask, jsonify
from livecode.config import Config
from livecode.models.db import db
from livecode.celery_app import init_celery
from livecode.api import create_api


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )

    db.init_app(app)
    init_celery(app)

    with app.app_context():
        from livecode.models import code_sessions_model, execution_model
        db.create_all()

    _init_execution_pipeline(app)

    create_api(app)

    from livecode.routes import health_routes
    app.register_blueprint(health_routes.bp)

    @app.route("/")
    def home():
        return jsonify({
            "message": "LiveCode Execution API is running!",
            "status": "success",
            "documentation": "/docs"
        })

    return app


def _init_execution_pipeline(app):
    """Build the clients the request layer and the workers share, once per app."""
    from livecode.queue.dead_letters import DeadLetterQueue
    from livecode.queue.producer import ExecutionProducer
    from livecode.sandbox.runner import SandboxRunner
    from livecode.services.execution_store import ExecutionStore
    from livecode.services.execution_worker import ExecutionWorker
    from livecode.tasks.execution_tasks import execute_code_task

    store = ExecutionStore(db)
    runner = SandboxRunner.from_config(app.config)

    app.extensions['execution_store'] = store
    app.extensions['sandbox_runner'] = runner
    app.extensions['execution_worker'] = ExecutionWorker(
        store, runner, max_output_size=app.config['MAX_OUTPUT_SIZE']
    )
    app.extensions['execution_producer'] = ExecutionProducer(
        execute_code_task,
        queue=app.config['QUEUE_NAME'],
        publish_retries=app.config['JOB_ATTEMPTS'] - 1,
        publish_interval=app.config['JOB_BACKOFF_MS'] / 1000,
    )
    app.extensions['dead_letters'] = DeadLetterQueue.from_url(
        app.config['REDIS_URL'], app.config['DEAD_LETTER_KEY']
    )
