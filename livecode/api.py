from flask_restx import Api


def create_api(app):
    """Initialize API with Swagger documentation"""
    api = Api(
        version='1.0',
        title='LiveCode Execution API',
        description='API for live code editing and execution with asynchronous processing',
        doc='/docs',
        prefix='/api/v1'
    )
    api.init_app(app)

    # Register API namespaces
    from livecode.routes.session_api import ns as session_ns
    from livecode.routes.execution_api import ns as execution_ns
    api.add_namespace(session_ns, path='/code-sessions')
    api.add_namespace(execution_ns, path='/executions')
    return api
