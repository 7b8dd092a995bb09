from flask_restx import Namespace, Resource, fields
from kombu.exceptions import OperationalError
from livecode.services.code_session_service import Session_Service
from livecode.services.code_execution_service import CodeExecutionService

# Create namespace
ns = Namespace('code-sessions', description='Code session operations')

# Define models for Swagger documentation
session_create_model = ns.model('SessionCreate', {
    'language': fields.String(
        required=False,
        default='python',
        description='Programming language (python, javascript)',
        example='python'
    ),
    'source_code': fields.String(required=False, default='', description='Source code')
})

session_update_model = ns.model('SessionUpdate', {
    'language': fields.String(required=False, description='Programming language (python, javascript)'),
    'source_code': fields.String(required=False, description='Source code')
})

session_response_model = ns.model('SessionResponse', {
    'session_id': fields.String(description='Session ID'),
    'status': fields.String(description='Session status', enum=['ACTIVE', 'ARCHIVED']),
    'language': fields.String(description='Programming language'),
    'source_code': fields.String(description='Source code'),
    'created_at': fields.String(description='Creation timestamp'),
    'updated_at': fields.String(description='Update timestamp')
})

session_brief_response_model = ns.model('SessionBriefResponse', {
    'session_id': fields.String(description='Session ID'),
    'status': fields.String(description='Session status')
})

execution_queued_model = ns.model('ExecutionQueued', {
    'execution_id': fields.String(description='Execution ID'),
    'status': fields.String(description='Execution status')
})

error_model = ns.model('Error', {
    'message': fields.String(description='Error message')
})


@ns.route('')
class SessionList(Resource):
    @ns.doc('create_session')
    @ns.expect(session_create_model, validate=False)  # Disable strict validation
    @ns.marshal_with(session_brief_response_model, code=201)
    @ns.response(201, 'Session created successfully')
    @ns.response(400, 'Invalid request data')
    def post(self):
        """Create a new live coding session

        Example payload:
        {
            "language": "python",
            "source_code": "print('Hello World!')"
        }
        """
        data = ns.payload or {}
        language = data.get('language') or 'python'
        source_code = data.get('source_code') or ''
        if not isinstance(language, str) or not isinstance(source_code, str):
            ns.abort(400, 'language and source_code must be strings')

        result = Session_Service.create_session(language=language, source_code=source_code)
        return result, 201


@ns.route('/<string:session_id>')
@ns.param('session_id', 'The session identifier')
class SessionDetail(Resource):
    @ns.doc('get_session')
    @ns.marshal_with(session_response_model)
    @ns.response(404, 'Session not found', error_model)
    def get(self, session_id):
        """Get session details"""
        result = Session_Service.get_session(session_id=session_id)

        if result is None:
            ns.abort(404, "Session not found")

        return result, 200

    @ns.doc('update_session')
    @ns.expect(session_update_model)
    @ns.marshal_with(session_brief_response_model)
    @ns.response(404, 'Session not found', error_model)
    def patch(self, session_id):
        """Autosave the learner's current source code"""
        data = ns.payload or {}
        language = data.get('language')
        source_code = data.get('source_code')

        result = Session_Service.update_session(session_id=session_id, language=language, source_code=source_code)

        if result is None:
            ns.abort(404, "Session not found")

        return result, 200

    @ns.doc('archive_session')
    @ns.marshal_with(session_brief_response_model)
    @ns.response(404, 'Session not found', error_model)
    def delete(self, session_id):
        """Archive a session (its execution history is kept)"""
        result = Session_Service.archive_session(session_id=session_id)

        if result is None:
            ns.abort(404, "Session not found")

        return result, 200


@ns.route('/<string:session_id>/run')
@ns.param('session_id', 'The session identifier')
class SessionRun(Resource):
    @ns.doc('run_session_code')
    @ns.marshal_with(execution_queued_model, code=202)
    @ns.response(202, 'Execution queued successfully')
    @ns.response(404, 'Session not found', error_model)
    @ns.response(503, 'Job queue unavailable', error_model)
    def post(self, session_id):
        """Execute the current code asynchronously

        Returns immediately with execution ID and QUEUED status
        """
        try:
            result = CodeExecutionService.execute_code(session_id)
        except OperationalError:
            ns.abort(503, "Job queue unavailable")

        if result is None:
            ns.abort(404, "Session not found")

        return result, 202
