"""Session API with Swagger documentation."""

from flask import Blueprint, current_app
from flask_restx import Api

from ..errors import ChessSessionError, ReplayFailed

# Create the main API blueprint
api_bp = Blueprint('api', __name__, url_prefix='/api')

# Create the API with Swagger documentation
api = Api(
    api_bp,
    version='1.0',
    title='Chess Session API',
    description='Session reconstruction, save slots and transcripts for the chess UI',
    doc='/docs',
    authorizations={
        'session': {
            'type': 'apiKey',
            'in': 'cookie',
            'name': 'session'
        }
    }
)


@api.errorhandler(ChessSessionError)
def handle_session_error(error):
    """Report session-layer failures as typed JSON errors."""
    body = {
        'success': False,
        'error': type(error).__name__,
        'message': str(error),
    }
    if isinstance(error, ReplayFailed):
        body['completed_count'] = error.completed_count
        body['failed_at'] = error.failed_at
        if error.error is not None:
            body['cause'] = type(error.error).__name__
    if error.status_code >= 500:
        current_app.logger.warning('%s: %s', body['error'], error)
    return body, error.status_code


# Import and register namespaces
from .session import ns as session_ns
from .saves import ns as saves_ns
from .transcript import ns as transcript_ns
from .preferences import ns as preferences_ns

api.add_namespace(session_ns)
api.add_namespace(saves_ns)
api.add_namespace(transcript_ns)
api.add_namespace(preferences_ns)
