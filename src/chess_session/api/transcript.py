"""Transcript export/import endpoints."""

from flask import request
from flask_restx import Namespace, Resource, fields

from ..errors import ValidationError
from ..identity import get_game_session
from .session import projection_model

ns = Namespace('transcript', description='PGN-like transcript operations')

# API Models
export_response = ns.model('ExportResponse', {
    'success': fields.Boolean(description='Whether there was anything to export'),
    'pgn': fields.String(description='Game transcript'),
    'fen': fields.String(description='Current position as reported by the authority'),
})

import_request = ns.model('ImportRequest', {
    'pgn': fields.String(required=True, description='Transcript using coordinate moves (e2e4)')
})


@ns.route('/')
class ExportTranscript(Resource):
    @ns.doc('export_transcript', params={'format': 'notation (default) or coordinate'})
    @ns.marshal_with(export_response)
    @ns.response(200, 'Transcript exported')
    def get(self):
        """Export the current game; an empty transcript means nothing to export."""
        game_session = get_game_session()
        coordinate = request.args.get('format', 'notation') == 'coordinate'
        text = game_session.export_transcript(coordinate=coordinate)
        game = game_session.game
        return {
            'success': bool(text),
            'pgn': text,
            'fen': game.fen if game else None,
        }


@ns.route('/import')
class ImportTranscript(Resource):
    @ns.doc('import_transcript')
    @ns.expect(import_request)
    @ns.marshal_with(projection_model)
    @ns.response(200, 'Transcript imported')
    @ns.response(400, 'No importable moves')
    @ns.response(422, 'A move was rejected during replay')
    def post(self):
        """Replay the coordinate moves of a transcript on a new game."""
        data = request.get_json(silent=True) or {}
        text = data.get('pgn')
        if not isinstance(text, str) or not text.strip():
            raise ValidationError('Invalid import payload')
        return get_game_session(start=False).import_transcript(text)
