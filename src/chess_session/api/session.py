"""Game session endpoints."""

from flask import request
from flask_restx import Namespace, Resource, fields

from ..errors import ValidationError
from ..identity import end_game_session, get_game_session
from ..models import Move
from ..transcript import validate_coordinate

ns = Namespace('session', description='Game session operations')

# API Models
move_model = ns.model('Move', {
    'from': fields.String(description='Origin square, e.g. e2'),
    'to': fields.String(description='Destination square, e.g. e4'),
    'promotion': fields.String(description='Promotion piece (q, r, b, n)'),
    'notation': fields.String(description='Notation recorded by the authority'),
    'type': fields.String(description='Move kind (normal, castling, en_passant, promotion)'),
})

projection_model = ns.model('SessionState', {
    'game_id': fields.Raw(description='Current remote game id (cache hint only)'),
    'move_history': fields.List(fields.Nested(move_model), description='Moves played so far'),
    'status': fields.String(description='Canonical game status'),
    'active_color': fields.String(description='Side to move'),
    'fen': fields.String(description='Position as reported by the authority'),
    'white_time_seconds': fields.Float(description='White clock'),
    'black_time_seconds': fields.Float(description='Black clock'),
    'orientation': fields.String(description='Board orientation'),
    'mode': fields.String(description='human_vs_ai or human_vs_human'),
    'human_color': fields.String(description='Color played by the human'),
    'transcript': fields.String(description='Current PGN-like transcript'),
    'busy': fields.Boolean(description='Whether an operation is in flight'),
    'ai_thinking': fields.Boolean(description='Whether an AI move is in flight'),
    'can_undo': fields.Boolean(description='Whether undo is available'),
})

move_request = ns.model('MoveRequest', {
    'from': fields.String(description='Origin square'),
    'to': fields.String(description='Destination square'),
    'promotion': fields.String(description='Promotion piece, required for promoting moves'),
    'move': fields.String(description='Coordinate move such as e2e4 or e7e8q'),
})

clock_request = ns.model('ClockRequest', {
    'white': fields.Float(required=True, description='White clock in seconds'),
    'black': fields.Float(required=True, description='Black clock in seconds'),
})


def _parse_move(data) -> Move:
    """Build a move from either a coordinate token or from/to squares."""
    if not isinstance(data, dict):
        raise ValidationError('Invalid move payload')
    if data.get('move'):
        return validate_coordinate(str(data['move']))
    return Move(
        from_square=data.get('from'),
        to_square=data.get('to'),
        promotion=data.get('promotion') or None,
    )


@ns.route('/state')
class SessionState(Resource):
    @ns.doc('get_session_state')
    @ns.marshal_with(projection_model)
    @ns.response(200, 'Success')
    def get(self):
        """Get the current session state, restoring the autosave on first use."""
        return get_game_session().projection()


@ns.route('/new')
class NewGame(Resource):
    @ns.doc('start_new_game')
    @ns.marshal_with(projection_model)
    @ns.response(200, 'New game started')
    @ns.response(503, 'Authority unreachable')
    def post(self):
        """Start a new game."""
        return get_game_session(start=False).new_game()


@ns.route('/move')
class MakeMove(Resource):
    @ns.doc('make_move')
    @ns.expect(move_request)
    @ns.marshal_with(projection_model)
    @ns.response(200, 'Move accepted')
    @ns.response(400, 'Invalid move format')
    @ns.response(422, 'Move rejected by the authority')
    def post(self):
        """Submit a move, regenerate the transcript and autosave."""
        move = _parse_move(request.get_json(silent=True))
        return get_game_session().apply_move(move)


@ns.route('/ai-move')
class AIMove(Resource):
    @ns.doc('ai_move')
    @ns.marshal_with(projection_model)
    @ns.response(200, 'AI move made')
    @ns.response(409, 'Another operation is in progress')
    def post(self):
        """Request the AI reply."""
        return get_game_session().request_ai_move()


@ns.route('/undo')
class UndoMove(Resource):
    @ns.doc('undo_move')
    @ns.marshal_with(projection_model)
    @ns.response(200, 'Move undone')
    @ns.response(409, 'Another operation is in progress')
    def post(self):
        """Undo by replaying the shortened history on a new game."""
        return get_game_session().undo()


@ns.route('/refresh')
class Refresh(Resource):
    @ns.doc('refresh_game')
    @ns.marshal_with(projection_model)
    @ns.response(200, 'Game refreshed')
    @ns.response(404, 'Remote game no longer exists')
    def post(self):
        """Re-read the remote game state."""
        return get_game_session().refresh()


@ns.route('/clock')
class Clock(Resource):
    @ns.doc('set_clock')
    @ns.expect(clock_request)
    @ns.marshal_with(projection_model)
    @ns.response(200, 'Clock updated')
    @ns.response(400, 'Invalid clock values')
    def put(self):
        """Record the clock values carried in snapshots."""
        data = request.get_json(silent=True) or {}
        return get_game_session().set_clock(data.get('white'), data.get('black'))


@ns.route('/')
class Session(Resource):
    @ns.doc('end_session')
    @ns.response(204, 'Session closed')
    def delete(self):
        """Dispose of the session; saved slots are kept."""
        end_game_session()
        return '', 204
