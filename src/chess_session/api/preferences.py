"""Player preference endpoints."""

from flask import request
from flask_restx import Namespace, Resource, fields

from ..errors import ValidationError
from ..identity import get_client_id, get_game_session
from ..preferences import PreferencesStore

ns = Namespace('preferences', description='Player preferences')

preferences_model = ns.model('Preferences', {
    'player_name': fields.String(description='Display name'),
    'player_color': fields.String(description='white or black, applied to the next game'),
    'enable_undo': fields.Boolean(description='Whether undo is allowed'),
    'enable_hints': fields.Boolean(description='Whether hints are shown'),
    'enable_chat': fields.Boolean(description='Whether chat is shown'),
    'enable_timer': fields.Boolean(description='Whether clocks run'),
    'timer_mode': fields.String(description='count-up or count-down'),
    'time_limit': fields.Float(description='Minutes per side for count-down'),
})


def _store() -> PreferencesStore:
    return PreferencesStore(get_game_session(start=False).store.backend, get_client_id())


@ns.route('/')
class Preferences(Resource):
    @ns.doc('get_preferences')
    @ns.marshal_with(preferences_model)
    def get(self):
        """Return stored preferences, or defaults if none are valid."""
        return _store().load().to_dict()

    @ns.doc('update_preferences')
    @ns.expect(preferences_model)
    @ns.marshal_with(preferences_model)
    @ns.response(400, 'Invalid preference')
    def put(self):
        """Validate and store preference changes."""
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError('Invalid preferences payload')
        preferences = _store().update(data)
        get_game_session(start=False).apply_preferences(preferences)
        return preferences.to_dict()
