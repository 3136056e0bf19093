"""Save slot endpoints (save/load/delete and autosave restore)."""

from flask_restx import Namespace, Resource, fields

from ..identity import get_game_session
from .session import projection_model

ns = Namespace('saves', description='Save slot operations')

# API Models
slot_model = ns.model('SaveSlot', {
    'slot': fields.Integer(description='Slot number (1-3)'),
    'empty': fields.Boolean(description='Whether the slot is empty'),
    'saved_at': fields.Integer(description='Save timestamp in epoch milliseconds'),
    'moves_count': fields.Integer(description='Number of plies in the snapshot'),
    'status': fields.String(description='Game status when saved'),
})

slots_response = ns.model('SaveSlotsResponse', {
    'slots': fields.List(fields.Nested(slot_model))
})

save_response = ns.model('SaveResponse', {
    'success': fields.Boolean(description='Whether the save succeeded'),
    'message': fields.String(description='Result message'),
    'slot': fields.Nested(slot_model, description='Slot after saving'),
})

restore_response = ns.model('RestoreResponse', {
    'restored': fields.Boolean(description='Whether an autosave was replayed'),
    'state': fields.Nested(projection_model, allow_null=True, description='Session state'),
})


def _slot_summary(slot, snapshot):
    if snapshot is None:
        return {'slot': slot, 'empty': True, 'saved_at': None, 'moves_count': 0, 'status': None}
    return {
        'slot': slot,
        'empty': False,
        'saved_at': snapshot.saved_at,
        'moves_count': len(snapshot.move_history),
        'status': snapshot.status.value,
    }


@ns.route('/')
class SaveSlots(Resource):
    @ns.doc('list_slots')
    @ns.marshal_with(slots_response)
    @ns.response(200, 'Slots listed')
    def get(self):
        """List the manual save slots."""
        store = get_game_session(start=False).store
        return {
            'slots': [_slot_summary(slot, snap) for slot, snap in store.list_slots().items()]
        }


@ns.route('/<int:slot>')
class SaveSlot(Resource):
    @ns.doc('save_slot')
    @ns.marshal_with(save_response)
    @ns.response(200, 'Saved')
    @ns.response(400, 'Slot out of range')
    def post(self, slot: int):
        """Save the current session to a slot, overwriting it."""
        snapshot = get_game_session().save(slot)
        return {
            'success': True,
            'message': f'Saved to slot {slot}',
            'slot': _slot_summary(slot, snapshot),
        }

    @ns.doc('delete_slot')
    @ns.response(204, 'Deleted')
    @ns.response(400, 'Slot out of range')
    def delete(self, slot: int):
        """Delete a save slot."""
        get_game_session(start=False).delete_slot(slot)
        return '', 204


@ns.route('/<int:slot>/load')
class LoadSlot(Resource):
    @ns.doc('load_slot')
    @ns.marshal_with(projection_model)
    @ns.response(200, 'Slot loaded')
    @ns.response(404, 'Slot empty')
    @ns.response(409, 'Another operation is in progress')
    def post(self, slot: int):
        """Rebuild the session from a slot by replaying its moves."""
        return get_game_session(start=False).load(slot)


@ns.route('/autosave/restore')
class RestoreAutosave(Resource):
    @ns.doc('restore_autosave')
    @ns.marshal_with(restore_response)
    @ns.response(200, 'Autosave checked')
    def post(self):
        """Replay the autosave, if there is one."""
        state = get_game_session(start=False).restore_autosave()
        return {'restored': state is not None, 'state': state}
