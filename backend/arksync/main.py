from flask import Blueprint, current_app, jsonify
from arksync.errors import NotFound, StoreUnavailable
from arksync.services.sessions import OBSERVER_ROOM

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Ark shared-state server!'})


@main.route('/api/health')
def health():
    sessions = current_app.extensions['arksync'].sessions
    return jsonify({
        'status': 'ok',
        'sessions': len(sessions),
        'observers': len(sessions.sids_in(OBSERVER_ROOM)),
    })


@main.route('/api/state')
def get_state():
    broadcaster = current_app.extensions['arksync'].broadcaster
    try:
        return jsonify({'teams': broadcaster.teams_payload(), 'global': broadcaster.global_payload()})
    except NotFound as exc:
        return jsonify({'error': exc.message}), 404
    except StoreUnavailable as exc:
        return jsonify({'error': exc.message}), 503
