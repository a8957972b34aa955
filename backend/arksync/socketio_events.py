from flask_socketio import join_room, leave_room, emit
from arksync import socketio
from flask import current_app, request
from arksync.errors import (
    AuthenticationFailed,
    InvalidRequest,
    NotAuthorized,
    NotFound,
    SyncError,
)
from arksync.services.broadcast import NAMESPACE
from arksync.services.sessions import OBSERVER_ROLE, Session
from functools import wraps


def _services():
    return current_app.extensions['arksync']


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _require(session, observer_only=False):
    if session is None:
        raise NotAuthorized('Login required')
    if observer_only and not session.is_observer:
        raise NotAuthorized('Only the observer may control the timer')


def _field(data, name, required=True):
    if data is not None and not isinstance(data, dict):
        raise InvalidRequest('Payload must be an object')
    value = (data or {}).get(name)
    if required and value in (None, ''):
        raise InvalidRequest(f"{name} is required")
    if value is not None and not isinstance(value, (str, int)):
        raise InvalidRequest(f"{name} must be a string or a number")
    return value


def _flag(data, name):
    value = _field(data, name)
    if not isinstance(value, bool):
        raise InvalidRequest(f"{name} must be true or false")
    return value


def _isolated(event_name):
    """Keep a failing request from affecting anyone but its own connection."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except NotFound as exc:
                current_app.logger.warning(f"[{event_name}-skip] {exc.message}")
            except SyncError as exc:
                current_app.logger.warning(f"[{event_name}-error] {exc.__class__.__name__}: {exc.message}")
                emit('error', {'event': event_name, 'message': exc.message})
        return wrapper
    return decorator


def handle_connect():
    emit('connected', {'message': f'Connected to {NAMESPACE}'})


def handle_disconnect(*_args):
    session = _services().sessions.remove(_get_sid())
    if session:
        current_app.logger.info(f"[disconnect] sid={session.sid} room={session.room}")


def _authenticate(team_id, password) -> Session:
    cfg = current_app.config
    sid = _get_sid()
    if not isinstance(team_id, str) or not isinstance(password, str):
        raise AuthenticationFailed('teamId and password are required')
    if team_id == cfg.get('OBSERVER_ID'):
        if password != cfg.get('OBSERVER_PASSWORD'):
            raise AuthenticationFailed('Invalid observer password')
        return Session(sid=sid, role=OBSERVER_ROLE)
    try:
        team = _services().store.get(team_id)
    except NotFound:
        raise AuthenticationFailed('Invalid team or password')
    if not team.check_password(password):
        raise AuthenticationFailed('Invalid team or password')
    return Session(sid=sid, role='team', team_id=team.team_id)


def handle_login(data):
    data = data if isinstance(data, dict) else {}
    team_id = data.get('teamId')
    password = data.get('password')
    services = _services()
    try:
        session = _authenticate(team_id, password)
    except AuthenticationFailed as exc:
        current_app.logger.info(f"[login-failed] sid={_get_sid()} teamId={team_id!r}")
        emit('loginError', {'message': exc.message})
        return
    except SyncError as exc:
        emit('loginError', {'message': exc.message})
        return

    previous = services.sessions.register(session)
    if previous and previous.room != session.room:
        leave_room(previous.room)
    join_room(session.room)
    current_app.logger.info(f"[login] sid={session.sid} room={session.room}")

    if session.is_observer:
        emit('loginSuccess', {'teamId': current_app.config.get('OBSERVER_ID'), 'isObserver': True})
    else:
        emit('loginSuccess', {'teamId': session.team_id, 'isObserver': False})
    try:
        services.broadcaster.send_snapshot(session.sid)
    except SyncError as exc:
        emit('error', {'event': 'login', 'message': exc.message})


@_isolated('updateProgress')
def handle_update_progress(data):
    services = _services()
    _require(services.sessions.get(_get_sid()))
    services.engine.set_progress(
        _field(data, 'teamId'),
        _field(data, 'index'),
        _flag(data, 'checked'),
    )


@_isolated('updateScoreField')
def handle_update_score_field(data):
    services = _services()
    _require(services.sessions.get(_get_sid()))
    services.engine.set_score_field(
        _field(data, 'teamId'),
        _field(data, 'fieldId'),
        _field(data, 'value', required=False),
    )


@_isolated('tryLockFirst')
def handle_try_lock_first(data):
    services = _services()
    _require(services.sessions.get(_get_sid()))
    contract = services.engine.contracts.resolve(
        _field(data, 'fieldId'),
        win_value=_field(data, 'winValue', required=False),
        lose_value=_field(data, 'loseValue', required=False),
        opponent_field_id=_field(data, 'opponentFieldId', required=False),
    )
    # A lost claim is silent: the requester learns of it from the winner's broadcast
    services.engine.try_claim(_field(data, 'teamId'), contract, _field(data, 'opponentTeamId'))


@_isolated('adminStartTimer')
def handle_admin_start_timer(*_args):
    services = _services()
    _require(services.sessions.get(_get_sid()), observer_only=True)
    services.timer.start()


@_isolated('adminEndGame')
def handle_admin_end_game(*_args):
    services = _services()
    _require(services.sessions.get(_get_sid()), observer_only=True)
    services.timer.force_end()


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on the '/ws' namespace."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('login', handle_login, namespace=NAMESPACE)
    socketio.on_event('updateProgress', handle_update_progress, namespace=NAMESPACE)
    socketio.on_event('updateScoreField', handle_update_score_field, namespace=NAMESPACE)
    socketio.on_event('tryLockFirst', handle_try_lock_first, namespace=NAMESPACE)
    socketio.on_event('adminStartTimer', handle_admin_start_timer, namespace=NAMESPACE)
    socketio.on_event('adminEndGame', handle_admin_end_game, namespace=NAMESPACE)
