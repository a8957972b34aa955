import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from arksync import db
from arksync.errors import NotFound, StoreUnavailable, TeamNotFound
from arksync.models import TeamRecord
from arksync.services.store import StateStore, bootstrap_state


def test_bootstrap_creates_teams_and_global(flask_app):
    store = StateStore()
    teams = store.list_all()
    assert [t.team_id for t in teams] == ['A', 'B']
    for team in teams:
        assert team.progress == [False] * 5
        assert team.score_fields == {}
    state = store.get_global()
    assert state.start_time is None
    assert state.duration == 75
    assert state.is_ended is False


def test_bootstrap_is_idempotent(flask_app):
    assert bootstrap_state(flask_app) == 0
    assert TeamRecord.query.count() == 2


def test_bootstrap_does_not_overwrite_existing_records(flask_app):
    store = StateStore()
    team = store.get('A')
    team.score_fields = {'first': '60'}
    store.upsert(team)
    bootstrap_state(flask_app)
    assert store.get('A').score_fields == {'first': '60'}


def test_get_unknown_team_raises(flask_app):
    with pytest.raises(TeamNotFound) as exc:
        StateStore().get('Z')
    assert isinstance(exc.value, NotFound)
    assert exc.value.team_id == 'Z'


def test_upsert_commits_all_records_together(flask_app):
    store = StateStore()
    a, b = store.get('A'), store.get('B')
    a.score_fields = {'x': '1'}
    b.progress = [True, False, False, False, False]
    store.upsert(a, b)
    db.session.expire_all()
    assert store.get('A').score_fields == {'x': '1'}
    assert store.get('B').progress[0] is True


def test_team_snapshot_hides_password(flask_app):
    payload = StateStore().get('A').to_dict()
    assert payload == {'teamId': 'A', 'progress': [False] * 5, 'scoreFields': {}}


def test_store_failure_rolls_back_and_raises(flask_app, monkeypatch):
    store = StateStore()
    team = store.get('A')
    team.score_fields = {'first': '60'}

    def _boom(self):
        raise OperationalError('COMMIT', {}, Exception('database is gone'))

    monkeypatch.setattr(Session, 'commit', _boom)
    with pytest.raises(StoreUnavailable):
        store.upsert(team)
    monkeypatch.undo()
    assert store.get('A').score_fields == {}


def test_app_factory_seeds_state_without_explicit_bootstrap(flask_app):
    # flask_app only calls create_app
    assert TeamRecord.query.count() == 2
    assert StateStore().get_global().duration == 75
