"""State Store: the team records and the global timer singleton.

Every read goes to the database rather than the session identity map, so
callers holding a record lock decide against committed state. Every write
commits all the records it is given in one transaction, or none of them.
"""
from contextlib import contextmanager
from typing import List

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from arksync import db
from arksync.errors import NotFound, StoreUnavailable, TeamNotFound
from arksync.models import GLOBAL_STATE_ID, GlobalState, TeamRecord


class StateStore:

    @contextmanager
    def _guard(self, action: str):
        try:
            yield
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.error(f"[store-error] action={action} error={exc}")
            raise StoreUnavailable(f"State store unavailable during {action}") from exc

    def get(self, team_id: str) -> TeamRecord:
        with self._guard('get'):
            record = TeamRecord.query.filter_by(team_id=team_id).populate_existing().first()
        if record is None:
            raise TeamNotFound(team_id)
        return record

    def list_all(self) -> List[TeamRecord]:
        with self._guard('list_all'):
            return TeamRecord.query.order_by(TeamRecord.team_id).populate_existing().all()

    def upsert(self, *records: TeamRecord) -> None:
        with self._guard('upsert'):
            for record in records:
                db.session.add(record)
            db.session.commit()

    def get_global(self) -> GlobalState:
        with self._guard('get_global'):
            state = GlobalState.query.filter_by(id=GLOBAL_STATE_ID).populate_existing().first()
        if state is None:
            raise NotFound('Global state has not been initialized')
        return state

    def save_global(self, state: GlobalState) -> None:
        with self._guard('save_global'):
            db.session.add(state)
            db.session.commit()


def bootstrap_state(app) -> int:
    """Create tables and any missing team/global records. Safe to call repeatedly.

    Must run inside an app context. Returns how many records were created.
    """
    cfg = app.config
    db.create_all()
    created = 0
    length = int(cfg.get('PROGRESS_LENGTH', 5))
    for team_id, password in cfg.get('TEAM_PASSWORDS', {}).items():
        if TeamRecord.query.filter_by(team_id=team_id).first():
            continue
        record = TeamRecord(team_id=team_id, password=password)
        record.progress = [False] * length
        record.score_fields = {}
        db.session.add(record)
        created += 1
    if db.session.get(GlobalState, GLOBAL_STATE_ID) is None:
        db.session.add(GlobalState(
            id=GLOBAL_STATE_ID,
            start_time=None,
            duration=float(cfg.get('GAME_DURATION_SEC', 75 * 60)),
            is_ended=False,
        ))
        created += 1
    db.session.commit()
    if created:
        app.logger.info(f"[bootstrap] created={created} teams={list(cfg.get('TEAM_PASSWORDS', {}))}")
    return created
