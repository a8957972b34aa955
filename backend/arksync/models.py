from arksync import db
import json

GLOBAL_STATE_ID = 'global'


class TeamRecord(db.Model):
    __tablename__ = 'team_record'
    id = db.Column(db.Integer, primary_key=True)
    team_id = db.Column(db.String(32), unique=True, nullable=False, index=True)
    password = db.Column(db.String(128), nullable=False)
    progress_json = db.Column(db.Text, nullable=False, default='[]')  # JSON-encoded list of bools
    score_fields_json = db.Column(db.Text, nullable=False, default='{}')  # JSON-encoded {field: value}

    @property
    def progress(self):
        return json.loads(self.progress_json) if self.progress_json else []

    @progress.setter
    def progress(self, flags):
        self.progress_json = json.dumps([bool(f) for f in flags])

    @property
    def score_fields(self):
        return json.loads(self.score_fields_json) if self.score_fields_json else {}

    @score_fields.setter
    def score_fields(self, fields):
        self.score_fields_json = json.dumps({str(k): str(v) for k, v in fields.items()})

    def check_password(self, password):
        return password is not None and self.password == password

    def to_dict(self):
        # Passwords never leave the server
        return {
            'teamId': self.team_id,
            'progress': self.progress,
            'scoreFields': self.score_fields,
        }


class GlobalState(db.Model):
    __tablename__ = 'global_state'
    id = db.Column(db.String(32), primary_key=True, default=GLOBAL_STATE_ID)
    start_time = db.Column(db.Float, nullable=True)  # epoch seconds; None until first start
    duration = db.Column(db.Float, nullable=False)
    is_ended = db.Column(db.Boolean, default=False, nullable=False)

    @property
    def is_running(self):
        return self.start_time is not None and not self.is_ended

    def elapsed(self, now):
        if self.start_time is None:
            return 0.0
        return max(0.0, now - self.start_time)

    def to_dict(self):
        return {
            'id': self.id,
            'startTime': self.start_time,
            'duration': self.duration,
            'isEnded': bool(self.is_ended),
        }
