from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
from sqlalchemy.exc import SQLAlchemyError
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    allowed_origins = flask_app.config.get('CORS_ORIGINS', [])
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Wire the shared-state services once per app; handlers find them on app.extensions
    from arksync.services import build_services
    flask_app.extensions['arksync'] = build_services(flask_app, socketio)

    # Seed records and start the expiry poll on every entry path (run.py, flask run, WSGI)
    if flask_app.config.get('BOOTSTRAP_ON_START', True):
        from arksync.services.store import bootstrap_state
        with flask_app.app_context():
            try:
                bootstrap_state(flask_app)
            except SQLAlchemyError as exc:
                db.session.rollback()
                flask_app.logger.warning(f"[bootstrap] skipped, store unavailable: {exc}")
    from arksync.services.timer import start_poller
    start_poller(flask_app)

    from arksync.main import main
    flask_app.register_blueprint(main)

    from arksync.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    @click.command('init-state')
    def init_state_command():
        """Creates missing tables and seeds team records and the global timer."""
        from arksync.services.store import bootstrap_state
        with flask_app.app_context():
            created = bootstrap_state(flask_app)
            print(f'State initialized ({created} records created).')

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from arksync.services.store import bootstrap_state
        with flask_app.app_context():
            db.drop_all()
            bootstrap_state(flask_app)
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(init_state_command)
    flask_app.cli.add_command(db_reset_command)

    return flask_app
