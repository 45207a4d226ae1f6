from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)


def _build_store(flask_app):
    from basecontrol.services.match.store import MemoryMatchStore, SqlMatchStore
    kind = flask_app.config.get('MATCH_STORE', 'sql')
    if kind == 'memory':
        return MemoryMatchStore(logger=flask_app.logger)
    if kind == 'sql':
        return SqlMatchStore(flask_app)
    raise ValueError(f"Unknown MATCH_STORE: {kind!r}")


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Ensure models are registered before migrations or create_all run
    from basecontrol import models  # noqa: F401

    # Import and register blueprints here
    from basecontrol.main import main
    flask_app.register_blueprint(main)

    from basecontrol.api.match import match
    flask_app.register_blueprint(match, url_prefix='/api/match')

    # One store and one session per app; the session opens lazily on first use
    from basecontrol.services.match.clock import default_base_ids
    from basecontrol.services.match.session import MatchSession
    store = _build_store(flask_app)
    flask_app.extensions['match_session'] = MatchSession(
        store,
        base_ids=default_base_ids(int(flask_app.config.get('BASE_COUNT', 4))),
        default_minutes=float(flask_app.config.get('DEFAULT_MATCH_MINUTES', 15)),
        logger=flask_app.logger,
    )

    # Register Socket.IO event handlers and push every store change to clients
    from basecontrol.socketio_events import register_socketio_handlers, broadcast_state
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))
    store.subscribe(broadcast_state)

    @click.command('db-reset')
    @click.option('--minutes', type=float, default=None, help='Match length for the fresh match.')
    def db_reset_command(minutes):
        """Drops, recreates, and seeds the database with a fresh match."""
        from basecontrol.services.match import get_session
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            get_session(flask_app).reset_game(minutes)
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
