from flask import Flask, current_app
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
allowed_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)


def get_arena():
    """The match core bound to the current application."""
    return current_app.extensions['arena']


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    flask_app.extensions['arena'] = _build_arena(flask_app)

    # Import and register blueprints here
    from arena.main import main
    flask_app.register_blueprint(main)

    from arena.api.matches import matches
    # Mount match routes under /api to match frontend API client
    flask_app.register_blueprint(matches, url_prefix='/api')

    # Register Socket.IO event handlers
    from arena.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    # Flask-Login user loader
    from arena.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from arena.models import User, Topic
        from arena.services.store import FALLBACK_TOPICS
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            # Seed users
            users = ['testuser1', 'testuser2', 'testuser3']
            for u in users:
                user = User(username=u)
                user.set_password('password')
                db.session.add(user)

            for topic in FALLBACK_TOPICS:
                db.session.add(Topic(title=topic['title'], description=topic['description']))

            db.session.commit()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app


def _build_arena(flask_app):
    from arena.services.matches import Arena
    from arena.services.matches.broadcast import SocketIOBroadcaster
    from arena.services.oracle import build_oracle
    from arena.services.store import ResultStore, TopicProvider

    cfg = flask_app.config
    # Background work runs inline under test for deterministic control flow
    inline = cfg.get('TESTING') and not cfg.get('ENABLE_CLOCK_IN_TESTS')
    options = {}
    if not inline:
        options['spawn'] = socketio.start_background_task
        options['sleep'] = socketio.sleep
    return Arena(
        oracle=cfg.get('ARENA_ORACLE') or build_oracle(cfg),
        store=ResultStore(flask_app),
        topics=TopicProvider(flask_app),
        broadcaster=SocketIOBroadcaster(socketio),
        tick_interval=float(cfg.get('TICK_INTERVAL_SEC', 1.0)),
        heartbeat_sec=int(cfg.get('CLOCK_HEARTBEAT_SEC', 0)),
        grace_seconds=float(cfg.get('MATCH_EVICTION_GRACE_SEC', 300)),
        rating_window=int(cfg.get('RANKED_RATING_WINDOW', 200)),
        default_rating=int(cfg.get('DEFAULT_RATING', 1000)),
        transcriber_factory=cfg.get('TRANSCRIBER_FACTORY'),
        **options,
    )
