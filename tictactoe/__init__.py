from flask import Flask
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_wtf.csrf import CSRFProtect
from authlib.integrations.flask_client import OAuth
from dotenv import load_dotenv
import os
import logging

load_dotenv()

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
csrf = CSRFProtect()
oauth = OAuth()

GOOGLE_DISCOVERY_URL = "https://accounts.google.com/.well-known/openid-configuration"


def create_app(test_config=None):
    if test_config is None:
        # Validate required environment variables
        required_vars = ['DATABASE_URL', 'SECRET_KEY']
        for var in required_vars:
            if not os.getenv(var):
                raise ValueError(f"Required environment variable {var} is not set")

    app = Flask(__name__)
    app.config.from_object('config')
    if test_config is not None:
        app.config.update(test_config)

    # Configure logging
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)

    login_manager.init_app(app)
    login_manager.login_view = 'auth.login_google'

    oauth.init_app(app)
    if app.config.get('GOOGLE_CLIENT_ID') and app.config.get('GOOGLE_CLIENT_SECRET'):
        # Client id and secret are read from GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET
        oauth.register(
            name='google',
            server_metadata_url=GOOGLE_DISCOVERY_URL,
            client_kwargs={'scope': 'openid email profile'},
        )

    # Store and identity handles live for the whole process
    from tictactoe.game.store import GameStore
    from tictactoe.core.identity import IdentityProvider

    app.extensions['game_store'] = GameStore(db)
    app.extensions['identity_provider'] = IdentityProvider(oauth)

    # Register blueprints
    from tictactoe.routes.main import main_bp
    from tictactoe.core.auth import auth_bp
    from tictactoe.game import tic_tac_toe_bp
    from tictactoe.game import commands as game_commands

    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(tic_tac_toe_bp, url_prefix='/tic-tac-toe')
    game_commands.init_app(app)

    # Import models to ensure they're known to Flask-SQLAlchemy
    from tictactoe.models import User, LogEntry
    from tictactoe.game.models import Game

    # User loader for Flask-Login
    @login_manager.user_loader
    def load_user(user_id):
        return User.query.get(int(user_id))

    return app
