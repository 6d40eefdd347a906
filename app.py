import logging
import secrets
import click
from flask import Flask
from flask_cors import CORS
from flask_login import LoginManager
from werkzeug.middleware.proxy_fix import ProxyFix

# Import database instance
from database import db
from config import Config
from exceptions import AuthorizationError

CORS_HEADERS = ['authorization', 'x-client-info', 'apikey', 'content-type']

login_manager = LoginManager()

@login_manager.request_loader
def load_user_from_request(request):
    """Resolve the calling user from an ``Authorization: Bearer <token>`` header"""
    from models import User

    auth_header = request.headers.get('Authorization', '')
    scheme, _, token = auth_header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None

    return User.query.filter_by(api_token=token.strip()).first()

@login_manager.unauthorized_handler
def unauthorized():
    raise AuthorizationError()

def create_app(config_overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Configure logging
    logging.basicConfig(level=app.config.get("LOG_LEVEL", "INFO"))

    # Browsers send a preflight before calling the JSON API from another origin
    CORS(app,
         resources={r"/api/*": {"origins": app.config["ALLOWED_ORIGINS"]}},
         allow_headers=CORS_HEADERS,
         send_wildcard=True)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)

    # Initialize extensions
    db.init_app(app)
    login_manager.init_app(app)

    # Import routes and register them with the app
    from routes import register_routes
    register_routes(app)

    register_commands(app)

    with app.app_context():
        # Import models to create tables
        import models  # noqa: F401

        db.create_all()

    return app

def register_commands(app):
    @app.cli.command('create-user')
    @click.argument('username')
    @click.argument('email')
    def create_user(username, email):
        """Create a user and print its API token"""
        from models import User

        if User.query.filter_by(username=username).first():
            raise click.ClickException(f"User {username} already exists")

        user = User(username=username, email=email, api_token=secrets.token_urlsafe(32))
        db.session.add(user)
        db.session.commit()
        logging.info(f"Created user {username}")
        click.echo(user.api_token)

    @app.cli.command('process-matches')
    @click.option('--limit', type=int, default=None, help='Maximum number of work items to run')
    def process_matches(limit):
        """Run pending candidate matching once, outside the background worker"""
        from matching import process_pending_matches

        processed = process_pending_matches(limit)
        click.echo(f"Processed {processed} pending match(es)")
