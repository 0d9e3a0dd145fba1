import os

from flask import Flask

from .config import load_config
from .extensions import init_extensions
from .logging_config import configure_logging


def create_app(config=None):
    """App factory shared by the local server and the Cloud Functions entry."""
    config = config or load_config()
    configure_logging(config.log_level)

    from .blueprints import register_blueprints
    from .middleware import register_request_hooks

    app = Flask(__name__)
    app.secret_key = config.flask_secret_key or os.urandom(32).hex()
    app.config['MAX_CONTENT_LENGTH'] = config.max_upload_bytes
    app.json.sort_keys = False

    init_extensions(app, config)
    register_request_hooks(app, sentry_enabled=app.extensions['study_buddy']['sentry_enabled'])
    register_blueprints(app)
    return app
