import logging

from flask_sqlalchemy import SQLAlchemy

from config import is_placeholder_url, normalize_database_url
from errors import DatabaseNotConfigured

logger = logging.getLogger(__name__)

db = SQLAlchemy()

# URL schemes whose drivers accept an auth_token connect argument
AUTH_TOKEN_SCHEMES = ('libsql', 'sqlite+libsql')


def auth_connect_args(url, token):
    """Driver arguments carrying DATABASE_AUTH_TOKEN, for dialects that take one."""
    if not token or not url.startswith(AUTH_TOKEN_SCHEMES):
        return None
    return {'auth_token': token}


class Database:
    """Optional database dependency, decided once at startup.

    When no usable DATABASE_URL is configured the app still boots, but
    `available` stays False and `require()` fails every request with a
    configuration error instead of crashing on import.
    """

    def __init__(self):
        self.available = False
        self.url = None

    def init_app(self, app):
        raw_url = app.config.get('DATABASE_URL')
        if is_placeholder_url(raw_url):
            logger.warning(
                "Database disabled: DATABASE_URL is missing or a placeholder. "
                "Set DATABASE_URL (and DATABASE_AUTH_TOKEN if needed) in .env."
            )
            self.available = False
            app.extensions['database'] = self
            return

        self.url = normalize_database_url(raw_url)
        app.config['SQLALCHEMY_DATABASE_URI'] = self.url
        connect_args = auth_connect_args(self.url, app.config.get('DATABASE_AUTH_TOKEN'))
        if connect_args:
            options = dict(app.config.get('SQLALCHEMY_ENGINE_OPTIONS') or {})
            options['connect_args'] = connect_args
            app.config['SQLALCHEMY_ENGINE_OPTIONS'] = options
        elif app.config.get('DATABASE_AUTH_TOKEN'):
            logger.warning("DATABASE_AUTH_TOKEN ignored: the %s driver does not take one", self.url.split(':', 1)[0])

        db.init_app(app)
        self.available = True
        app.extensions['database'] = self
        logger.info("Database client initialized.")

    def require(self):
        if not self.available:
            raise DatabaseNotConfigured()
