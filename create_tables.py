import logging

from app import create_app
from extensions import db

logger = logging.getLogger(__name__)

# Create a Flask app instance to establish an application context
app = create_app()

if not app.extensions['database'].available:
    raise SystemExit("DATABASE_URL is not set. Please create a .env file or set the environment variable.")

# Flask-SQLAlchemy needs the app context to know which database to connect to.
with app.app_context():
    logger.info("Initializing database and creating tables...")

    # Only missing tables are created; existing ones are left alone.
    db.create_all()

    logger.info("Database tables created successfully!")
