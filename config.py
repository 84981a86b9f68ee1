import os
from dotenv import load_dotenv

load_dotenv()

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"

# Values that show up in copied .env templates instead of a real connection string
PLACEHOLDER_MARKERS = ("<your", "%3c", "your_db", "your-db", "placeholder")


def _int_env(name, default):
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


class Config:
    DATABASE_URL = os.getenv("DATABASE_URL")
    DATABASE_AUTH_TOKEN = os.getenv("DATABASE_AUTH_TOKEN")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
    GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")
    GENERATION_RETRIES = _int_env("GENERATION_RETRIES", 1)
    GENERATION_TIMEOUT = _int_env("GENERATION_TIMEOUT", 30)
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")


def gemini_api_url(api_key, model):
    return f"{GEMINI_API_BASE}/{model}:generateContent?key={api_key}"


def is_placeholder_url(url):
    """Return True when the database URL is missing or still a template value."""
    if not url:
        return True
    lower = url.lower()
    return any(marker in lower for marker in PLACEHOLDER_MARKERS)


def normalize_database_url(url):
    # Heroku/Render use postgres://, but SQLAlchemy needs postgresql://
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url
