from flask import Blueprint, current_app

from .users import users_bp
from .resumes import resumes_bp
from .interviews import interviews_bp
from .questions import questions_bp
from .evaluations import evaluations_bp
from .sessions import sessions_bp

# All JSON endpoints hang off /api
api_bp = Blueprint('api', __name__, url_prefix='/api')

for child in (users_bp, resumes_bp, interviews_bp, questions_bp, evaluations_bp, sessions_bp):
    api_bp.register_blueprint(child)


@api_bp.before_request
def require_database():
    current_app.extensions['database'].require()


def init_app(app, redis_conn):
    """Registers the API blueprint and hands the session store to the routes."""
    app.extensions['session_store'] = redis_conn
    app.register_blueprint(api_bp)
