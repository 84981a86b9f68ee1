def test_app_factory_creates_app(app):
    # App fixture comes from tests/conftest.py
    assert app is not None
    assert app.testing is True
    assert app.extensions['database'].available is True
    assert app.extensions['session_store'] is not None


def test_api_blueprints_registered(app):
    rules = {rule.rule for rule in app.url_map.iter_rules()}
    for path in ('/api/users', '/api/resumes', '/api/interviews', '/api/questions', '/api/evaluations'):
        assert path in rules
    assert '/api/interviews/<interview_id>/generate-questions' in rules
    assert '/api/interviews/<interview_id>/session/<event>' in rules
    assert '/api/evaluations/summary' in rules


def test_missing_database_url_disables_api(make_app):
    app = make_app(DATABASE_URL=None)
    assert app.extensions['database'].available is False

    rv = app.test_client().get('/api/users')
    assert rv.status_code == 500
    body = rv.get_json()
    assert body['code'] == 'DATABASE_NOT_CONFIGURED'
    assert 'DATABASE_URL' in body['error']


def test_placeholder_database_url_disables_api(make_app):
    app = make_app(DATABASE_URL='libsql://<your-db>.turso.io')
    rv = app.test_client().post('/api/interviews', json={'userId': 1})
    assert rv.status_code == 500
    assert rv.get_json()['code'] == 'DATABASE_NOT_CONFIGURED'


def test_unknown_route_returns_json_404(client):
    rv = client.get('/api/does-not-exist')
    assert rv.status_code == 404
    assert rv.get_json()['code'] == 'NOT_FOUND'


def test_unexpected_error_returns_internal_error(app, client, monkeypatch):
    import routes.users as users_routes

    def _boom(*args, **kwargs):
        raise RuntimeError('boom')

    monkeypatch.setattr(users_routes, 'paginate', _boom)
    rv = client.get('/api/users')
    assert rv.status_code == 500
    assert rv.get_json() == {'error': 'Internal server error', 'code': 'INTERNAL_ERROR'}


def test_redis_unavailable_leaves_session_store_empty(make_app, monkeypatch):
    import redis

    def _refuse(*args, **kwargs):
        raise redis.exceptions.ConnectionError('refused')

    monkeypatch.setattr(redis, 'from_url', _refuse)
    app = make_app()
    assert app.extensions['session_store'] is None


def test_wrong_method_returns_json_405(client):
    rv = client.patch('/api/users')
    assert rv.status_code == 405
    assert rv.get_json()['code'] == 'METHOD_NOT_ALLOWED'


def test_auth_token_only_reaches_libsql_drivers(make_app):
    from extensions import auth_connect_args

    assert auth_connect_args('libsql://db.turso.io', 'tok') == {'auth_token': 'tok'}
    assert auth_connect_args('sqlite+libsql://db.turso.io', 'tok') == {'auth_token': 'tok'}
    assert auth_connect_args('postgresql://u@localhost/db', 'tok') is None
    assert auth_connect_args('libsql://db.turso.io', None) is None

    app = make_app(DATABASE_AUTH_TOKEN='tok')
    assert 'connect_args' not in (app.config.get('SQLALCHEMY_ENGINE_OPTIONS') or {})
    assert app.test_client().get('/api/users').status_code == 200
