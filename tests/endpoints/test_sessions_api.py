import pytest


def _event(client, interview_id, event, **body):
    return client.post(f'/api/interviews/{interview_id}/session/{event}', json=body)


def _ready_session(client, interview_id):
    assert client.post(f'/api/interviews/{interview_id}/session').status_code == 201
    rv = _event(client, interview_id, 'grant-permissions')
    assert rv.status_code == 200
    return rv.get_json()


def _question(client, question_id):
    return client.get(f'/api/questions?id={question_id}').get_json()


def test_open_session_is_idempotent(client, interview, frozen_clock):
    rv = client.post(f"/api/interviews/{interview['id']}/session")
    assert rv.status_code == 201
    data = rv.get_json()
    assert data['state'] == 'awaiting_permissions'
    assert data['timePerQuestion'] == 180
    assert data['totalDuration'] == 900

    rv = _event(client, interview['id'], 'open')
    assert rv.status_code == 200
    assert rv.get_json()['state'] == 'awaiting_permissions'


def test_full_interview_flow(client, interview, frozen_clock):
    session = _ready_session(client, interview['id'])
    assert session['state'] == 'ready'
    question_ids = session['questionIds']
    assert len(question_ids) == 5

    data = _event(client, interview['id'], 'start').get_json()
    assert data['state'] == 'recording'
    assert data['questionTimeRemaining'] == 180
    assert data['totalTimeRemaining'] == 900

    frozen_clock.tick(30)
    data = _event(client, interview['id'], 'next', answerText='I build reliable backend services.').get_json()
    assert data['state'] == 'recording'
    assert data['currentQuestionIndex'] == 1
    first = _question(client, question_ids[0])
    assert first['timeTaken'] == 30
    assert first['answerText'] == 'I build reliable backend services.'
    assert first['answeredAt'] is not None

    # Question two runs out of time and is skipped automatically
    frozen_clock.tick(200)
    data = client.get(f"/api/interviews/{interview['id']}/session").get_json()
    assert data['currentQuestionIndex'] == 2
    assert data['questionTimeRemaining'] == 160
    assert data['totalTimeRemaining'] == 670
    second = _question(client, question_ids[1])
    assert second['timeTaken'] == 180
    assert second['answerText'] is None
    assert second['answeredAt'] is None

    # Paused time does not count
    _event(client, interview['id'], 'pause')
    frozen_clock.tick(1000)
    data = client.get(f"/api/interviews/{interview['id']}/session").get_json()
    assert data['state'] == 'paused'
    assert data['questionTimeRemaining'] == 160
    assert data['totalTimeRemaining'] == 670

    _event(client, interview['id'], 'resume')
    data = _event(client, interview['id'], 'finish').get_json()
    assert data['state'] == 'completed'
    assert data['evaluationId'] is not None

    stored = client.get(f"/api/interviews?id={interview['id']}").get_json()
    assert stored['status'] == 'completed'
    assert stored['actualDuration'] == 230
    assert stored['completedAt'] is not None

    evaluation = client.get(f"/api/evaluations?id={data['evaluationId']}").get_json()
    assert evaluation['interviewId'] == interview['id']
    assert evaluation['evaluationData']['questionCount'] == 5
    assert evaluation['evaluationData']['answeredCount'] == 1
    assert 0 <= evaluation['overallScore'] <= 100


def test_total_duration_forces_finish(client, user, frozen_clock):
    interview = client.post('/api/interviews', json={
        'userId': user['id'], 'role': 'Marketing Manager', 'timePerQuestion': 100, 'totalDuration': 450,
    }).get_json()
    session = _ready_session(client, interview['id'])
    _event(client, interview['id'], 'start')

    frozen_clock.tick(1000)
    data = client.get(f"/api/interviews/{interview['id']}/session").get_json()
    assert data['state'] == 'completed'
    assert data['totalTimeRemaining'] == 0
    assert data['evaluationId'] is not None

    stored = client.get(f"/api/interviews?id={interview['id']}").get_json()
    assert stored['actualDuration'] == 450
    assert _question(client, session['questionIds'][3])['timeTaken'] == 100
    assert _question(client, session['questionIds'][4])['timeTaken'] is None


def test_existing_evaluation_is_reused(client, interview, frozen_clock):
    _ready_session(client, interview['id'])
    posted = client.post('/api/evaluations', json={
        'interviewId': interview['id'], 'userId': interview['userId'],
        'communicationScore': 1, 'confidenceScore': 2, 'technicalAccuracyScore': 3,
        'resumeAlignmentScore': 4, 'personalityFitScore': 5, 'overallScore': 6,
    }).get_json()

    data = _event(client, interview['id'], 'finish').get_json()
    assert data['evaluationId'] == posted['id']


def test_abandon_session(client, interview, frozen_clock):
    _ready_session(client, interview['id'])
    _event(client, interview['id'], 'start')
    frozen_clock.tick(45)

    data = _event(client, interview['id'], 'abandon').get_json()
    assert data['state'] == 'abandoned'
    stored = client.get(f"/api/interviews?id={interview['id']}").get_json()
    assert stored['status'] == 'abandoned'
    assert stored['actualDuration'] == 45

    rv = _event(client, interview['id'], 'next', answerText='late')
    assert rv.status_code == 400
    assert rv.get_json()['code'] == 'INVALID_SESSION_TRANSITION'


@pytest.mark.parametrize('event', ['start', 'pause', 'resume', 'next'])
def test_invalid_transitions_before_ready(client, interview, frozen_clock, event):
    client.post(f"/api/interviews/{interview['id']}/session")
    rv = _event(client, interview['id'], event)
    assert rv.status_code == 400
    assert rv.get_json()['code'] == 'INVALID_SESSION_TRANSITION'


def test_grant_permissions_reuses_existing_questions(client, interview, frozen_clock):
    generated = client.post(f"/api/interviews/{interview['id']}/generate-questions").get_json()
    session = _ready_session(client, interview['id'])
    assert session['questionIds'] == [q['id'] for q in generated['questions']]


def test_session_errors(client, interview, frozen_clock):
    rv = client.get(f"/api/interviews/{interview['id']}/session")
    assert rv.status_code == 404
    assert rv.get_json()['code'] == 'SESSION_NOT_FOUND'

    client.post(f"/api/interviews/{interview['id']}/session")
    rv = _event(client, interview['id'], 'rewind')
    assert rv.status_code == 404

    rv = client.post('/api/interviews/9999/session')
    assert rv.status_code == 404
    assert rv.get_json()['code'] == 'NOT_FOUND'


def test_open_requires_in_progress_interview(client, interview, frozen_clock):
    client.put(f"/api/interviews?id={interview['id']}", json={'status': 'completed'})
    rv = client.post(f"/api/interviews/{interview['id']}/session")
    assert rv.status_code == 400
    assert rv.get_json()['code'] == 'INTERVIEW_NOT_IN_PROGRESS'


def test_session_store_unavailable(make_app, monkeypatch):
    import redis

    def _refuse(*args, **kwargs):
        raise redis.exceptions.ConnectionError('refused')

    monkeypatch.setattr(redis, 'from_url', _refuse)
    client = make_app().test_client()
    user = client.post('/api/users', json={'email': 'c@example.com', 'fullName': 'C'}).get_json()
    interview = client.post('/api/interviews', json={
        'userId': user['id'], 'role': 'Software Engineer', 'timePerQuestion': 60, 'totalDuration': 300,
    }).get_json()

    rv = client.post(f"/api/interviews/{interview['id']}/session")
    assert rv.status_code == 500
    assert rv.get_json()['code'] == 'SESSION_STORE_UNAVAILABLE'


def test_next_rejects_non_string_answer(client, interview, frozen_clock):
    session = _ready_session(client, interview['id'])
    _event(client, interview['id'], 'start')
    frozen_clock.tick(30)

    rv = _event(client, interview['id'], 'next', answerText={'x': 1})
    assert rv.status_code == 400
    assert rv.get_json()['code'] == 'INVALID_ANSWER_TEXT'
    rv = _event(client, interview['id'], 'next', answerVideoUrl=['clip.webm'])
    assert rv.get_json()['code'] == 'INVALID_ANSWER_VIDEO_URL'

    data = client.get(f"/api/interviews/{interview['id']}/session").get_json()
    assert data['state'] == 'recording'
    assert data['currentQuestionIndex'] == 0
    assert _question(client, session['questionIds'][0])['timeTaken'] is None


def test_unexpected_failure_does_not_advance_session(client, interview, frozen_clock, monkeypatch):
    import routes.sessions as sessions_routes

    session = _ready_session(client, interview['id'])
    _event(client, interview['id'], 'start')
    frozen_clock.tick(30)

    real_apply = sessions_routes.apply_effects

    def _failing(session, interview, effects):
        if effects:
            raise RuntimeError('database went away')
        return real_apply(session, interview, effects)

    monkeypatch.setattr(sessions_routes, 'apply_effects', _failing)
    rv = _event(client, interview['id'], 'next', answerText='Lost answer')
    assert rv.status_code == 500
    assert rv.get_json()['code'] == 'INTERNAL_ERROR'

    monkeypatch.setattr(sessions_routes, 'apply_effects', real_apply)
    data = client.get(f"/api/interviews/{interview['id']}/session").get_json()
    assert data['currentQuestionIndex'] == 0

    data = _event(client, interview['id'], 'next', answerText='Kept answer').get_json()
    assert data['currentQuestionIndex'] == 1
    first = _question(client, session['questionIds'][0])
    assert first['answerText'] == 'Kept answer'
    assert first['timeTaken'] == 30


def test_terminal_session_expires(app, client, interview, frozen_clock):
    from session_flow import InterviewSession

    _ready_session(client, interview['id'])
    r = app.extensions['session_store']
    key = InterviewSession.redis_key(interview['id'])
    assert r.ttl(key) == -1

    _event(client, interview['id'], 'abandon')
    assert r.ttl(key) > 0


def test_deleting_interview_discards_session(app, client, user, interview, frozen_clock):
    from session_flow import InterviewSession

    _ready_session(client, interview['id'])
    _event(client, interview['id'], 'abandon')
    r = app.extensions['session_store']
    assert r.exists(InterviewSession.redis_key(interview['id']))

    assert client.delete(f"/api/interviews?id={interview['id']}").status_code == 200
    assert not r.exists(InterviewSession.redis_key(interview['id']))

    replacement = client.post('/api/interviews', json={
        'userId': user['id'], 'role': 'Software Engineer', 'timePerQuestion': 180, 'totalDuration': 900,
    }).get_json()
    rv = client.post(f"/api/interviews/{replacement['id']}/session")
    assert rv.status_code == 201
    assert rv.get_json()['state'] == 'awaiting_permissions'


def test_deleting_user_discards_sessions(app, client, user, interview, frozen_clock):
    from session_flow import InterviewSession

    client.post(f"/api/interviews/{interview['id']}/session")
    r = app.extensions['session_store']
    assert r.exists(InterviewSession.redis_key(interview['id']))

    assert client.delete(f"/api/users?id={user['id']}").status_code == 200
    assert not r.exists(InterviewSession.redis_key(interview['id']))
