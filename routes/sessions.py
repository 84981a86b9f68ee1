from datetime import datetime, timezone

from flask import Blueprint, request, jsonify, current_app

from errors import ApiError, ValidationError, NotFoundError, SessionStoreUnavailable
import session_flow
from session_flow import InterviewSession, AnswerRecorded, InterviewFinished, InterviewAbandoned
from extensions import db
from models import Evaluation, Interview, Question
from scorecard import build_evaluation
from utilities.validators import parse_id, optional_text
from .common import get_or_404
from .evaluations import save_evaluation
from .interviews import resume_profile_for, store_generated_questions

sessions_bp = Blueprint('sessions', __name__, url_prefix='/interviews')


def _store():
    r = current_app.extensions.get('session_store')
    if r is None:
        raise SessionStoreUnavailable()
    return r


def _as_datetime(at):
    return datetime.fromtimestamp(at, timezone.utc).replace(tzinfo=None)


def _load_interview(interview_id):
    return get_or_404(Interview, parse_id(interview_id, message='Valid interview ID is required'))


def _load_session(r, interview):
    session = InterviewSession.load(r, interview.id)
    if session is None:
        raise NotFoundError('No session has been opened for this interview', 'SESSION_NOT_FOUND')
    return session


def _finish_interview(session, interview, effect):
    interview.status = 'completed'
    interview.actual_duration = effect.actual_duration
    interview.completed_at = _as_datetime(effect.at)
    db.session.commit()

    existing = Evaluation.query.filter_by(interview_id=interview.id).first()
    if existing is not None:
        session.evaluation_id = existing.id
        return

    questions = Question.query.filter_by(interview_id=interview.id).order_by(Question.question_number).all()
    payload = build_evaluation(interview, questions, resume_profile_for(interview))
    evaluation = save_evaluation(payload)
    session.evaluation_id = evaluation.id


def apply_effects(session, interview, effects):
    """Write what the state machine decided back to the database."""
    for effect in effects:
        if isinstance(effect, AnswerRecorded):
            question = db.session.get(Question, effect.question_id)
            if question is None:
                current_app.logger.warning("Question %s vanished from interview %s", effect.question_id, interview.id)
                continue
            question.time_taken = effect.time_taken
            if effect.answer_text is not None or effect.answer_video_url is not None:
                question.answer_text = effect.answer_text
                question.answer_video_url = effect.answer_video_url
                question.answered_at = _as_datetime(effect.at)
            db.session.commit()
        elif isinstance(effect, InterviewFinished):
            _finish_interview(session, interview, effect)
        elif isinstance(effect, InterviewAbandoned):
            interview.status = 'abandoned'
            interview.actual_duration = effect.actual_duration
            db.session.commit()
            current_app.logger.info("Interview %s abandoned", interview.id)


def _questions_for(interview):
    questions = Question.query.filter_by(interview_id=interview.id).order_by(Question.question_number).all()
    if not questions:
        questions, _ = store_generated_questions(interview)
    return [q.id for q in questions]


def _grant_permissions(session, interview, at, data):
    session.grant_permissions()
    try:
        question_ids = _questions_for(interview)
    except ApiError:
        session.state = session_flow.AWAITING_PERMISSIONS
        raise
    session.questions_ready(question_ids)
    return []


def _next(session, interview, at, data):
    return session.advance(
        at,
        answer_text=optional_text(data.get('answerText'), 'INVALID_ANSWER_TEXT', 'answerText'),
        answer_video_url=optional_text(data.get('answerVideoUrl'), 'INVALID_ANSWER_VIDEO_URL', 'answerVideoUrl'),
    )


EVENTS = {
    'grant-permissions': _grant_permissions,
    'start': lambda session, interview, at, data: session.start(at),
    'pause': lambda session, interview, at, data: session.pause(at),
    'resume': lambda session, interview, at, data: session.resume(at),
    'next': _next,
    'finish': lambda session, interview, at, data: session.finish(at),
    'abandon': lambda session, interview, at, data: session.abandon(at),
}


@sessions_bp.route('/<interview_id>/session', methods=['POST'])
def open_session(interview_id):
    """Open the live session for an interview, or return the one already open."""
    r = _store()
    interview = _load_interview(interview_id)
    at = session_flow.now()

    session = InterviewSession.load(r, interview.id)
    if session is not None:
        apply_effects(session, interview, session.tick(at))
        session.save(r)
        return jsonify(session.to_public_dict(at)), 200

    if interview.status != 'in_progress':
        raise ValidationError('Interview must be in progress to open a session', 'INTERVIEW_NOT_IN_PROGRESS')

    session = InterviewSession(interview.id, interview.time_per_question, interview.total_duration)
    session.open()
    session.save(r)
    current_app.logger.info("Opened session for interview %s", interview.id)
    return jsonify(session.to_public_dict(at)), 201


@sessions_bp.route('/<interview_id>/session', methods=['GET'])
def get_session(interview_id):
    r = _store()
    interview = _load_interview(interview_id)
    session = _load_session(r, interview)
    at = session_flow.now()

    apply_effects(session, interview, session.tick(at))
    session.save(r)
    return jsonify(session.to_public_dict(at)), 200


@sessions_bp.route('/<interview_id>/session/<event>', methods=['POST'])
def session_event(interview_id, event):
    """Fire one event at the session. The clock is applied before the event."""
    if event == 'open':
        return open_session(interview_id)
    handler = EVENTS.get(event)
    if handler is None:
        raise NotFoundError(f"Unknown session event '{event}'", 'UNKNOWN_SESSION_EVENT')

    r = _store()
    interview = _load_interview(interview_id)
    session = _load_session(r, interview)
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    at = session_flow.now()

    try:
        apply_effects(session, interview, session.tick(at))
        apply_effects(session, interview, handler(session, interview, at, data))
    except ApiError:
        # Clock-driven progress is kept when the event itself is rejected
        session.save(r)
        raise
    session.save(r)
    return jsonify(session.to_public_dict(at)), 200
