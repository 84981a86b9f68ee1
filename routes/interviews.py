from flask import Blueprint, request, jsonify, current_app
from sqlalchemy.exc import IntegrityError

from errors import ValidationError, ConflictError
from extensions import db
from models import Interview, Question, Resume, User
from question_generator import generate_questions
from utilities.constants import INTERVIEW_STATUSES
from utilities.resume import ResumeProfile
from utilities.validators import (
    is_int, utcnow, parse_id, parse_timestamp, require_positive_int,
)
from .common import get_json_body, record_id, get_or_404, optional_filter_id, paginate, forget_sessions

interviews_bp = Blueprint('interviews', __name__, url_prefix='/interviews')

STATUS_MESSAGE = f"status must be one of: {', '.join(INTERVIEW_STATUSES)}"


def _validate_status(status):
    if status not in INTERVIEW_STATUSES:
        raise ValidationError(STATUS_MESSAGE, 'INVALID_STATUS')
    return status


def resume_profile_for(interview):
    if interview.resume_id is None:
        return None
    resume = db.session.get(Resume, interview.resume_id)
    if resume is None:
        return None
    return ResumeProfile.from_parsed_data(resume.parsed_data)


def store_generated_questions(interview):
    """Generate and persist the question set for an in-progress interview.

    Only structural problems surface as errors; provider failures have already
    been absorbed by the fallback bank inside `generate_questions`.
    """
    if interview.status != 'in_progress':
        raise ValidationError('Interview must be in progress to generate questions', 'INTERVIEW_NOT_IN_PROGRESS')
    if Question.query.filter_by(interview_id=interview.id).first() is not None:
        raise ConflictError('Questions have already been generated for this interview', 'QUESTIONS_ALREADY_GENERATED')

    config = current_app.config
    generated = generate_questions(
        interview.role,
        interview.total_duration,
        interview.time_per_question,
        profile=resume_profile_for(interview),
        api_key=config.get('GEMINI_API_KEY'),
        model=config.get('GEMINI_MODEL', 'gemini-1.5-flash'),
        retries=config.get('GENERATION_RETRIES', 1),
        timeout=config.get('GENERATION_TIMEOUT', 30),
    )

    asked_at = utcnow()
    questions = [
        Question(
            interview_id=interview.id,
            question_text=text,
            question_number=number,
            asked_at=asked_at,
        )
        for number, text in enumerate(generated.texts, start=1)
    ]
    db.session.add_all(questions)
    try:
        db.session.commit()
    except IntegrityError:
        # Another request stored the set between our check and this insert
        db.session.rollback()
        raise ConflictError('Questions have already been generated for this interview', 'QUESTIONS_ALREADY_GENERATED')

    current_app.logger.info(
        "Generated %s questions for interview %s (source=%s)", len(questions), interview.id, generated.source,
    )
    return questions, generated.source


@interviews_bp.route('', methods=['GET'])
def get_interviews():
    """Fetch one interview by `id`, or list them filtered by user, status and role."""
    if request.args.get('id') is not None:
        interview = get_or_404(Interview, record_id())
        return jsonify(interview.to_dict()), 200

    query = Interview.query
    user_id = optional_filter_id('userId', 'INVALID_USER_ID')
    if user_id is not None:
        query = query.filter(Interview.user_id == user_id)

    status = request.args.get('status')
    if status:
        if status not in INTERVIEW_STATUSES:
            raise ValidationError(STATUS_MESSAGE, 'INVALID_STATUS_FILTER')
        query = query.filter(Interview.status == status)

    role = (request.args.get('role') or '').strip()
    if role:
        query = query.filter(Interview.role == role)

    interviews = paginate(query, Interview.started_at.desc(), Interview.id.desc())
    return jsonify([i.to_dict() for i in interviews]), 200


@interviews_bp.route('', methods=['POST'])
def create_interview():
    data = get_json_body()
    user_id = require_positive_int(data.get('userId'), 'MISSING_USER_ID', 'INVALID_USER_ID', 'userId')

    role = data.get('role')
    if not isinstance(role, str) or not role.strip():
        raise ValidationError('role is required and must be a non-empty string', 'MISSING_ROLE')

    time_per_question = data.get('timePerQuestion')
    if not is_int(time_per_question) or time_per_question <= 0:
        raise ValidationError('timePerQuestion is required and must be a positive integer',
                              'INVALID_TIME_PER_QUESTION')
    total_duration = data.get('totalDuration')
    if not is_int(total_duration) or total_duration <= 0:
        raise ValidationError('totalDuration is required and must be a positive integer',
                              'INVALID_TOTAL_DURATION')

    status = data.get('status') or 'in_progress'
    _validate_status(status)

    if db.session.get(User, user_id) is None:
        raise ValidationError('User not found', 'USER_NOT_FOUND')

    resume_id = data.get('resumeId')
    if resume_id is not None:
        if not is_int(resume_id) or resume_id <= 0:
            raise ValidationError('resumeId must be a positive integer', 'INVALID_RESUME_ID')
        if db.session.get(Resume, resume_id) is None:
            raise ValidationError('Resume not found', 'RESUME_NOT_FOUND')

    timestamp = utcnow()
    interview = Interview(
        user_id=user_id,
        resume_id=resume_id,
        role=role.strip(),
        time_per_question=time_per_question,
        total_duration=total_duration,
        status=status,
        started_at=timestamp,
        created_at=timestamp,
    )
    db.session.add(interview)
    db.session.commit()
    current_app.logger.info("Started interview %s for user %s (%s)", interview.id, user_id, interview.role)
    return jsonify(interview.to_dict()), 201


@interviews_bp.route('', methods=['PUT'])
def update_interview():
    interview = get_or_404(Interview, record_id())
    data = get_json_body()
    updates = {}

    if 'role' in data:
        role = data['role']
        if not isinstance(role, str) or not role.strip():
            raise ValidationError('role must be a non-empty string', 'INVALID_ROLE')
        updates['role'] = role.strip()

    if 'actualDuration' in data:
        actual = data['actualDuration']
        if not is_int(actual) or actual < 0:
            raise ValidationError('actualDuration must be a non-negative integer', 'INVALID_ACTUAL_DURATION')
        updates['actual_duration'] = actual

    if 'status' in data:
        updates['status'] = _validate_status(data['status'])
        # Completing without an explicit timestamp stamps it now
        if data['status'] == 'completed' and not data.get('completedAt'):
            updates['completed_at'] = utcnow()

    if data.get('completedAt'):
        updates['completed_at'] = parse_timestamp(data['completedAt'], 'INVALID_COMPLETED_AT', 'completedAt')

    if not updates:
        raise ValidationError('No valid fields to update', 'NO_UPDATES')

    for column, value in updates.items():
        setattr(interview, column, value)
    db.session.commit()
    return jsonify(interview.to_dict()), 200


@interviews_bp.route('', methods=['DELETE'])
def delete_interview():
    interview = get_or_404(Interview, record_id())
    payload = interview.to_dict()
    db.session.delete(interview)
    db.session.commit()
    forget_sessions([payload['id']])
    return jsonify({'message': 'Interview deleted successfully', 'deletedInterview': payload}), 200


@interviews_bp.route('/<interview_id>/generate-questions', methods=['POST'])
def generate_interview_questions(interview_id):
    interview = get_or_404(Interview, parse_id(interview_id, message='Valid interview ID is required'))
    questions, source = store_generated_questions(interview)
    return jsonify({
        'questions': [q.to_dict() for q in questions],
        'count': len(questions),
        'source': source,
    }), 201
