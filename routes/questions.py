from flask import Blueprint, request, jsonify
from sqlalchemy import and_, or_

from errors import ValidationError, ForeignKeyError, ConflictError
from extensions import db
from models import Interview, Question
from utilities.validators import (
    is_int, utcnow, parse_timestamp, require_positive_int, optional_text,
)
from .common import get_json_body, record_id, get_or_404, optional_filter_id, paginate

questions_bp = Blueprint('questions', __name__, url_prefix='/questions')


def _validate_time_taken(time_taken):
    if time_taken is not None and (not is_int(time_taken) or time_taken <= 0):
        raise ValidationError('Time taken must be a positive integer', 'INVALID_TIME_TAKEN')
    return time_taken


def _answered_at(value):
    if value is None:
        return None
    return parse_timestamp(value, 'INVALID_ANSWERED_AT', 'answeredAt')


@questions_bp.route('', methods=['GET'])
def get_questions():
    """Fetch one question by `id`, or list questions in asking order."""
    if request.args.get('id') is not None:
        question = get_or_404(Question, record_id())
        return jsonify(question.to_dict()), 200

    query = Question.query
    interview_id = optional_filter_id('interviewId', 'INVALID_INTERVIEW_ID')
    if interview_id is not None:
        query = query.filter(Question.interview_id == interview_id)

    answered = request.args.get('answered')
    if answered == 'true':
        query = query.filter(or_(Question.answer_text.isnot(None), Question.answer_video_url.isnot(None)))
    elif answered == 'false':
        query = query.filter(and_(Question.answer_text.is_(None), Question.answer_video_url.is_(None)))

    questions = paginate(query, Question.question_number.asc(), Question.id.asc())
    return jsonify([q.to_dict() for q in questions]), 200


@questions_bp.route('', methods=['POST'])
def create_question():
    data = get_json_body()
    interview_id = require_positive_int(
        data.get('interviewId'), 'MISSING_INTERVIEW_ID', 'INVALID_INTERVIEW_ID', 'Interview ID',
    )

    question_text = data.get('questionText')
    if question_text is None or question_text == '':
        raise ValidationError('Question text is required', 'MISSING_QUESTION_TEXT')
    if not isinstance(question_text, str) or not question_text.strip():
        raise ValidationError('Question text must be a non-empty string', 'INVALID_QUESTION_TEXT')

    question_number = require_positive_int(
        data.get('questionNumber'), 'MISSING_QUESTION_NUMBER', 'INVALID_QUESTION_NUMBER', 'Question number',
    )
    time_taken = _validate_time_taken(data.get('timeTaken'))
    answered_at = _answered_at(data.get('answeredAt'))

    if db.session.get(Interview, interview_id) is None:
        raise ForeignKeyError('Invalid interview ID - interview does not exist', 'INVALID_FOREIGN_KEY')
    duplicate = Question.query.filter_by(interview_id=interview_id, question_number=question_number).first()
    if duplicate is not None:
        raise ConflictError('Question number already exists for this interview', 'DUPLICATE_QUESTION_NUMBER')

    question = Question(
        interview_id=interview_id,
        question_text=question_text.strip(),
        question_number=question_number,
        asked_at=utcnow(),
        answer_text=optional_text(data.get('answerText'), 'INVALID_ANSWER_TEXT', 'answerText'),
        answer_video_url=optional_text(data.get('answerVideoUrl'), 'INVALID_ANSWER_VIDEO_URL', 'answerVideoUrl'),
        time_taken=time_taken,
        answered_at=answered_at,
    )
    db.session.add(question)
    db.session.commit()
    return jsonify(question.to_dict()), 201


@questions_bp.route('', methods=['PUT'])
def update_question():
    question = get_or_404(Question, record_id())
    data = get_json_body()
    updates = {}

    if 'timeTaken' in data:
        updates['time_taken'] = _validate_time_taken(data['timeTaken'])
    if 'answerText' in data:
        updates['answer_text'] = optional_text(data['answerText'], 'INVALID_ANSWER_TEXT', 'answerText')
    if 'answerVideoUrl' in data:
        updates['answer_video_url'] = optional_text(data['answerVideoUrl'], 'INVALID_ANSWER_VIDEO_URL', 'answerVideoUrl')
    if 'answeredAt' in data:
        updates['answered_at'] = _answered_at(data['answeredAt'])
    elif ('answerText' in data or 'answerVideoUrl' in data) and question.answered_at is None:
        updates['answered_at'] = utcnow()

    if not updates:
        raise ValidationError('No valid fields to update', 'NO_UPDATES')

    for column, value in updates.items():
        setattr(question, column, value)
    db.session.commit()
    return jsonify(question.to_dict()), 200


@questions_bp.route('', methods=['DELETE'])
def delete_question():
    question = get_or_404(Question, record_id())
    payload = question.to_dict()
    db.session.delete(question)
    db.session.commit()
    return jsonify({'message': 'Question deleted successfully', 'question': payload}), 200
