from flask import Blueprint, request, jsonify, current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from errors import ValidationError, ForeignKeyError, ConflictError
from extensions import db
from models import Evaluation, Interview, User
from utilities.constants import SCORE_FIELDS
from utilities.validators import is_int, parse_id, parse_score, utcnow
from .common import get_json_body, record_id, get_or_404, optional_filter_id, paginate

evaluations_bp = Blueprint('evaluations', __name__, url_prefix='/evaluations')

LIST_FIELDS = {
    'strengths': ('strengths', 'INVALID_STRENGTHS'),
    'weaknesses': ('weaknesses', 'INVALID_WEAKNESSES'),
    'improvementSuggestions': ('improvement_suggestions', 'INVALID_IMPROVEMENT_SUGGESTIONS'),
}


def _validated_extras(data):
    """Validate the optional list/object fields; returns column -> value."""
    extras = {}
    for field, (column, code) in LIST_FIELDS.items():
        value = data.get(field)
        if value is not None:
            if not isinstance(value, list):
                raise ValidationError(f'{field} must be an array', code)
            extras[column] = value
    if data.get('roleFitRecommendation') is not None:
        extras['role_fit_recommendation'] = str(data['roleFitRecommendation'])
    evaluation_data = data.get('evaluationData')
    if evaluation_data is not None:
        if not isinstance(evaluation_data, dict):
            raise ValidationError('evaluationData must be an object', 'INVALID_EVALUATION_DATA')
        extras['evaluation_data'] = evaluation_data
    return extras


def save_evaluation(data):
    """Validate an evaluation payload and persist it.

    Shared by the POST endpoint and the session flow, which synthesizes the
    payload when an interview finishes.
    """
    interview_id = data.get('interviewId')
    if not is_int(interview_id) or interview_id <= 0:
        raise ValidationError('Valid interviewId is required', 'MISSING_INTERVIEW_ID')
    user_id = data.get('userId')
    if not is_int(user_id) or user_id <= 0:
        raise ValidationError('Valid userId is required', 'MISSING_USER_ID')

    scores = {}
    for field in SCORE_FIELDS:
        if data.get(field) is None:
            raise ValidationError(f'{field} is required', 'MISSING_SCORE_FIELD')
        scores[Evaluation.SCORE_COLUMNS[field]] = parse_score(data[field], field)
    extras = _validated_extras(data)

    if db.session.get(Interview, interview_id) is None or db.session.get(User, user_id) is None:
        raise ForeignKeyError('Invalid interviewId or userId reference', 'FOREIGN_KEY_VIOLATION')
    if Evaluation.query.filter_by(interview_id=interview_id).first() is not None:
        raise ConflictError('An evaluation already exists for this interview', 'EVALUATION_EXISTS')

    evaluation = Evaluation(
        interview_id=interview_id,
        user_id=user_id,
        created_at=utcnow(),
        **scores,
        **extras,
    )
    db.session.add(evaluation)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError('An evaluation already exists for this interview', 'EVALUATION_EXISTS')
    current_app.logger.info("Stored evaluation %s for interview %s", evaluation.id, interview_id)
    return evaluation


@evaluations_bp.route('', methods=['GET'])
def get_evaluations():
    """Fetch one evaluation by `id`, or list them filtered by user, interview and minimum score."""
    if request.args.get('id') is not None:
        evaluation = get_or_404(Evaluation, record_id())
        return jsonify(evaluation.to_dict()), 200

    query = Evaluation.query
    user_id = optional_filter_id('userId', 'INVALID_USER_ID')
    if user_id is not None:
        query = query.filter(Evaluation.user_id == user_id)
    interview_id = optional_filter_id('interviewId', 'INVALID_INTERVIEW_ID')
    if interview_id is not None:
        query = query.filter(Evaluation.interview_id == interview_id)

    min_score = request.args.get('minScore')
    if min_score:
        try:
            threshold = int(min_score)
        except ValueError:
            raise ValidationError('minScore must be between 0 and 100', 'INVALID_MIN_SCORE')
        if threshold < 0 or threshold > 100:
            raise ValidationError('minScore must be between 0 and 100', 'INVALID_MIN_SCORE')
        query = query.filter(Evaluation.overall_score >= threshold)

    evaluations = paginate(query, Evaluation.created_at.desc(), Evaluation.id.desc())
    return jsonify([e.to_dict() for e in evaluations]), 200


@evaluations_bp.route('/summary', methods=['GET'])
def get_performance_summary():
    """Average scores across a user's evaluations, as shown on the dashboard."""
    user_id = parse_id(request.args.get('userId'), 'INVALID_USER_ID', 'Valid userId is required')
    get_or_404(User, user_id, 'USER_NOT_FOUND')

    columns = [getattr(Evaluation, column) for column in Evaluation.SCORE_COLUMNS.values()]
    row = db.session.query(
        func.count(Evaluation.id),
        func.max(Evaluation.overall_score),
        *[func.avg(column) for column in columns],
    ).filter(Evaluation.user_id == user_id).one()

    count, best = row[0], row[1]
    averages = {}
    for field, value in zip(Evaluation.SCORE_COLUMNS, row[2:]):
        averages[field] = round(float(value), 1) if value is not None else None

    completed = Interview.query.filter_by(user_id=user_id, status='completed').count()
    return jsonify({
        'userId': user_id,
        'evaluationCount': count,
        'completedInterviews': completed,
        'bestOverallScore': best,
        'averages': averages,
    }), 200


@evaluations_bp.route('', methods=['POST'])
def create_evaluation():
    evaluation = save_evaluation(get_json_body())
    return jsonify(evaluation.to_dict()), 201


@evaluations_bp.route('', methods=['PUT'])
def update_evaluation():
    evaluation = get_or_404(Evaluation, record_id())
    data = get_json_body()
    updates = {}

    for field in SCORE_FIELDS:
        if data.get(field) is not None:
            updates[Evaluation.SCORE_COLUMNS[field]] = parse_score(data[field], field)
    updates.update(_validated_extras(data))

    if not updates:
        raise ValidationError('No valid fields to update', 'NO_UPDATES')

    for column, value in updates.items():
        setattr(evaluation, column, value)
    db.session.commit()
    return jsonify(evaluation.to_dict()), 200


@evaluations_bp.route('', methods=['DELETE'])
def delete_evaluation():
    evaluation = get_or_404(Evaluation, record_id())
    payload = evaluation.to_dict()
    db.session.delete(evaluation)
    db.session.commit()
    return jsonify({'message': 'Evaluation deleted successfully', 'evaluation': payload}), 200
