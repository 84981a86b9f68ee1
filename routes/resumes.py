from flask import Blueprint, request, jsonify, current_app

from errors import ValidationError
from extensions import db
from models import Resume, User
from utilities.resume import ResumeProfile, suggest_roles
from utilities.validators import is_int, utcnow, require_text
from .common import get_json_body, record_id, get_or_404, optional_filter_id, paginate

resumes_bp = Blueprint('resumes', __name__, url_prefix='/resumes')


def _validate_parsed_data(parsed_data):
    if parsed_data is not None and not isinstance(parsed_data, dict):
        raise ValidationError('parsedData must be a valid JSON object', 'INVALID_PARSED_DATA')
    return parsed_data


def _validate_suggested_roles(suggested_roles):
    if suggested_roles is None:
        return None
    if not isinstance(suggested_roles, list) or not all(isinstance(r, str) for r in suggested_roles):
        raise ValidationError('suggestedRoles must be a list of strings', 'INVALID_SUGGESTED_ROLES')
    return [r.strip() for r in suggested_roles if r.strip()]


@resumes_bp.route('', methods=['GET'])
def get_resumes():
    """Fetch one resume by `id`, or list resumes newest first."""
    if request.args.get('id') is not None:
        resume = get_or_404(Resume, record_id(), 'RESUME_NOT_FOUND')
        return jsonify(resume.to_dict()), 200

    query = Resume.query
    user_id = optional_filter_id('userId', 'INVALID_USER_ID')
    if user_id is not None:
        query = query.filter(Resume.user_id == user_id)
    search = request.args.get('search')
    if search:
        query = query.filter(Resume.file_name.ilike(f'%{search}%'))

    resumes = paginate(query, Resume.uploaded_at.desc(), Resume.id.desc())
    return jsonify([r.to_dict() for r in resumes]), 200


@resumes_bp.route('', methods=['POST'])
def create_resume():
    data = get_json_body()
    user_id = data.get('userId')
    if user_id is None or user_id == '':
        raise ValidationError('userId is required', 'MISSING_USER_ID')
    file_url = require_text(data.get('fileUrl'), 'INVALID_FILE_URL',
                            'fileUrl is required and must be a non-empty string')
    file_name = require_text(data.get('fileName'), 'INVALID_FILE_NAME',
                             'fileName is required and must be a non-empty string')
    if not is_int(user_id) or user_id <= 0:
        raise ValidationError('userId must be a positive integer', 'INVALID_USER_ID')
    if db.session.get(User, user_id) is None:
        raise ValidationError('User not found', 'USER_NOT_FOUND')

    parsed_data = _validate_parsed_data(data.get('parsedData'))
    suggested_roles = _validate_suggested_roles(data.get('suggestedRoles'))
    if suggested_roles is None and parsed_data:
        suggested_roles = suggest_roles(ResumeProfile.from_parsed_data(parsed_data))

    resume = Resume(
        user_id=user_id,
        file_url=file_url,
        file_name=file_name,
        parsed_data=parsed_data,
        suggested_roles=suggested_roles,
        uploaded_at=utcnow(),
    )
    db.session.add(resume)
    db.session.commit()
    current_app.logger.info("Stored resume %s for user %s", resume.id, user_id)
    return jsonify(resume.to_dict()), 201


@resumes_bp.route('', methods=['PUT'])
def update_resume():
    resume = get_or_404(Resume, record_id(), 'RESUME_NOT_FOUND')
    data = get_json_body()
    updates = {}

    if 'fileUrl' in data:
        updates['file_url'] = require_text(data['fileUrl'], 'INVALID_FILE_URL', 'fileUrl must be a non-empty string')
    if 'fileName' in data:
        updates['file_name'] = require_text(data['fileName'], 'INVALID_FILE_NAME', 'fileName must be a non-empty string')
    if 'parsedData' in data:
        updates['parsed_data'] = _validate_parsed_data(data['parsedData'])
    if 'suggestedRoles' in data:
        updates['suggested_roles'] = _validate_suggested_roles(data['suggestedRoles'])

    if not updates:
        raise ValidationError('No fields to update', 'NO_UPDATES')

    for column, value in updates.items():
        setattr(resume, column, value)
    db.session.commit()
    return jsonify(resume.to_dict()), 200


@resumes_bp.route('', methods=['DELETE'])
def delete_resume():
    resume = get_or_404(Resume, record_id(), 'RESUME_NOT_FOUND')
    payload = resume.to_dict()
    db.session.delete(resume)
    db.session.commit()
    return jsonify({'message': 'Resume deleted successfully', 'deletedResume': payload}), 200
