from flask import Blueprint, request, jsonify, current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from errors import ValidationError, ConflictError
from extensions import db
from models import User
from utilities.constants import USER_ROLES
from utilities.validators import looks_like_email, utcnow, optional_text
from .common import get_json_body, record_id, get_or_404, paginate, forget_sessions

users_bp = Blueprint('users', __name__, url_prefix='/users')


def _validate_role(role):
    if role not in USER_ROLES:
        raise ValidationError('Role must be either "user" or "admin"', 'INVALID_ROLE')
    return role


def _validate_email(email, current_user=None):
    if not looks_like_email(email):
        raise ValidationError('Invalid email format', 'INVALID_EMAIL_FORMAT')
    normalized = email.strip().lower()
    if current_user is None or normalized != current_user.email:
        if User.query.filter_by(email=normalized).first() is not None:
            raise ConflictError('Email already exists', 'EMAIL_EXISTS')
    return normalized


def _commit():
    try:
        db.session.commit()
    except IntegrityError:
        # A concurrent insert won the unique email race
        db.session.rollback()
        raise ConflictError('Email already exists', 'EMAIL_EXISTS')


@users_bp.route('', methods=['GET'])
def get_users():
    """Fetch one user by `id`, or list users filtered by `search` and `role`."""
    if request.args.get('id') is not None:
        user = get_or_404(User, record_id(), 'USER_NOT_FOUND')
        return jsonify(user.to_dict()), 200

    query = User.query
    search = request.args.get('search')
    if search:
        pattern = f'%{search}%'
        query = query.filter(or_(User.email.ilike(pattern), User.full_name.ilike(pattern)))

    role = request.args.get('role')
    if role:
        if role not in USER_ROLES:
            raise ValidationError('Invalid role filter. Must be "user" or "admin"', 'INVALID_ROLE_FILTER')
        query = query.filter(User.role == role)

    users = paginate(query, User.created_at.desc(), User.id.desc())
    return jsonify([u.to_dict() for u in users]), 200


@users_bp.route('', methods=['POST'])
def create_user():
    data = get_json_body()
    email = data.get('email')
    full_name = data.get('fullName')
    role = data.get('role') or 'user'

    if not email:
        raise ValidationError('Email is required', 'MISSING_EMAIL')
    if not isinstance(full_name, str) or not full_name.strip():
        raise ValidationError('Full name is required', 'MISSING_FULL_NAME')
    normalized = _validate_email(email)
    _validate_role(role)

    timestamp = utcnow()
    user = User(
        email=normalized,
        full_name=full_name.strip(),
        role=role,
        avatar_url=optional_text(data.get('avatarUrl'), 'INVALID_AVATAR_URL', 'avatarUrl'),
        created_at=timestamp,
        updated_at=timestamp,
    )
    db.session.add(user)
    _commit()
    current_app.logger.info("Created user %s", user.id)
    return jsonify(user.to_dict()), 201


@users_bp.route('', methods=['PUT'])
def update_user():
    user = get_or_404(User, record_id(), 'USER_NOT_FOUND')
    data = get_json_body()

    if 'email' in data:
        user.email = _validate_email(data['email'], current_user=user)
    if 'fullName' in data:
        full_name = data['fullName']
        if not isinstance(full_name, str) or not full_name.strip():
            raise ValidationError('Full name cannot be empty', 'INVALID_FULL_NAME')
        user.full_name = full_name.strip()
    if 'role' in data:
        user.role = _validate_role(data['role'])
    if 'avatarUrl' in data:
        user.avatar_url = optional_text(data['avatarUrl'], 'INVALID_AVATAR_URL', 'avatarUrl')

    user.updated_at = utcnow()
    _commit()
    return jsonify(user.to_dict()), 200


@users_bp.route('', methods=['DELETE'])
def delete_user():
    user = get_or_404(User, record_id(), 'USER_NOT_FOUND')
    payload = user.to_dict()
    interview_ids = [interview.id for interview in user.interviews]
    db.session.delete(user)
    db.session.commit()
    forget_sessions(interview_ids)
    current_app.logger.info("Deleted user %s", payload['id'])
    return jsonify({'message': 'User deleted successfully', 'user': payload}), 200
