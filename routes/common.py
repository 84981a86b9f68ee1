from flask import request, current_app

from errors import ValidationError, NotFoundError
from extensions import db
from session_flow import InterviewSession
from utilities.validators import parse_id, parse_pagination


def get_json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object', 'INVALID_JSON')
    return data


def record_id():
    """The `id` query parameter that single-record operations act on."""
    return parse_id(request.args.get('id'))


def get_or_404(model, record_id, code='NOT_FOUND', label=None):
    record = db.session.get(model, record_id)
    if record is None:
        raise NotFoundError(f'{label or model.__name__} not found', code)
    return record


def optional_filter_id(name, code):
    raw = request.args.get(name)
    if raw is None or raw == '':
        return None
    return parse_id(raw, code, f'Valid {name} is required')


def paginate(query, *order_by):
    limit, offset = parse_pagination(request.args)
    return query.order_by(*order_by).limit(limit).offset(offset).all()


def forget_sessions(interview_ids):
    """Delete the live sessions of removed interviews so reused ids start fresh."""
    r = current_app.extensions.get('session_store')
    if r is None or not interview_ids:
        return
    InterviewSession.discard(r, interview_ids)
    current_app.logger.info("Discarded sessions for interviews %s", interview_ids)
