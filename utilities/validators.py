import re
from datetime import datetime, timezone

from errors import ValidationError
from .constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')


def looks_like_email(email) -> bool:
    return isinstance(email, str) and bool(EMAIL_RE.match(email.strip()))


def utcnow():
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def is_int(value) -> bool:
    # bool is an int subclass; JSON true/false must not pass as ids or counts
    return isinstance(value, int) and not isinstance(value, bool)


def parse_id(raw, code='INVALID_ID', message='Valid ID is required'):
    """Parse a positive integer identifier from a query-string value."""
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        raise ValidationError(message, code)
    if value <= 0:
        raise ValidationError(message, code)
    return value


def require_positive_int(value, missing_code, invalid_code, name):
    if value is None or value == '':
        raise ValidationError(f'{name} is required', missing_code)
    if not is_int(value) or value <= 0:
        raise ValidationError(f'{name} must be a positive integer', invalid_code)
    return value


def require_text(value, code, message):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(message, code)
    return value.strip()


def optional_text(value, code='INVALID_TEXT', field='value'):
    """Blank strings become None; anything that is not a string is rejected."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f'{field} must be a string', code)
    return value.strip() or None


def parse_score(value, field):
    """Scores arrive as numbers or numeric strings and must land in [0, 100]."""
    if isinstance(value, bool):
        raise ValidationError(f'{field} must be between 0 and 100', 'INVALID_SCORE')
    try:
        score = int(float(value))
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f'{field} must be between 0 and 100', 'INVALID_SCORE')
    if score < 0 or score > 100:
        raise ValidationError(f'{field} must be between 0 and 100', 'INVALID_SCORE')
    return score


def parse_timestamp(value, code, field):
    """Parse an ISO-8601 string into a naive UTC datetime."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f'{field} must be an ISO-8601 timestamp', code)
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f'{field} must be an ISO-8601 timestamp', code)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_pagination(args):
    """Read `limit`/`offset` from the query string, capping limit at MAX_PAGE_SIZE."""
    try:
        limit = int(args.get('limit', DEFAULT_PAGE_SIZE))
        offset = int(args.get('offset', 0))
    except (TypeError, ValueError):
        raise ValidationError('limit and offset must be integers', 'INVALID_PAGINATION')
    if limit <= 0 or offset < 0:
        raise ValidationError('limit must be positive and offset non-negative', 'INVALID_PAGINATION')
    return min(limit, MAX_PAGE_SIZE), offset
