"""Query-string parsing shared by the API views."""
from django.utils.dateparse import parse_date, parse_datetime

from .exceptions import ValidationError


def query_int(request, name, required=True):
    raw = request.query_params.get(name)
    if raw in (None, ''):
        if required:
            raise ValidationError({name: ['This query parameter is required.']})
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError({name: ['A valid integer is required.']})


def query_date(request, name, required=False):
    """Parse ``YYYY-MM-DD`` (or a full ISO datetime, truncated to its day)."""
    raw = request.query_params.get(name)
    if raw in (None, ''):
        if required:
            raise ValidationError({name: ['This query parameter is required.']})
        return None
    try:
        value = parse_date(raw)
        if value is None:
            parsed = parse_datetime(raw)
            value = parsed.date() if parsed else None
    except ValueError:
        value = None
    if value is None:
        raise ValidationError({name: ['Date has wrong format. Use YYYY-MM-DD.']})
    return value
