import math
from datetime import datetime, timezone

from bson import ObjectId
from bson.errors import InvalidId
from dateutil.relativedelta import relativedelta
from dateutil import parser as date_parser
from flask import g, has_request_context, request


def utcnow() -> datetime:
    """Naive UTC now, matching what pymongo hands back for stored dates."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def add_months(dt: datetime, months: int) -> datetime:
    return dt + relativedelta(months=int(months))


def to_naive_utc(value):
    """Accept datetime or ISO string, return naive UTC datetime (or None)."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = date_parser.isoparse(value)
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def days_until(end_date, now: datetime = None) -> int:
    """Whole days left until end_date, rounded up and clamped at zero."""
    end_date = to_naive_utc(end_date)
    if end_date is None:
        return 0
    now = now or utcnow()
    remaining = (end_date - now).total_seconds() / 86400
    return max(0, math.ceil(remaining))


def to_object_id(value):
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def stringify_ids(doc: dict, fields=("_id",)):
    """Convert ObjectId fields to str in place and return the doc."""
    if not doc:
        return doc
    for field in fields:
        if isinstance(doc.get(field), ObjectId):
            doc[field] = str(doc[field])
    return doc


def client_ip():
    if has_request_context():
        return request.remote_addr
    return "system"


def current_user():
    if has_request_context():
        return g.get("current_user", {}) or {}
    return {}


def make_log_tag(file, resource, method, ip, user_id, role, auth_lubricentro_id, target_lubricentro_id, **kwargs):
    # Base tag
    log_tag = (
        f"[{file}]"
        f"[{resource}]"
        f"[{method}]"
        f"[ip:{ip}]"
        f"[user:{user_id}]"
        f"[role:{role}]"
        f"[auth_lubricentro:{auth_lubricentro_id}]"
        f"[target_lubricentro:{target_lubricentro_id}]"
    )

    # Append extra context fields
    for key, value in kwargs.items():
        log_tag += f"[{key}:{value}]"

    return log_tag


def resource_log_tag(file, resource, method, target_lubricentro_id=None, **kwargs):
    """make_log_tag filled in from the current request user."""
    user = current_user()
    return make_log_tag(
        file,
        resource,
        method,
        client_ip(),
        str(user.get("_id", "")),
        user.get("role"),
        user.get("lubricentro_id"),
        target_lubricentro_id,
        **kwargs,
    )
