# lubricentro/utils/rate_limits.py

from flask import g, has_request_context, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from .logger import Log


def _client_ip():
    if has_request_context():
        return get_remote_address() or "unknown"
    return "unknown"


def log_rate_limit_breach(request_limit):
    """Flask-Limiter on_breach hook: one warning line per rejected request."""
    user = g.get("current_user") or {}
    tenant = user.get("lubricentro_id") or "-"

    Log.warning(
        f"[RATE_LIMIT_BREACH][{_client_ip()}] "
        f"user={user.get('_id') or 'anonymous'}, lubricentro={tenant}, "
        f"limit={request_limit.limit}, key={request_limit.key}, "
        f"{request.method} {request.path} ({request.endpoint or 'unknown'})"
    )


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["1000 per day", "200 per hour"],
    on_breach=log_rate_limit_breach,
)


def _payload():
    data = request.get_json(silent=True)
    if not data:
        data = request.form or request.values
    return data or {}


def login_key_func():
    """Throttle logins per email address; anonymous bodies fall back to the caller's IP."""
    email = _payload().get("email")
    if email:
        return f"login:{str(email).lower()[:100]}"
    return get_remote_address()


login_limiter = limiter.limit(
    "10 per minute; 50 per hour",
    key_func=login_key_func,
    error_message="Too many login attempts. Please wait and try again.",
)

register_limiter = limiter.limit(
    "5 per hour",
    key_func=get_remote_address,
    error_message="Too many registration attempts. Please try again later.",
)

# unauthenticated plate lookups
public_history_limiter = limiter.limit(
    "30 per minute",
    key_func=get_remote_address,
    error_message="Too many lookups. Please slow down.",
)
