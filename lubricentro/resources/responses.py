# lubricentro/resources/responses.py

from flask import g
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError

from ..services import audit_service
from ..utils.errors import DomainValidationError, EntitlementError, NotFoundError
from ..utils.json_response import prepared_response
from ..utils.logger import Log


# Exceptions with an app-level handler; resources let these propagate
HANDLED_ERRORS = (
    DomainValidationError,
    EntitlementError,
    NotFoundError,
    PermissionError,
    ValidationError,
    HTTPException,
)


def system_error_response(log_tag, action, error, message="An unexpected error occurred. Please try again later."):
    """Log, audit as system_error and return a 500 envelope."""
    Log.error(f"{log_tag} {action} failed: {error}", exc_info=True)
    audit_service.log_system_error(action, error, user=g.get("current_user"))
    return prepared_response(False, "INTERNAL_SERVER_ERROR", message)
