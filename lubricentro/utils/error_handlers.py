from .json_response import error_response
from .logger import Log


def handle_permission_error(error):
    return error_response(403, "PermissionError", str(error))


def handle_validation_error(error):
    # marshmallow errors raised outside of @blp.arguments
    return error_response(400, "Validation Error", "Invalid data", errors=error.messages)


def handle_type_error(error):
    return error_response(400, "Type Error", str(error))


def handle_domain_validation_error(error):
    return error_response(400, "Validation Error", error.message, errors=error.errors)


def handle_not_found_error(error):
    return error_response(404, "Not Found", error.message)


def handle_entitlement_error(error):
    Log.info(f"[error_handlers.py][handle_entitlement_error] {error.code}: {error.message}")
    return error_response(
        403,
        error.code,
        error.message,
        reason=error.message,
        suggested_action=error.suggested_action,
        details=error.meta,
    )


def handle_rate_limit(e):
    # e.description carries the error_message given to limiter.limit
    return error_response(
        429,
        "Too Many Requests",
        e.description or "Too many requests, please try again later.",
    )
