from flask import jsonify

from ..constants.service_code import HTTP_STATUS_CODES


# keys present in every envelope, even when empty
ENVELOPE_KEYS = ("success", "status_code", "message")


def _envelope(success, code, message, **fields):
    body = {"success": success, "status_code": code, "message": message}
    body.update({key: value for key, value in fields.items() if value is not None})
    return body


def prepared_response(status, status_code, message, data=None, errors=None, required_fields=None, meta=None):
    """
    Build the standard JSON envelope from a symbolic status name
    ("OK", "CREATED", "FORBIDDEN", ...) and return it with the matching HTTP code.
    """
    code = HTTP_STATUS_CODES[status_code]
    body = _envelope(
        status,
        code,
        f"{message}",
        data=data,
        meta=meta,
        required_fields=required_fields,
        errors=errors,
    )
    return jsonify(body), code


def error_response(code, error, message, **extra):
    """Failure envelope keyed by a numeric HTTP code, used by the app error handlers."""
    body = _envelope(False, code, message, error=error, **extra)
    return jsonify(body), code
