# lubricentro/utils/entitlement_enforcer.py
from functools import wraps

from flask import g

from .json_response import prepared_response
from ..services import entitlement_service


def require_entitlement(action, lubricentro_id_resolver=None):
    """
    Gate a view on an entitlement check.

    lubricentro_id_resolver: optional callable (args, kwargs) -> lubricentro_id
      - If not provided, uses kwargs["lubricentro_id"] or the current user's lubricentro.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = g.get("current_user", {}) or {}

            if callable(lubricentro_id_resolver):
                lubricentro_id = lubricentro_id_resolver(args, kwargs)
            else:
                lubricentro_id = kwargs.get("lubricentro_id") or user.get("lubricentro_id")

            result = entitlement_service.check(lubricentro_id, action, user or None)
            if not result.allowed:
                status_code = "INTERNAL_SERVER_ERROR" if result.error_type == "system" else "FORBIDDEN"
                return prepared_response(
                    False,
                    status_code,
                    result.reason,
                    errors={
                        "code": result.code,
                        "suggested_action": result.suggested_action,
                        "error_type": result.error_type,
                    },
                )

            g.entitlement = result
            return fn(*args, **kwargs)
        return wrapper
    return decorator
