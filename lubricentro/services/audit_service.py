# lubricentro/services/audit_service.py
"""
Audit trail for user, service and subscription activity.

Every write is best effort: a failing audit store is logged and swallowed,
it never interrupts the operation being audited.
"""
import traceback
import uuid
from typing import Optional

from flask import has_request_context, request

from ..constants.service_code import AUDIT_EVENT_TYPES, AUDIT_SEVERITIES
from ..models.audit_log_model import AuditLog
from ..utils.helpers import utcnow
from ..utils.logger import Log

# One id per worker process, used when the client does not send X-Session-Id
PROCESS_SESSION_ID = uuid.uuid4().hex

STACK_TRACE_LIMIT = 500

_LEVEL_BY_SEVERITY = {
    AUDIT_SEVERITIES["INFO"]: Log.info,
    AUDIT_SEVERITIES["WARNING"]: Log.warning,
    AUDIT_SEVERITIES["ERROR"]: Log.error,
    AUDIT_SEVERITIES["CRITICAL"]: Log.critical,
}


def _request_context():
    if not has_request_context():
        return None, None, PROCESS_SESSION_ID
    return (
        request.remote_addr,
        request.headers.get("User-Agent"),
        request.headers.get("X-Session-Id") or PROCESS_SESSION_ID,
    )


def _mirror_to_console(event: dict):
    user_label = event.get("user_email") or "system"
    line = (
        f"[AUDIT] {event['type'].upper()} | {event['action']} | "
        f"{event['description']} | User: {user_label}"
    )
    _LEVEL_BY_SEVERITY.get(event["severity"], Log.info)(line)


def log_event(event_type: str, action: str, description: str,
              severity: str = AUDIT_SEVERITIES["INFO"], user: Optional[dict] = None,
              lubricentro_id=None, lubricentro_name=None, metadata: Optional[dict] = None):
    """
    Record an audit event. Returns the stored event id, or None when the
    write failed.
    """
    try:
        user = user or {}
        ip_address, user_agent, session_id = _request_context()

        event = {
            "type": event_type,
            "severity": severity if severity in _LEVEL_BY_SEVERITY else AUDIT_SEVERITIES["INFO"],
            "user_id": str(user["_id"]) if user.get("_id") else None,
            "user_email": user.get("email"),
            "user_role": user.get("role"),
            "lubricentro_id": str(lubricentro_id or user.get("lubricentro_id") or "") or None,
            "lubricentro_name": lubricentro_name,
            "action": action,
            "description": description,
            "metadata": metadata or {},
            "ip_address": ip_address,
            "user_agent": user_agent,
            "session_id": session_id,
            "timestamp": utcnow(),
        }

        _mirror_to_console(event)
        stored = AuditLog.insert(event)
        return stored["_id"]

    except Exception as e:
        Log.error(f"[audit_service.py][log_event] failed to record {event_type}/{action}: {e}")
        return None


# -------------------------
# Convenience wrappers
# -------------------------
def log_user_action(action, description, user=None, target_user=None, lubricentro_id=None):
    event_type = {
        "login": AUDIT_EVENT_TYPES["USER_LOGIN"],
        "logout": AUDIT_EVENT_TYPES["USER_LOGOUT"],
        "create": AUDIT_EVENT_TYPES["USER_CREATED"],
        "update": AUDIT_EVENT_TYPES["USER_UPDATED"],
        "delete": AUDIT_EVENT_TYPES["USER_DELETED"],
    }.get(action, AUDIT_EVENT_TYPES["ADMIN_ACTION"])

    metadata = {}
    if target_user:
        metadata = {
            "target_user_id": str(target_user.get("_id")),
            "target_user_email": target_user.get("email"),
            "target_user_role": target_user.get("role"),
        }
    return log_event(event_type, action, description, user=user,
                     lubricentro_id=lubricentro_id, metadata=metadata)


def log_service_action(action, service: dict, user=None):
    event_type = {
        "create": AUDIT_EVENT_TYPES["SERVICE_CREATED"],
        "update": AUDIT_EVENT_TYPES["SERVICE_UPDATED"],
        "delete": AUDIT_EVENT_TYPES["SERVICE_DELETED"],
    }.get(action, AUDIT_EVENT_TYPES["ADMIN_ACTION"])

    service = service or {}
    return log_event(
        event_type,
        f"service_{action}",
        f"Service {service.get('service_number')} {action}d for {service.get('vehicle_domain')}",
        user=user,
        lubricentro_id=service.get("lubricentro_id"),
        lubricentro_name=service.get("lubricentro_name"),
        metadata={
            "service_id": str(service.get("_id")),
            "service_number": service.get("service_number"),
            "vehicle_domain": service.get("vehicle_domain"),
            "client_name": service.get("client_name"),
        },
    )


def log_subscription_action(event_type, description, lubricentro: dict, user=None, metadata=None):
    lubricentro = lubricentro or {}
    return log_event(
        event_type,
        event_type,
        description,
        user=user,
        lubricentro_id=lubricentro.get("_id"),
        lubricentro_name=lubricentro.get("fantasy_name"),
        metadata=metadata,
    )


def log_validation_failure(action, reason, user=None, lubricentro_id=None, metadata=None):
    return log_event(
        AUDIT_EVENT_TYPES["VALIDATION_FAILED"],
        action,
        f"Validation failed: {reason}",
        severity=AUDIT_SEVERITIES["WARNING"],
        user=user,
        lubricentro_id=lubricentro_id,
        metadata={**(metadata or {}), "reason": reason},
    )


def log_permission_denied(action, reason, user=None, lubricentro_id=None, metadata=None):
    return log_event(
        AUDIT_EVENT_TYPES["PERMISSION_DENIED"],
        action,
        f"Permission denied: {reason}",
        severity=AUDIT_SEVERITIES["WARNING"],
        user=user,
        lubricentro_id=lubricentro_id,
        metadata={**(metadata or {}), "reason": reason},
    )


def log_system_error(action, error: BaseException, user=None, lubricentro_id=None, metadata=None):
    stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
    return log_event(
        AUDIT_EVENT_TYPES["SYSTEM_ERROR"],
        action,
        f"System error: {error}",
        severity=AUDIT_SEVERITIES["ERROR"],
        user=user,
        lubricentro_id=lubricentro_id,
        metadata={
            **(metadata or {}),
            "error_name": type(error).__name__,
            "error_message": str(error),
            "stack": stack[:STACK_TRACE_LIMIT],
        },
    )


# -------------------------
# Reads
# -------------------------
def get_audit_logs(lubricentro_id=None, user_id=None, event_type=None, severity=None,
                   start_date=None, end_date=None, limit=AuditLog.DEFAULT_LIMIT):
    return AuditLog.query(
        lubricentro_id=lubricentro_id,
        user_id=user_id,
        type=event_type,
        severity=severity,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
    )


def get_audit_statistics(lubricentro_id=None, days=30):
    return AuditLog.statistics(lubricentro_id=lubricentro_id, days=days)
