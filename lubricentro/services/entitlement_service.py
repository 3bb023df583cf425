# lubricentro/services/entitlement_service.py
"""
Entitlement check: decides whether a user may perform an action on a
lubricentro given its lifecycle status, trial window, plan limits and
the user's role.

Rejections are written to the audit trail on a best-effort basis; the
audit write never changes the decision.
"""
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, Optional

from ..constants.plans import TRIAL_LIMITS, DEFAULT_PLAN, get_plan
from ..constants.service_code import (
    ENTITLEMENT_ACTIONS,
    ROLE_PERMISSIONS,
    SUGGESTED_ACTIONS,
    USER_ROLES,
    USER_STATUS,
    LUBRICENTRO_STATUS,
)
from ..models.lubricentro_model import Lubricentro
from ..utils.helpers import utcnow, days_until
from ..utils.logger import Log
from . import audit_service


ERROR_TYPE_VALIDATION = "validation"
ERROR_TYPE_SYSTEM = "system"

# Rejection codes that come from the role/tenant-scope rules
PERMISSION_CODES = ("ROLE_NOT_PERMITTED", "TENANT_SCOPE")


@dataclass
class EntitlementResult:
    allowed: bool
    reason: Optional[str] = None
    suggested_action: Optional[str] = None
    error_type: Optional[str] = None
    code: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _deny(code, reason, suggested_action, details=None, error_type=ERROR_TYPE_VALIDATION):
    return EntitlementResult(
        allowed=False,
        reason=reason,
        suggested_action=suggested_action,
        error_type=error_type,
        code=code,
        details=details or {},
    )


# =========================================================
# LIMITS VIEW
# =========================================================

def get_subscription_limits(lubricentro: dict, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Unified view of what a lubricentro may still do in the current period.
    """
    now = now or utcnow()
    status = lubricentro.get("status")
    current_users = int(lubricentro.get("active_user_count") or 1)
    current_services = Lubricentro.effective_services_used(lubricentro, now)

    if status == LUBRICENTRO_STATUS["TRIAL"]:
        days_remaining = days_until(lubricentro.get("trial_end_date"), now)
        max_users = TRIAL_LIMITS["users"]
        max_services = TRIAL_LIMITS["services"]
        expired = days_remaining <= 0

        if expired:
            message = "Your trial period has expired. Contact support to activate your subscription."
        elif current_services >= max_services:
            message = (
                f"You have used the {max_services} services included in the trial. "
                "Activate a subscription to keep registering services."
            )
        else:
            message = f"Trial: {days_remaining} day(s) and {max_services - current_services} service(s) remaining."

        return {
            "status": status,
            "plan": None,
            "is_trial": True,
            "max_users": max_users,
            "max_services": max_services,
            "current_users": current_users,
            "current_services": current_services,
            "days_remaining": days_remaining,
            "can_add_users": not expired and current_users < max_users,
            "can_add_services": not expired and current_services < max_services,
            "message": message,
        }

    if status == LUBRICENTRO_STATUS["ACTIVE"]:
        plan_id = lubricentro.get("subscription_plan") or DEFAULT_PLAN
        plan = get_plan(plan_id) or get_plan(DEFAULT_PLAN)
        max_users = plan["max_users"]
        max_services = plan["max_monthly_services"]

        can_add_services = max_services is None or current_services < max_services
        message = None
        if not can_add_services:
            message = (
                f"You have reached the {max_services} monthly services of {plan['name']}. "
                "Upgrade your plan to keep registering services."
            )

        return {
            "status": status,
            "plan": plan["id"],
            "is_trial": False,
            "max_users": max_users,
            "max_services": max_services,
            "current_users": current_users,
            "current_services": current_services,
            "days_remaining": None,
            "can_add_users": current_users < max_users,
            "can_add_services": can_add_services,
            "message": message,
        }

    return {
        "status": status,
        "plan": lubricentro.get("subscription_plan"),
        "is_trial": False,
        "max_users": 0,
        "max_services": 0,
        "current_users": current_users,
        "current_services": current_services,
        "days_remaining": 0,
        "can_add_users": False,
        "can_add_services": False,
        "message": "This lubricentro is inactive. Contact support to reactivate it.",
    }


# =========================================================
# RULES
# =========================================================

def _check_user(user, action, lubricentro_id) -> Optional[EntitlementResult]:
    if not user:
        return _deny(
            "AUTH_REQUIRED",
            "You must be logged in to perform this action.",
            SUGGESTED_ACTIONS["LOGIN_REQUIRED"],
        )

    if user.get("status") != USER_STATUS["ACTIVE"]:
        return _deny(
            "USER_INACTIVE",
            "Your user account is not active.",
            SUGGESTED_ACTIONS["CONTACT_SUPPORT"],
            {"user_status": user.get("status")},
        )

    role = user.get("role")
    if action not in ROLE_PERMISSIONS.get(role, set()):
        return _deny(
            "ROLE_NOT_PERMITTED",
            f"Your role ({role}) is not allowed to perform {action}.",
            SUGGESTED_ACTIONS["CONTACT_SUPPORT"],
            {"role": role, "action": action},
        )

    if role != USER_ROLES["SUPER_ADMIN"] and str(user.get("lubricentro_id")) != str(lubricentro_id):
        return _deny(
            "TENANT_SCOPE",
            "You can only act on your own lubricentro.",
            SUGGESTED_ACTIONS["CONTACT_SUPPORT"],
            {"user_lubricentro_id": user.get("lubricentro_id"), "lubricentro_id": lubricentro_id},
        )

    return None


def _check_lubricentro(lubricentro, action, now) -> Optional[EntitlementResult]:
    status = lubricentro.get("status")
    limits = get_subscription_limits(lubricentro, now)
    details = {"status": status, "limits": limits}

    if status == LUBRICENTRO_STATUS["INACTIVE"] or status not in LUBRICENTRO_STATUS.values():
        return _deny(
            "LUBRICENTRO_INACTIVE",
            "This lubricentro is inactive. Contact support to reactivate it.",
            SUGGESTED_ACTIONS["CONTACT_SUPPORT"],
            details,
        )

    if status == LUBRICENTRO_STATUS["TRIAL"]:
        if limits["days_remaining"] <= 0:
            return _deny(
                "TRIAL_EXPIRED",
                "Your trial period has expired. Contact support to activate your subscription.",
                SUGGESTED_ACTIONS["EXTEND_TRIAL"],
                details,
            )
        if limits["current_services"] >= TRIAL_LIMITS["services"]:
            return _deny(
                "TRIAL_SERVICE_LIMIT",
                f"The trial allows up to {TRIAL_LIMITS['services']} services. "
                "Activate a subscription to continue.",
                SUGGESTED_ACTIONS["UPGRADE_PLAN"],
                details,
            )
        if action == ENTITLEMENT_ACTIONS["CREATE_USER"] and not limits["can_add_users"]:
            return _deny(
                "TRIAL_USER_LIMIT",
                f"The trial allows up to {TRIAL_LIMITS['users']} users.",
                SUGGESTED_ACTIONS["UPGRADE_PLAN"],
                details,
            )
        return None

    # active
    if action == ENTITLEMENT_ACTIONS["CREATE_SERVICE"] and not limits["can_add_services"]:
        return _deny(
            "PLAN_SERVICE_LIMIT",
            limits["message"],
            SUGGESTED_ACTIONS["UPGRADE_PLAN"],
            details,
        )
    if action == ENTITLEMENT_ACTIONS["CREATE_USER"] and not limits["can_add_users"]:
        return _deny(
            "PLAN_USER_LIMIT",
            f"Your plan allows up to {limits['max_users']} users. Upgrade your plan to add more.",
            SUGGESTED_ACTIONS["UPGRADE_PLAN"],
            details,
        )
    return None


def _evaluate(lubricentro_id, action, user, now) -> EntitlementResult:
    if action not in ENTITLEMENT_ACTIONS.values():
        return _deny("UNKNOWN_ACTION", f"Unknown action: {action}", SUGGESTED_ACTIONS["CONTACT_SUPPORT"])

    if not lubricentro_id and user and user.get("role") != USER_ROLES["SUPER_ADMIN"]:
        lubricentro_id = user.get("lubricentro_id")

    denied = _check_user(user, action, lubricentro_id)
    if denied:
        return denied

    # superadmins manage tenant lifecycle, including inactive tenants
    if user.get("role") == USER_ROLES["SUPER_ADMIN"] and action == ENTITLEMENT_ACTIONS["ADMIN_ACTION"]:
        return EntitlementResult(allowed=True)

    if not lubricentro_id:
        return _deny(
            "LUBRICENTRO_REQUIRED",
            "A lubricentro is required for this action.",
            SUGGESTED_ACTIONS["CONTACT_SUPPORT"],
        )

    lubricentro = Lubricentro.get_by_id(lubricentro_id)
    if not lubricentro:
        return _deny(
            "LUBRICENTRO_NOT_FOUND",
            "Lubricentro not found.",
            SUGGESTED_ACTIONS["CONTACT_SUPPORT"],
            {"lubricentro_id": str(lubricentro_id)},
        )

    denied = _check_lubricentro(lubricentro, action, now)
    if denied:
        return denied

    return EntitlementResult(
        allowed=True,
        details={"limits": get_subscription_limits(lubricentro, now)},
    )


def _audit_rejection(result: EntitlementResult, action, user, lubricentro_id, metadata):
    meta = {**(metadata or {}), "code": result.code, "suggested_action": result.suggested_action}
    if result.code in PERMISSION_CODES:
        audit_service.log_permission_denied(action, result.reason, user=user,
                                            lubricentro_id=lubricentro_id, metadata=meta)
    else:
        audit_service.log_validation_failure(action, result.reason, user=user,
                                             lubricentro_id=lubricentro_id, metadata=meta)


def check(lubricentro_id, action: str, user: Optional[dict], metadata: Optional[dict] = None,
          now: Optional[datetime] = None) -> EntitlementResult:
    """
    Decide whether `user` may perform `action` on `lubricentro_id`.
    Never raises; unexpected failures come back as a denied result with
    error_type "system".
    """
    log_tag = f"[entitlement_service.py][check][{action}][lubricentro:{lubricentro_id}]"
    now = now or utcnow()

    try:
        result = _evaluate(lubricentro_id, action, user, now)
    except Exception as e:
        Log.error(f"{log_tag} entitlement check failed: {e}", exc_info=True)
        audit_service.log_system_error(f"entitlement:{action}", e, user=user,
                                       lubricentro_id=lubricentro_id, metadata=metadata)
        return _deny(
            "SYSTEM_ERROR",
            "The request could not be validated. Please try again.",
            SUGGESTED_ACTIONS["CONTACT_SUPPORT"],
            error_type=ERROR_TYPE_SYSTEM,
        )

    if result.allowed:
        Log.info(f"{log_tag} allowed")
    else:
        Log.info(f"{log_tag} denied code={result.code}")
        _audit_rejection(result, action, user, lubricentro_id, metadata)

    return result
