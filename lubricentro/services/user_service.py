# lubricentro/services/user_service.py

from typing import Optional

from ..constants.service_code import (
    ENTITLEMENT_ACTIONS,
    USER_ROLES,
    USER_STATUS,
)
from ..models.lubricentro_model import Lubricentro
from ..models.user_model import User
from ..utils.errors import DomainValidationError, EntitlementError, NotFoundError
from ..utils.validation import is_valid_email
from ..utils.logger import Log
from . import audit_service, entitlement_service, subscription_service
from .access import is_superadmin, ensure_admin_of, ensure_lubricentro_access


MIN_NAME_LENGTH = 2
MIN_PASSWORD_LENGTH = 6

# Fields a user may change on their own profile
SELF_EDITABLE_FIELDS = ("first_name", "last_name")
ADMIN_EDITABLE_FIELDS = ("first_name", "last_name", "role")


def validate_user_creation(data: dict) -> dict:
    """
    Returns a field -> [messages] dict; empty when the data is acceptable.
    """
    errors = {}
    email = (data.get("email") or "").strip()
    role = data.get("role") or USER_ROLES["EMPLOYEE"]

    if not is_valid_email(email):
        errors["email"] = ["Invalid email address."]
    elif User.get_by_email(email):
        errors["email"] = ["This email is already registered."]

    if len((data.get("first_name") or "").strip()) < MIN_NAME_LENGTH:
        errors["first_name"] = [f"First name must have at least {MIN_NAME_LENGTH} characters."]

    if len(data.get("password") or "") < MIN_PASSWORD_LENGTH:
        errors["password"] = [f"Password must have at least {MIN_PASSWORD_LENGTH} characters."]

    if role not in USER_ROLES.values():
        errors["role"] = ["Unknown role."]

    if role != USER_ROLES["SUPER_ADMIN"]:
        lubricentro_id = data.get("lubricentro_id")
        if not lubricentro_id:
            errors["lubricentro_id"] = ["A lubricentro is required for this role."]
        elif not Lubricentro.get_by_id(lubricentro_id):
            errors["lubricentro_id"] = ["Lubricentro not found."]

    return errors


def create_user(data: dict, actor: dict) -> dict:
    """
    Create a user inside a lubricentro. Admins create users for their own
    lubricentro only; superadmins for any, including other superadmins.
    """
    data = dict(data)
    if not is_superadmin(actor):
        data["lubricentro_id"] = actor.get("lubricentro_id")
        if data.get("role") == USER_ROLES["SUPER_ADMIN"]:
            audit_service.log_permission_denied("create_user", "admins cannot create superadmins",
                                                user=actor, lubricentro_id=data["lubricentro_id"])
            raise PermissionError("Only superadmins can create superadmin users.")

    errors = validate_user_creation(data)
    if errors:
        audit_service.log_validation_failure("create_user", "invalid user data", user=actor,
                                             lubricentro_id=data.get("lubricentro_id"),
                                             metadata={"fields": list(errors)})
        raise DomainValidationError("Invalid user data", errors)

    role = data.get("role") or USER_ROLES["EMPLOYEE"]
    lubricentro_id = data.get("lubricentro_id") if role != USER_ROLES["SUPER_ADMIN"] else None

    if lubricentro_id:
        result = entitlement_service.check(lubricentro_id, ENTITLEMENT_ACTIONS["CREATE_USER"], actor)
        if not result.allowed:
            raise EntitlementError(result.code, result.reason, result.suggested_action, result.details)

    user = User.create(
        email=data["email"],
        password=data["password"],
        first_name=data.get("first_name"),
        last_name=data.get("last_name"),
        role=role,
        status=data.get("status") or USER_STATUS["ACTIVE"],
        lubricentro_id=lubricentro_id,
    )

    if lubricentro_id:
        subscription_service.update_active_user_count(lubricentro_id)

    audit_service.log_user_action("create", f"User {user['email']} created", user=actor,
                                  target_user=user, lubricentro_id=lubricentro_id)
    return user


def _get_target(user_id) -> dict:
    user = User.get_by_id(user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def update_user(user_id, updates: dict, actor: dict) -> dict:
    target = _get_target(user_id)

    if str(actor.get("_id")) == str(target["_id"]) and not is_superadmin(actor):
        allowed = SELF_EDITABLE_FIELDS if actor.get("role") != USER_ROLES["ADMIN"] else ADMIN_EDITABLE_FIELDS
    else:
        if not is_superadmin(actor):
            ensure_admin_of(actor, target.get("lubricentro_id"))
        allowed = ADMIN_EDITABLE_FIELDS

    clean = {k: v for k, v in updates.items() if k in allowed and v is not None}
    if clean.get("role") == USER_ROLES["SUPER_ADMIN"] and not is_superadmin(actor):
        raise PermissionError("Only superadmins can grant the superadmin role.")
    if "first_name" in clean and len(clean["first_name"].strip()) < MIN_NAME_LENGTH:
        raise DomainValidationError("Invalid user data", {
            "first_name": [f"First name must have at least {MIN_NAME_LENGTH} characters."]
        })

    if clean:
        User.update(user_id, **clean)
        audit_service.log_user_action("update", f"User {target['email']} updated", user=actor,
                                      target_user=target, lubricentro_id=target.get("lubricentro_id"))
    return User.get_by_id(user_id)


def update_user_status(user_id, status: str, actor: dict) -> dict:
    if status not in USER_STATUS.values():
        raise DomainValidationError("Invalid status", {"status": ["Unknown status."]})

    target = _get_target(user_id)
    if not is_superadmin(actor):
        ensure_admin_of(actor, target.get("lubricentro_id"))
        if str(actor.get("_id")) == str(target["_id"]):
            raise PermissionError("You cannot change your own status.")

    lubricentro_id = target.get("lubricentro_id")
    if (
        status == USER_STATUS["ACTIVE"]
        and target.get("status") != USER_STATUS["ACTIVE"]
        and lubricentro_id
    ):
        result = entitlement_service.check(lubricentro_id, ENTITLEMENT_ACTIONS["CREATE_USER"], actor)
        if not result.allowed:
            raise EntitlementError(result.code, result.reason, result.suggested_action, result.details)

    User.update_status(user_id, status)
    if lubricentro_id:
        subscription_service.update_active_user_count(lubricentro_id)

    audit_service.log_user_action(
        "update",
        f"User {target['email']} status changed from {target.get('status')} to {status}",
        user=actor, target_user=target, lubricentro_id=lubricentro_id,
    )
    return User.get_by_id(user_id)


def delete_user(user_id, actor: dict) -> bool:
    target = _get_target(user_id)
    if not is_superadmin(actor):
        ensure_admin_of(actor, target.get("lubricentro_id"))
    if str(actor.get("_id")) == str(target["_id"]):
        raise PermissionError("You cannot delete your own account.")

    deleted = User.delete(user_id)
    if deleted and target.get("lubricentro_id"):
        subscription_service.update_active_user_count(target["lubricentro_id"])

    audit_service.log_user_action("delete", f"User {target['email']} deleted", user=actor,
                                  target_user=target, lubricentro_id=target.get("lubricentro_id"))
    Log.info(f"[user_service.py][delete_user] user={user_id} deleted={deleted}")
    return deleted


def list_users(actor: dict, lubricentro_id: Optional[str] = None, term: Optional[str] = None):
    if not is_superadmin(actor):
        lubricentro_id = actor.get("lubricentro_id")
    if lubricentro_id:
        ensure_lubricentro_access(actor, lubricentro_id)

    if term:
        return User.search(term, lubricentro_id)
    if lubricentro_id:
        return User.get_by_lubricentro(lubricentro_id)
    return User.search("", None)


def get_user(user_id, actor: dict) -> dict:
    target = _get_target(user_id)
    if str(actor.get("_id")) != str(target["_id"]):
        ensure_lubricentro_access(actor, target.get("lubricentro_id"))
    return target
