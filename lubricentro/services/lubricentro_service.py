# lubricentro/services/lubricentro_service.py

from marshmallow import ValidationError

from ..constants.service_code import (
    AUDIT_EVENT_TYPES,
    LUBRICENTRO_STATUS,
    USER_ROLES,
    USER_STATUS,
)
from ..models.lubricentro_model import Lubricentro
from ..models.user_model import User
from ..utils.errors import DomainValidationError, NotFoundError
from ..utils.validation import validate_cuit, validate_email, validate_phone
from ..utils.logger import Log
from . import audit_service, subscription_service, user_service
from .access import is_superadmin, ensure_admin_of, ensure_lubricentro_access


# Contact fields an admin may edit on their own lubricentro
ADMIN_EDITABLE_FIELDS = (
    "fantasy_name", "responsible", "domicile", "cuit", "phone", "email", "logo_url", "ticket_prefix",
)


MIN_LENGTHS = {
    "fantasy_name": 2,
    "responsible": 2,
    "domicile": 5,
}


def validate_lubricentro_data(data: dict) -> dict:
    """
    Returns a field -> [messages] dict; empty when the data is acceptable.
    """
    errors = {}
    for field_name, min_length in MIN_LENGTHS.items():
        if len((data.get(field_name) or "").strip()) < min_length:
            errors[field_name] = [f"Must have at least {min_length} characters."]

    checks = {
        "cuit": validate_cuit,
        "email": validate_email,
        "phone": validate_phone,
    }
    for field_name, check in checks.items():
        try:
            check((data.get(field_name) or "").strip())
        except ValidationError as e:
            errors[field_name] = e.messages
    return errors


def register_lubricentro(owner_data: dict, lubricentro_data: dict) -> dict:
    """
    Self-service sign-up: creates the owner (an active admin) and the
    lubricentro in trial, then links the two.
    """
    owner_data = {**owner_data, "role": USER_ROLES["ADMIN"]}

    errors = {
        k: v for k, v in user_service.validate_user_creation(owner_data).items()
        if k != "lubricentro_id"
    }
    lubricentro_errors = validate_lubricentro_data(lubricentro_data)
    if lubricentro_errors:
        errors["lubricentro"] = lubricentro_errors
    if errors:
        audit_service.log_validation_failure("register_lubricentro", "invalid owner data",
                                             metadata={"fields": list(errors)})
        raise DomainValidationError("Invalid owner data", errors)

    owner = User.create(
        email=owner_data["email"],
        password=owner_data["password"],
        first_name=owner_data.get("first_name"),
        last_name=owner_data.get("last_name"),
        role=USER_ROLES["ADMIN"],
        status=USER_STATUS["ACTIVE"],
    )

    lubricentro = Lubricentro.create({**lubricentro_data, "owner_id": owner["_id"]})
    User.update(owner["_id"], lubricentro_id=lubricentro["_id"])
    owner["lubricentro_id"] = lubricentro["_id"]
    subscription_service.update_active_user_count(lubricentro["_id"])

    Log.info(
        f"[lubricentro_service.py][register_lubricentro] lubricentro={lubricentro['_id']} owner={owner['_id']}"
    )
    audit_service.log_user_action("create", f"Owner {owner['email']} registered", user=owner,
                                  target_user=owner, lubricentro_id=lubricentro["_id"])
    audit_service.log_event(
        AUDIT_EVENT_TYPES["ADMIN_ACTION"],
        "register_lubricentro",
        f"Lubricentro {lubricentro['fantasy_name']} registered in trial",
        user=owner,
        lubricentro_id=lubricentro["_id"],
        lubricentro_name=lubricentro["fantasy_name"],
    )
    return {"lubricentro": Lubricentro.get_by_id(lubricentro["_id"]), "owner": owner}


def get_lubricentro(lubricentro_id, actor: dict) -> dict:
    ensure_lubricentro_access(actor, lubricentro_id)
    lubricentro = Lubricentro.get_by_id(lubricentro_id)
    if not lubricentro:
        raise NotFoundError("Lubricentro not found")
    return lubricentro


def list_lubricentros(actor: dict, term=None, status=None):
    if not is_superadmin(actor):
        raise PermissionError("Superadmin role required.")
    if term:
        return Lubricentro.search(term)
    return Lubricentro.get_all(status)


def update_lubricentro(lubricentro_id, updates: dict, actor: dict) -> dict:
    """
    Admins edit contact data of their own lubricentro. Superadmins may also
    change the lifecycle status.
    """
    if not is_superadmin(actor):
        ensure_admin_of(actor, lubricentro_id)

    lubricentro = Lubricentro.get_by_id(lubricentro_id)
    if not lubricentro:
        raise NotFoundError("Lubricentro not found")

    clean = {k: v for k, v in updates.items() if k in ADMIN_EDITABLE_FIELDS}
    if "ticket_prefix" in clean and clean["ticket_prefix"]:
        clean["ticket_prefix"] = clean["ticket_prefix"].strip().upper()
    if "email" in clean and clean["email"]:
        clean["email"] = clean["email"].strip().lower()

    errors = {
        k: v for k, v in validate_lubricentro_data({**lubricentro, **clean}).items()
        if k in clean
    }
    if errors:
        raise DomainValidationError("Invalid lubricentro data", errors)

    status = updates.get("status")
    if status is not None:
        if not is_superadmin(actor):
            raise PermissionError("Only superadmins can change the lubricentro status.")
        if status not in LUBRICENTRO_STATUS.values():
            raise DomainValidationError("Invalid status", {"status": ["Unknown status."]})

    if clean:
        Lubricentro.update(lubricentro_id, **clean)
    if status is not None and status != lubricentro.get("status"):
        Lubricentro.update_status(lubricentro_id, status)

    audit_service.log_event(
        AUDIT_EVENT_TYPES["ADMIN_ACTION"],
        "update_lubricentro",
        f"Lubricentro {lubricentro.get('fantasy_name')} updated",
        user=actor,
        lubricentro_id=lubricentro["_id"],
        lubricentro_name=lubricentro.get("fantasy_name"),
        metadata={"fields": sorted(clean), "status": status},
    )
    return Lubricentro.get_by_id(lubricentro_id)
