# lubricentro/services/oil_change_service.py

from ..constants.service_code import ENTITLEMENT_ACTIONS
from ..models.lubricentro_model import Lubricentro
from ..models.oil_change_model import OilChange
from ..utils.errors import DomainValidationError, EntitlementError, NotFoundError
from ..utils.validation import is_valid_domain
from ..utils.logger import Log
from . import audit_service, entitlement_service, subscription_service
from .access import is_superadmin, ensure_admin_of, ensure_lubricentro_access


MIN_CLIENT_NAME_LENGTH = 2


def validate_service_data(data: dict, partial=False) -> dict:
    errors = {}
    if not partial or "client_name" in data:
        if len((data.get("client_name") or "").strip()) < MIN_CLIENT_NAME_LENGTH:
            errors["client_name"] = [f"Client name must have at least {MIN_CLIENT_NAME_LENGTH} characters."]
    if not partial or "vehicle_domain" in data:
        if not is_valid_domain(data.get("vehicle_domain")):
            errors["vehicle_domain"] = ["Invalid licence plate. Accepted formats: AA123BB, AAA123, A123BCD."]
    return errors


def create_oil_change(data: dict, actor: dict) -> dict:
    """
    Validate, run the create_service entitlement check, store the record,
    then bump the monthly counter. Counter and audit failures do not undo
    the stored record.
    """
    lubricentro_id = data.get("lubricentro_id") if is_superadmin(actor) else actor.get("lubricentro_id")
    log_tag = f"[oil_change_service.py][create_oil_change][lubricentro:{lubricentro_id}]"

    errors = validate_service_data(data)
    if errors:
        audit_service.log_validation_failure("create_service", "invalid service data", user=actor,
                                             lubricentro_id=lubricentro_id, metadata={"fields": list(errors)})
        raise DomainValidationError("Invalid service data", errors)

    result = entitlement_service.check(
        lubricentro_id,
        ENTITLEMENT_ACTIONS["CREATE_SERVICE"],
        actor,
        metadata={"vehicle_domain": data.get("vehicle_domain")},
    )
    if not result.allowed:
        raise EntitlementError(result.code, result.reason, result.suggested_action, result.details)

    lubricentro = Lubricentro.get_by_id(lubricentro_id)
    if not lubricentro:
        raise NotFoundError("Lubricentro not found")

    payload = dict(data)
    payload.setdefault("operator_id", actor.get("_id"))
    if not payload.get("operator_name"):
        payload["operator_name"] = f"{actor.get('first_name', '')} {actor.get('last_name', '')}".strip()

    oil_change = OilChange.create(payload, lubricentro)

    try:
        subscription_service.increment_service_counter(lubricentro_id)
    except Exception as e:
        Log.error(f"{log_tag} failed to increment services counter: {e}")

    audit_service.log_service_action("create", oil_change, user=actor)
    return oil_change


def get_oil_change(oil_change_id, actor: dict) -> dict:
    oil_change = OilChange.get_by_id(oil_change_id)
    if not oil_change:
        raise NotFoundError("Service not found")
    ensure_lubricentro_access(actor, oil_change.get("lubricentro_id"))
    return oil_change


def update_oil_change(oil_change_id, updates: dict, actor: dict) -> dict:
    oil_change = get_oil_change(oil_change_id, actor)

    errors = validate_service_data(updates, partial=True)
    if errors:
        raise DomainValidationError("Invalid service data", errors)

    OilChange.update(oil_change_id, **updates)
    updated = OilChange.get_by_id(oil_change_id)
    audit_service.log_service_action("update", updated, user=actor)
    return updated


def delete_oil_change(oil_change_id, actor: dict) -> bool:
    oil_change = OilChange.get_by_id(oil_change_id)
    if not oil_change:
        raise NotFoundError("Service not found")

    try:
        ensure_admin_of(actor, oil_change.get("lubricentro_id"))
    except PermissionError as e:
        audit_service.log_permission_denied("delete_service", str(e), user=actor,
                                            lubricentro_id=oil_change.get("lubricentro_id"),
                                            metadata={"service_id": oil_change["_id"]})
        raise

    deleted = OilChange.delete(oil_change_id)
    if deleted:
        audit_service.log_service_action("delete", oil_change, user=actor)
    return deleted


def _scoped_lubricentro_id(actor, lubricentro_id=None):
    if not is_superadmin(actor) or not lubricentro_id:
        lubricentro_id = actor.get("lubricentro_id")
    ensure_lubricentro_access(actor, lubricentro_id)
    return lubricentro_id


def list_oil_changes(actor, page=1, per_page=20, term=None, field="client_name", lubricentro_id=None):
    lubricentro_id = _scoped_lubricentro_id(actor, lubricentro_id)
    if term:
        items = OilChange.search(lubricentro_id, term, field)
        return {
            "items": items,
            "total_count": len(items),
            "total_pages": 1 if items else 0,
            "current_page": 1,
            "per_page": len(items),
        }
    return OilChange.get_by_lubricentro(lubricentro_id, page, per_page)


def get_upcoming(actor, days=30, lubricentro_id=None):
    return OilChange.get_upcoming(_scoped_lubricentro_id(actor, lubricentro_id), days)


def get_oil_change_by_number(actor, service_number, lubricentro_id=None) -> dict:
    oil_change = OilChange.get_by_number(_scoped_lubricentro_id(actor, lubricentro_id), service_number)
    if not oil_change:
        raise NotFoundError("Service not found")
    return oil_change


def get_stats(actor, lubricentro_id=None):
    return OilChange.get_stats(_scoped_lubricentro_id(actor, lubricentro_id))


def get_operator_report(actor, start=None, end=None, lubricentro_id=None):
    return OilChange.get_operator_stats(_scoped_lubricentro_id(actor, lubricentro_id), start, end)
