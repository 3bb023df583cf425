from datetime import datetime

import pytest

from lubricentro.extensions.db import db
from lubricentro.models.lubricentro_model import Lubricentro
from lubricentro.models.user_model import User
from lubricentro.services import lubricentro_service, user_service
from lubricentro.utils.errors import DomainValidationError, EntitlementError
from lubricentro.utils.helpers import utcnow


def test_reactivating_user_over_trial_limit_is_refused(make_lubricentro, make_user):
    lubricentro = make_lubricentro(active_users=2)
    admin = make_user("admin", lubricentro)
    make_user("employee", lubricentro)
    idle = make_user("employee", lubricentro, status="inactive")

    with pytest.raises(EntitlementError) as exc:
        user_service.update_user_status(idle["_id"], "active", admin)

    assert exc.value.code == "TRIAL_USER_LIMIT"
    assert User.get_by_id(idle["_id"])["status"] == "inactive"


def test_deactivating_user_recounts_active_users(admin, employee, trial_lubricentro):
    Lubricentro.update(trial_lubricentro["_id"], active_user_count=2)

    updated = user_service.update_user_status(employee["_id"], "inactive", admin)

    assert updated["status"] == "inactive"
    assert Lubricentro.get_by_id(trial_lubricentro["_id"])["active_user_count"] == 1


def test_admin_cannot_change_own_status(admin):
    with pytest.raises(PermissionError):
        user_service.update_user_status(admin["_id"], "inactive", admin)


def test_unknown_status_is_rejected(admin, employee):
    with pytest.raises(DomainValidationError):
        user_service.update_user_status(employee["_id"], "banned", admin)


def test_employee_edits_own_name_but_not_role(employee):
    updated = user_service.update_user(employee["_id"], {"first_name": "Lucia", "role": "admin"}, employee)

    assert updated["first_name"] == "Lucia"
    assert updated["role"] == "employee"


def test_employee_cannot_edit_other_users(admin, employee):
    with pytest.raises(PermissionError):
        user_service.update_user(admin["_id"], {"first_name": "Nope"}, employee)


def test_admin_cannot_grant_superadmin(admin, employee):
    with pytest.raises(PermissionError):
        user_service.update_user(employee["_id"], {"role": "superadmin"}, admin)


def test_admin_updates_employee(admin, employee):
    updated = user_service.update_user(employee["_id"], {"last_name": "Suarez"}, admin)

    assert updated["last_name"] == "Suarez"
    assert db.db.audit_logs.count_documents({"type": "user_updated"}) == 1


def test_delete_user_recounts_and_audits(admin, employee, trial_lubricentro):
    Lubricentro.update(trial_lubricentro["_id"], active_user_count=2)

    assert user_service.delete_user(employee["_id"], admin) is True

    assert User.get_by_id(employee["_id"]) is None
    assert Lubricentro.get_by_id(trial_lubricentro["_id"])["active_user_count"] == 1
    assert db.db.audit_logs.count_documents({"type": "user_deleted"}) == 1


def test_admin_cannot_delete_self_or_other_tenants(admin, make_lubricentro, make_user):
    other = make_user("employee", make_lubricentro(fantasy_name="Lubricentro Sur"))

    with pytest.raises(PermissionError):
        user_service.delete_user(admin["_id"], admin)
    with pytest.raises(PermissionError):
        user_service.delete_user(other["_id"], admin)

    assert User.get_by_id(other["_id"]) is not None


def test_admin_updates_contact_data(admin, trial_lubricentro):
    updated = lubricentro_service.update_lubricentro(
        trial_lubricentro["_id"],
        {"ticket_prefix": "sur", "email": "Nuevo@Example.com", "owner_id": "64b000000000000000000000"},
        admin,
    )

    assert updated["ticket_prefix"] == "SUR"
    assert updated["email"] == "nuevo@example.com"
    assert updated.get("owner_id") == trial_lubricentro.get("owner_id")


def test_admin_cannot_change_lubricentro_status(admin, trial_lubricentro):
    with pytest.raises(PermissionError):
        lubricentro_service.update_lubricentro(trial_lubricentro["_id"], {"status": "active"}, admin)

    assert Lubricentro.get_by_id(trial_lubricentro["_id"])["status"] == "trial"


def test_superadmin_changes_lubricentro_status(superadmin, make_lubricentro):
    lubricentro = make_lubricentro(status="inactive", trial_end_date=datetime(2024, 1, 1))

    updated = lubricentro_service.update_lubricentro(lubricentro["_id"], {"status": "trial"}, superadmin)

    assert updated["status"] == "trial"
    assert updated["trial_end_date"] > utcnow()


def test_admin_cannot_update_other_lubricentro(admin, make_lubricentro):
    other = make_lubricentro(fantasy_name="Lubricentro Sur")

    with pytest.raises(PermissionError):
        lubricentro_service.update_lubricentro(other["_id"], {"responsible": "Otro Dueño"}, admin)


def test_invalid_contact_data_is_rejected(admin, trial_lubricentro):
    with pytest.raises(DomainValidationError) as exc:
        lubricentro_service.update_lubricentro(trial_lubricentro["_id"], {"cuit": "123"}, admin)

    assert "cuit" in exc.value.errors
