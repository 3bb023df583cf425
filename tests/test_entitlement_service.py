from datetime import timedelta

from lubricentro.extensions.db import db
from lubricentro.models.audit_log_model import AuditLog
from lubricentro.models.lubricentro_model import Lubricentro
from lubricentro.services import entitlement_service
from lubricentro.utils.helpers import utcnow, add_months
from lubricentro.utils.periods import month_key


def test_trial_allows_service_below_limit(make_lubricentro, make_user):
    lubricentro = make_lubricentro(services_used=9)
    employee = make_user("employee", lubricentro)

    result = entitlement_service.check(lubricentro["_id"], "create_service", employee)

    assert result.allowed is True
    assert result.details["limits"]["current_services"] == 9


def test_trial_with_ten_services_cannot_create_another(make_lubricentro, make_user):
    lubricentro = make_lubricentro(services_used=10)
    admin = make_user("admin", lubricentro)

    result = entitlement_service.check(lubricentro["_id"], "create_service", admin)

    assert result.allowed is False
    assert result.code == "TRIAL_SERVICE_LIMIT"
    assert result.suggested_action == "upgrade_plan"
    assert result.error_type == "validation"


def test_stale_counter_from_previous_month_reads_as_zero(make_lubricentro, make_user):
    last_month = add_months(utcnow(), -1)
    lubricentro = make_lubricentro(services_used=10, services_period=month_key(last_month))
    employee = make_user("employee", lubricentro)

    result = entitlement_service.check(lubricentro["_id"], "create_service", employee)

    assert result.allowed is True


def test_inactive_lubricentro_rejects_services_for_every_role(make_lubricentro, make_user):
    lubricentro = make_lubricentro(status="inactive")
    for role in ("employee", "admin", "superadmin"):
        user = make_user(role, lubricentro if role != "superadmin" else None)
        result = entitlement_service.check(lubricentro["_id"], "create_service", user)
        assert result.allowed is False
        assert result.code == "LUBRICENTRO_INACTIVE"
        assert result.suggested_action == "contact_support"


def test_expired_trial_suggests_extension(make_lubricentro, make_user):
    lubricentro = make_lubricentro(trial_end_date=utcnow() - timedelta(days=1))
    admin = make_user("admin", lubricentro)

    result = entitlement_service.check(lubricentro["_id"], "create_service", admin)

    assert result.allowed is False
    assert result.code == "TRIAL_EXPIRED"
    assert result.suggested_action == "extend_trial"


def test_employee_cannot_perform_admin_actions(make_lubricentro, make_user):
    lubricentro = make_lubricentro()
    employee = make_user("employee", lubricentro)

    for action in ("admin_action", "create_user", "view_reports"):
        result = entitlement_service.check(lubricentro["_id"], action, employee)
        assert result.allowed is False
        assert result.code == "ROLE_NOT_PERMITTED"


def test_admin_cannot_act_on_another_lubricentro(make_lubricentro, make_user):
    own = make_lubricentro()
    other = make_lubricentro(fantasy_name="Lubricentro Sur")
    admin = make_user("admin", own)

    result = entitlement_service.check(other["_id"], "create_service", admin)

    assert result.allowed is False
    assert result.code == "TENANT_SCOPE"


def test_superadmin_admin_action_skips_tenant_rules(make_lubricentro, superadmin):
    lubricentro = make_lubricentro(status="inactive")

    result = entitlement_service.check(lubricentro["_id"], "admin_action", superadmin)

    assert result.allowed is True


def test_missing_or_inactive_user_is_rejected(make_lubricentro, make_user):
    lubricentro = make_lubricentro()

    anonymous = entitlement_service.check(lubricentro["_id"], "create_service", None)
    assert anonymous.code == "AUTH_REQUIRED"
    assert anonymous.suggested_action == "login_required"

    inactive = make_user("admin", lubricentro, status="inactive")
    result = entitlement_service.check(lubricentro["_id"], "create_service", inactive)
    assert result.code == "USER_INACTIVE"


def test_unknown_action(make_lubricentro, make_user):
    lubricentro = make_lubricentro()
    admin = make_user("admin", lubricentro)

    result = entitlement_service.check(lubricentro["_id"], "delete_everything", admin)

    assert result.allowed is False
    assert result.code == "UNKNOWN_ACTION"


def test_trial_user_limit(make_lubricentro, make_user):
    lubricentro = make_lubricentro(active_users=2)
    admin = make_user("admin", lubricentro)

    result = entitlement_service.check(lubricentro["_id"], "create_user", admin)

    assert result.allowed is False
    assert result.code == "TRIAL_USER_LIMIT"


def test_active_plan_limits(make_lubricentro, make_user):
    starter = make_lubricentro(status="active", subscription_plan="starter", services_used=25)
    admin = make_user("admin", starter)

    services = entitlement_service.check(starter["_id"], "create_service", admin)
    assert services.code == "PLAN_SERVICE_LIMIT"
    assert services.suggested_action == "upgrade_plan"

    users = entitlement_service.check(starter["_id"], "create_user", admin)
    assert users.code == "PLAN_USER_LIMIT"


def test_enterprise_plan_has_no_service_limit(make_lubricentro, make_user):
    lubricentro = make_lubricentro(status="active", subscription_plan="enterprise", services_used=5000)
    employee = make_user("employee", lubricentro)

    result = entitlement_service.check(lubricentro["_id"], "create_service", employee)

    assert result.allowed is True
    assert result.details["limits"]["max_services"] is None


def test_rejections_are_audited_by_kind(make_lubricentro, make_user):
    lubricentro = make_lubricentro(services_used=10)
    employee = make_user("employee", lubricentro)

    entitlement_service.check(lubricentro["_id"], "view_reports", employee)
    entitlement_service.check(lubricentro["_id"], "create_service", employee)

    audit = db.db.audit_logs
    assert audit.count_documents({"type": "permission_denied", "action": "view_reports"}) == 1
    assert audit.count_documents({"type": "validation_failed", "action": "create_service"}) == 1


def test_failing_audit_store_does_not_change_decision(monkeypatch, make_lubricentro, make_user):
    lubricentro = make_lubricentro(services_used=10)
    employee = make_user("employee", lubricentro)

    def _boom(*args, **kwargs):
        raise RuntimeError("audit store down")

    monkeypatch.setattr(AuditLog, "insert", _boom)

    denied = entitlement_service.check(lubricentro["_id"], "create_service", employee)
    assert denied.allowed is False
    assert denied.code == "TRIAL_SERVICE_LIMIT"


def test_unexpected_failure_is_a_system_error(monkeypatch, make_lubricentro, make_user):
    lubricentro = make_lubricentro()
    admin = make_user("admin", lubricentro)

    def _boom(*args, **kwargs):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(Lubricentro, "get_by_id", _boom)

    result = entitlement_service.check(lubricentro["_id"], "create_service", admin)

    assert result.allowed is False
    assert result.error_type == "system"
    assert db.db.audit_logs.count_documents({"type": "system_error"}) == 1


def test_subscription_limits_view_for_trial(make_lubricentro):
    lubricentro = make_lubricentro(services_used=4)

    limits = entitlement_service.get_subscription_limits(lubricentro)

    assert limits["is_trial"] is True
    assert limits["max_services"] == 10
    assert limits["current_services"] == 4
    assert limits["can_add_services"] is True
    assert 0 < limits["days_remaining"] <= 7
