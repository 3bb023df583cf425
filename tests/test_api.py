from lubricentro.extensions.db import db
from lubricentro.models.user_model import User
from lubricentro.services import audit_service


# password given to every user made by the make_user fixture
TEST_PASSWORD = "secret123"


REGISTER_PAYLOAD = {
    "owner": {
        "email": "Owner@Example.com",
        "password": "supersecret",
        "first_name": "Carla",
        "last_name": "Diaz",
    },
    "lubricentro": {
        "fantasy_name": "Lubri Express",
        "responsible": "Carla Diaz",
        "domicile": "Calle Falsa 123",
        "cuit": "27-23456789-0",
        "phone": "+54 11 4444 5555",
        "email": "contacto@lubriexpress.com",
        "ticket_prefix": "lx",
    },
}


def test_register_starts_trial_and_returns_token(client):
    response = client.post("/api/v1/auth/register", json=REGISTER_PAYLOAD)

    assert response.status_code == 201
    body = response.get_json()
    assert body["success"] is True
    assert body["data"]["lubricentro"]["status"] == "trial"
    assert body["data"]["lubricentro"]["ticket_prefix"] == "LX"
    assert body["data"]["user"]["role"] == "admin"
    assert "password" not in body["data"]["user"]
    assert body["data"]["access_token"]

    owner = User.get_by_email("owner@example.com")
    assert owner["lubricentro_id"] == body["data"]["lubricentro"]["_id"]


def test_register_rejects_duplicate_email(client):
    client.post("/api/v1/auth/register", json=REGISTER_PAYLOAD)

    response = client.post("/api/v1/auth/register", json=REGISTER_PAYLOAD)

    assert response.status_code == 400
    assert "email" in response.get_json()["errors"]


def test_login(client, admin):
    response = client.post("/api/v1/auth/login", json={"email": admin["email"].upper(), "password": TEST_PASSWORD})

    assert response.status_code == 200
    assert response.get_json()["data"]["token_type"] == "Bearer"
    assert db.db.audit_logs.count_documents({"type": "user_login"}) == 1


def test_login_wrong_password(client, admin):
    response = client.post("/api/v1/auth/login", json={"email": admin["email"], "password": "nope"})

    assert response.status_code == 401


def test_protected_route_requires_token(client):
    response = client.get("/api/v1/oil-changes")

    assert response.status_code == 401


def test_create_and_list_oil_changes(client, employee, auth_headers, oil_change_payload):
    headers = auth_headers(employee)

    created = client.post("/api/v1/oil-changes", json=oil_change_payload, headers=headers)
    assert created.status_code == 201
    assert created.get_json()["data"]["service_number"] == "NOR-00001"

    listed = client.get("/api/v1/oil-changes?per_page=5", headers=headers)
    assert listed.status_code == 200
    assert listed.get_json()["data"]["total_count"] == 1


def test_create_oil_change_over_trial_limit_is_forbidden(client, make_lubricentro, make_user,
                                                          auth_headers, oil_change_payload):
    lubricentro = make_lubricentro(services_used=10)
    employee = make_user("employee", lubricentro)

    response = client.post("/api/v1/oil-changes", json=oil_change_payload, headers=auth_headers(employee))

    assert response.status_code == 403
    body = response.get_json()
    assert body["error"] == "TRIAL_SERVICE_LIMIT"
    assert body["suggested_action"] == "upgrade_plan"


def test_invalid_oil_change_payload(client, employee, auth_headers, oil_change_payload):
    payload = {**oil_change_payload, "vehicle_domain": "12"}

    response = client.post("/api/v1/oil-changes", json=payload, headers=auth_headers(employee))

    assert response.status_code == 422


def test_employee_cannot_view_operator_report(client, employee, auth_headers):
    response = client.get("/api/v1/reports/operators", headers=auth_headers(employee))

    assert response.status_code == 403
    assert response.get_json()["errors"]["code"] == "ROLE_NOT_PERMITTED"


def test_admin_views_operator_report(client, admin, employee, auth_headers, oil_change_payload):
    client.post("/api/v1/oil-changes", json=oil_change_payload, headers=auth_headers(employee))

    response = client.get("/api/v1/reports/operators", headers=auth_headers(admin))

    assert response.status_code == 200
    assert response.get_json()["data"][0]["count"] == 1


def test_public_vehicle_history(client, employee, auth_headers, oil_change_payload):
    client.post("/api/v1/oil-changes", json=oil_change_payload, headers=auth_headers(employee))

    response = client.get("/api/v1/public/vehicles/ab123cd/history")

    assert response.status_code == 200
    history = response.get_json()["data"]
    assert len(history) == 1
    assert "client_name" not in history[0]


def test_entitlement_endpoint_always_answers(client, employee, trial_lubricentro, auth_headers):
    response = client.post(
        f"/api/v1/lubricentros/{trial_lubricentro['_id']}/entitlement",
        json={"action": "create_user"},
        headers=auth_headers(employee),
    )

    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["allowed"] is False
    assert data["code"] == "ROLE_NOT_PERMITTED"


def test_admin_creates_user_within_trial_limit(client, admin, trial_lubricentro, auth_headers):
    headers = auth_headers(admin)

    first = client.post("/api/v1/users", json={
        "email": "emp1@example.com", "password": "secret123", "first_name": "Ana",
    }, headers=headers)
    assert first.status_code == 201
    assert first.get_json()["data"]["lubricentro_id"] == trial_lubricentro["_id"]

    second = client.post("/api/v1/users", json={
        "email": "emp2@example.com", "password": "secret123", "first_name": "Beto",
    }, headers=headers)
    assert second.status_code == 403
    assert second.get_json()["error"] == "TRIAL_USER_LIMIT"


def test_subscription_routes_require_superadmin(client, admin, trial_lubricentro, auth_headers):
    response = client.post(
        f"/api/v1/subscriptions/{trial_lubricentro['_id']}/activate",
        json={"plan": "basic"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 403
    assert db.db.audit_logs.count_documents({"type": "permission_denied"}) == 1


def test_superadmin_activates_subscription(client, superadmin, trial_lubricentro, auth_headers):
    response = client.post(
        f"/api/v1/subscriptions/{trial_lubricentro['_id']}/activate",
        json={"plan": "premium", "renewal_type": "semiannual", "payment_method": "transfer"},
        headers=auth_headers(superadmin),
    )

    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["status"] == "active"
    assert data["subscription_plan"] == "premium"


def test_plans_are_public(client):
    response = client.get("/api/v1/subscriptions/plans")

    assert response.status_code == 200
    assert len(response.get_json()["data"]["plans"]) == 4


def test_admin_reads_own_audit_logs_only(client, admin, make_lubricentro, make_user, auth_headers):
    other = make_lubricentro(fantasy_name="Lubricentro Sur")
    other_admin = make_user("admin", other)
    client.post("/api/v1/auth/login", json={"email": admin["email"], "password": TEST_PASSWORD})
    client.post("/api/v1/auth/login", json={"email": other_admin["email"], "password": TEST_PASSWORD})

    response = client.get("/api/v1/audit/logs", headers=auth_headers(admin))

    assert response.status_code == 200
    logs = response.get_json()["data"]
    assert {log["lubricentro_id"] for log in logs} == {admin["lubricentro_id"]}


def test_admin_cannot_patch_lubricentro_status(client, admin, trial_lubricentro, auth_headers):
    response = client.patch(
        f"/api/v1/lubricentros/{trial_lubricentro['_id']}",
        json={"status": "active"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 403


def test_admin_deactivates_employee(client, admin, employee, auth_headers):
    response = client.patch(
        f"/api/v1/users/{employee['_id']}/status",
        json={"status": "inactive"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 200
    assert response.get_json()["data"]["status"] == "inactive"


def test_audit_statistics_cap_recent_errors(client, admin, trial_lubricentro, auth_headers):
    for n in range(12):
        audit_service.log_system_error(f"job_{n}", RuntimeError("boom"), lubricentro_id=trial_lubricentro["_id"])
    audit_service.log_system_error("elsewhere", RuntimeError("boom"), lubricentro_id="64b000000000000000000000")

    stats = audit_service.get_audit_statistics(lubricentro_id=trial_lubricentro["_id"])
    assert stats["total_events"] == 12
    assert stats["events_by_type"] == {"system_error": 12}
    assert len(stats["recent_errors"]) == 10

    response = client.get("/api/v1/audit/statistics", headers=auth_headers(admin))
    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["events_by_severity"] == {"error": 12}
    assert len(data["recent_errors"]) == 10


def test_employee_cannot_read_audit_statistics(client, employee, auth_headers):
    response = client.get("/api/v1/audit/statistics", headers=auth_headers(employee))

    assert response.status_code == 403


def test_superadmin_finds_service_by_number(client, superadmin, employee, trial_lubricentro,
                                            auth_headers, oil_change_payload):
    client.post("/api/v1/oil-changes", json=oil_change_payload, headers=auth_headers(employee))

    scoped = client.get(
        f"/api/v1/oil-changes/number/nor-00001?lubricentro_id={trial_lubricentro['_id']}",
        headers=auth_headers(superadmin),
    )
    assert scoped.status_code == 200
    assert scoped.get_json()["data"]["service_number"] == "NOR-00001"

    own = client.get("/api/v1/oil-changes/number/NOR-00001", headers=auth_headers(employee))
    assert own.status_code == 200

    missing = client.get("/api/v1/oil-changes/number/NOR-00002", headers=auth_headers(employee))
    assert missing.status_code == 404


def test_rate_limit_storage_is_configured_on_the_app(app):
    assert app.config["RATELIMIT_STORAGE_URI"] == "memory://"
    assert app.config["RATELIMIT_ENABLED"] is False
