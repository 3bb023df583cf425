"""
Pytest configuration and shared fixtures.

The app runs with the testing config; the Mongo handle is swapped for an
in-memory mongomock database per test.
"""

import os
import tempfile
from datetime import datetime, timedelta, timezone

os.environ.setdefault("APP_LOG_DIR", tempfile.mkdtemp(prefix="lubricentro-logs-"))

import jwt
import mongomock
import pytest

from lubricentro import create_app
from lubricentro.extensions.db import db
from lubricentro.models.lubricentro_model import Lubricentro
from lubricentro.models.user_model import User
from lubricentro.utils.helpers import utcnow
from lubricentro.utils.periods import month_key


TEST_PASSWORD = "secret123"


@pytest.fixture
def app():
    app = create_app("testing")
    db.db = mongomock.MongoClient()[app.config["DB_NAME"]]
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_lubricentro(app):
    def _make(status="trial", services_used=0, active_users=1, **overrides):
        lubricentro = Lubricentro.create({
            "fantasy_name": overrides.pop("fantasy_name", "Lubricentro Norte"),
            "responsible": "Juan Perez",
            "domicile": "Av. Siempre Viva 742",
            "cuit": "20-12345678-9",
            "phone": "+54 11 4444 5555",
            "email": "norte@example.com",
            "ticket_prefix": overrides.pop("ticket_prefix", "NOR"),
        })
        updates = {
            "status": status,
            "services_used_this_month": services_used,
            "services_period": month_key(utcnow()),
            "active_user_count": active_users,
            **overrides,
        }
        Lubricentro.update(lubricentro["_id"], **updates)
        return Lubricentro.get_by_id(lubricentro["_id"])
    return _make


@pytest.fixture
def make_user(app):
    counter = {"n": 0}

    def _make(role="employee", lubricentro=None, status="active", email=None):
        counter["n"] += 1
        return User.create(
            email=email or f"user{counter['n']}@example.com",
            password=TEST_PASSWORD,
            first_name="Test",
            last_name=f"User{counter['n']}",
            role=role,
            status=status,
            lubricentro_id=lubricentro["_id"] if lubricentro else None,
        )
    return _make


@pytest.fixture
def trial_lubricentro(make_lubricentro):
    return make_lubricentro()


@pytest.fixture
def admin(make_user, trial_lubricentro):
    return make_user("admin", trial_lubricentro)


@pytest.fixture
def employee(make_user, trial_lubricentro):
    return make_user("employee", trial_lubricentro)


@pytest.fixture
def superadmin(make_user):
    return make_user("superadmin")


@pytest.fixture
def auth_headers(app):
    def _headers(user):
        token = jwt.encode(
            {
                "user_id": str(user["_id"]),
                "role": user.get("role"),
                "lubricentro_id": user.get("lubricentro_id"),
                "exp": datetime.now(timezone.utc) + timedelta(hours=1),
            },
            app.config["SECRET_KEY"],
            algorithm="HS256",
        )
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def oil_change_payload():
    return {
        "client_name": "Maria Gomez",
        "client_phone": "1155556666",
        "vehicle_domain": "ab 123 cd",
        "vehicle_brand": "Toyota",
        "vehicle_model": "Corolla",
        "vehicle_year": 2019,
        "current_km": 45000,
        "service_periodicity_months": 6,
        "oil_brand": "Shell",
        "oil_type": "Sintético",
        "oil_viscosity": "5W-30",
        "oil_quantity": 4.5,
        "oil_filter": True,
    }
