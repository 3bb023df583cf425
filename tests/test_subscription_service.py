from datetime import datetime, timedelta

import pytest

from lubricentro.extensions.db import db
from lubricentro.models.lubricentro_model import Lubricentro
from lubricentro.services import subscription_service
from lubricentro.utils.errors import DomainValidationError, NotFoundError
from lubricentro.utils.helpers import utcnow


NOW = datetime(2026, 3, 10, 12, 0)


def test_activate_sets_plan_dates_and_minimum_contract(trial_lubricentro, superadmin):
    lubricentro = subscription_service.activate_subscription(
        trial_lubricentro["_id"], "basic", "monthly", actor=superadmin, now=NOW,
    )

    assert lubricentro["status"] == "active"
    assert lubricentro["subscription_plan"] == "basic"
    assert lubricentro["subscription_end_date"] == datetime(2026, 4, 10, 12, 0)
    assert lubricentro["contract_end_date"] == datetime(2026, 9, 10, 12, 0)
    assert lubricentro["payment_status"] == "paid"
    assert lubricentro["services_used_this_month"] == 0
    assert db.db.audit_logs.count_documents({"type": "subscription_activated"}) == 1


def test_activate_with_payment_records_it(trial_lubricentro, superadmin):
    lubricentro = subscription_service.activate_subscription(
        trial_lubricentro["_id"], "premium", "semiannual", actor=superadmin,
        payment_method="transfer", payment_reference="TRX-1", now=NOW,
    )

    assert lubricentro["subscription_end_date"] == datetime(2026, 9, 10, 12, 0)
    assert lubricentro["payment_history"][0]["amount"] == 22500
    assert lubricentro["payment_history"][0]["reference"] == "TRX-1"


def test_activate_rejects_unknown_plan(trial_lubricentro):
    with pytest.raises(DomainValidationError):
        subscription_service.activate_subscription(trial_lubricentro["_id"], "gold")


def test_unknown_lubricentro_is_not_found(app):
    with pytest.raises(NotFoundError):
        subscription_service.deactivate_subscription("64b000000000000000000000")


def test_deactivate(make_lubricentro, superadmin):
    lubricentro = make_lubricentro(status="active", subscription_plan="basic", auto_renewal=True)

    updated = subscription_service.deactivate_subscription(lubricentro["_id"], "non payment", actor=superadmin)

    assert updated["status"] == "inactive"
    assert updated["auto_renewal"] is False


def test_extend_trial_from_current_end(trial_lubricentro):
    current_end = trial_lubricentro["trial_end_date"]
    now = current_end - timedelta(days=2)

    updated = subscription_service.extend_trial(trial_lubricentro["_id"], 5, now=now)

    assert updated["status"] == "trial"
    assert updated["trial_end_date"] == current_end + timedelta(days=5)


def test_extend_expired_trial_starts_from_now(make_lubricentro):
    lubricentro = make_lubricentro(status="inactive", trial_end_date=NOW - timedelta(days=30))

    updated = subscription_service.extend_trial(lubricentro["_id"], 7, now=NOW)

    assert updated["status"] == "trial"
    assert updated["trial_end_date"] == NOW + timedelta(days=7)


def test_extend_trial_requires_positive_days(trial_lubricentro):
    with pytest.raises(DomainValidationError):
        subscription_service.extend_trial(trial_lubricentro["_id"], 0)


def test_downgrade_refused_when_usage_exceeds_new_plan(make_lubricentro):
    lubricentro = make_lubricentro(status="active", subscription_plan="premium", services_used=60)

    ok, message = subscription_service.validate_subscription_change(lubricentro, "basic")
    assert ok is False
    assert "50" in message

    with pytest.raises(DomainValidationError):
        subscription_service.change_plan(lubricentro["_id"], "basic")


def test_change_plan(make_lubricentro, superadmin):
    lubricentro = make_lubricentro(status="active", subscription_plan="basic", services_used=10)

    updated = subscription_service.change_plan(lubricentro["_id"], "premium", actor=superadmin)

    assert updated["subscription_plan"] == "premium"
    assert db.db.audit_logs.count_documents({"type": "subscription_changed"}) == 1


def test_change_plan_requires_active(trial_lubricentro):
    with pytest.raises(DomainValidationError):
        subscription_service.change_plan(trial_lubricentro["_id"], "premium")


def test_record_payment(make_lubricentro, superadmin):
    lubricentro = make_lubricentro(status="active", subscription_plan="basic",
                                   subscription_renewal_type="monthly", payment_status="pending")

    updated = subscription_service.record_payment(lubricentro["_id"], 2500, "cash", actor=superadmin, now=NOW)

    assert updated["payment_status"] == "paid"
    assert updated["next_payment_date"] == datetime(2026, 4, 10, 12, 0)
    assert len(updated["payment_history"]) == 1

    with pytest.raises(DomainValidationError):
        subscription_service.record_payment(lubricentro["_id"], 0, "cash")


def test_increment_counter_rolls_over_month(trial_lubricentro):
    subscription_service.increment_service_counter(trial_lubricentro["_id"], now=NOW)
    subscription_service.increment_service_counter(trial_lubricentro["_id"], now=NOW)
    subscription_service.increment_service_counter(trial_lubricentro["_id"], now=datetime(2026, 4, 1))

    lubricentro = Lubricentro.get_by_id(trial_lubricentro["_id"])
    assert lubricentro["services_used_this_month"] == 1
    assert lubricentro["services_period"] == "2026-04"
    assert lubricentro["services_used_history"] == {"2026-03": 2, "2026-04": 1}


def test_batch_actions_continue_past_failures(make_lubricentro, superadmin):
    trial = make_lubricentro()
    active = make_lubricentro(status="active", subscription_plan="basic")

    result = subscription_service.execute_batch_actions([
        {"type": "extend_trial", "lubricentro_id": trial["_id"], "data": {"days": 3}},
        {"type": "change_plan", "lubricentro_id": trial["_id"], "data": {"plan": "premium"}},
        {"type": "deactivate", "lubricentro_id": active["_id"], "data": {}},
    ], actor=superadmin)

    assert result["successful"] == [trial["_id"], active["_id"]]
    assert result["failed"][0]["lubricentro_id"] == trial["_id"]


def test_global_stats_and_attention(make_lubricentro):
    make_lubricentro()
    make_lubricentro(status="active", subscription_plan="basic", services_used=48, payment_status="paid",
                     subscription_end_date=utcnow() + timedelta(days=60))
    make_lubricentro(status="active", subscription_plan="premium", payment_status="paid",
                     subscription_end_date=utcnow() + timedelta(days=60))
    make_lubricentro(status="inactive")

    stats = subscription_service.get_global_stats()
    assert stats["total"] == 4
    assert stats["active"] == 2
    assert stats["total_monthly_revenue"] == 7000
    assert stats["conversion_rate"] == pytest.approx(66.67)
    assert stats["plan_distribution"]["basic"] == 1

    attention = subscription_service.get_lubricentros_needing_attention()
    statuses = sorted((row["status"], row["subscription_plan"]) for row in attention)
    # the trial ends within a week; basic is at 96% of its services
    assert statuses == [("active", "basic"), ("trial", None)]
