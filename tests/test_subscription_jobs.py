from datetime import datetime, timedelta

from lubricentro.jobs import subscription_jobs
from lubricentro.models.lubricentro_model import Lubricentro
from lubricentro.models.notification_model import Notification
from lubricentro.services import subscription_service


NOW = datetime(2026, 5, 20, 8, 0)


def test_expire_trials_only_touches_ended_trials(make_lubricentro):
    ended = make_lubricentro(trial_end_date=NOW - timedelta(days=1))
    running = make_lubricentro(trial_end_date=NOW + timedelta(days=3))

    result = subscription_jobs.expire_trials(now=NOW)

    assert result == {"success": True, "processed": 1, "errors": 0}
    assert Lubricentro.get_by_id(ended["_id"])["status"] == "inactive"
    assert Lubricentro.get_by_id(running["_id"])["status"] == "trial"


def test_expired_subscriptions_depend_on_auto_renewal(make_lubricentro):
    renewing = make_lubricentro(status="active", subscription_plan="basic", auto_renewal=True,
                                payment_status="paid", subscription_end_date=NOW - timedelta(days=1))
    lapsing = make_lubricentro(status="active", subscription_plan="basic", auto_renewal=False,
                               payment_status="paid", subscription_end_date=NOW - timedelta(days=1))

    result = subscription_jobs.check_expired_subscriptions(now=NOW)

    assert result["processed"] == 2
    renewing = Lubricentro.get_by_id(renewing["_id"])
    assert renewing["status"] == "active"
    assert renewing["payment_status"] == "pending"

    lapsing = Lubricentro.get_by_id(lapsing["_id"])
    assert lapsing["status"] == "inactive"
    assert lapsing["payment_status"] == "overdue"


def test_roll_billing_cycles_advances_past_now(make_lubricentro):
    lubricentro = make_lubricentro(status="active", subscription_plan="basic",
                                   subscription_renewal_type="monthly",
                                   billing_cycle_end_date=datetime(2026, 3, 15, 8, 0))

    result = subscription_jobs.roll_billing_cycles(now=NOW)

    assert result["processed"] == 1
    updated = Lubricentro.get_by_id(lubricentro["_id"])
    assert updated["billing_cycle_end_date"] == datetime(2026, 6, 15, 8, 0)
    assert updated["next_payment_date"] == datetime(2026, 6, 15, 8, 0)
    assert updated["payment_status"] == "pending"


def test_reset_monthly_counters(make_lubricentro):
    stale = make_lubricentro(services_used=8, services_period="2026-04")
    current = make_lubricentro(services_used=3, services_period="2026-05")

    result = subscription_jobs.reset_monthly_service_counters(now=NOW)

    assert result["processed"] == 1
    assert Lubricentro.get_by_id(stale["_id"])["services_used_this_month"] == 0
    assert Lubricentro.get_by_id(current["_id"])["services_used_this_month"] == 3


def test_payment_reminders_are_sent_once(make_lubricentro):
    lubricentro = make_lubricentro(status="active", subscription_plan="premium", payment_status="paid",
                                   next_payment_date=NOW + timedelta(days=3))
    make_lubricentro(status="active", subscription_plan="basic", payment_status="paid",
                     next_payment_date=NOW + timedelta(days=20))

    first = subscription_jobs.send_payment_reminders(days=7, now=NOW)
    second = subscription_jobs.send_payment_reminders(days=7, now=NOW)

    assert first["processed"] == 1
    assert second["processed"] == 0
    notifications = Notification.get_for_lubricentro(lubricentro["_id"])
    assert len(notifications) == 1
    assert notifications[0]["data"]["reference"] == "2026-05-23"
    assert notifications[0]["data"]["days_left"] == 3


def test_failing_item_is_counted_and_job_continues(monkeypatch, make_lubricentro):
    make_lubricentro(trial_end_date=NOW - timedelta(days=2))
    make_lubricentro(trial_end_date=NOW - timedelta(days=1))

    calls = {"n": 0}
    original_update = Lubricentro.update.__func__

    def flaky_update(cls, record_id, **updates):
        calls["n"] += 1
        if calls["n"] == 1:
            raise RuntimeError("write failed")
        return original_update(cls, record_id, **updates)

    monkeypatch.setattr(Lubricentro, "update", classmethod(flaky_update))

    result = subscription_jobs.expire_trials(now=NOW)

    assert result == {"success": True, "processed": 1, "errors": 1}


def test_cli_commands_are_registered(app):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["expire-trials"])

    assert result.exit_code == 0
    assert "[expire-trials] success=True" in result.output


def test_paid_subscription_survives_expiry_check(trial_lubricentro, superadmin):
    started = datetime(2026, 3, 1, 9, 0)
    subscription_service.activate_subscription(trial_lubricentro["_id"], "basic", "monthly",
                                               actor=superadmin, now=started)
    paid_at = started + timedelta(days=40)
    subscription_service.record_payment(trial_lubricentro["_id"], 2500, "transfer", actor=superadmin, now=paid_at)

    result = subscription_jobs.check_expired_subscriptions(now=paid_at + timedelta(hours=1))

    assert result["processed"] == 0
    lubricentro = Lubricentro.get_by_id(trial_lubricentro["_id"])
    assert lubricentro["payment_status"] == "paid"
    assert lubricentro["subscription_end_date"] == datetime(2026, 5, 10, 9, 0)


def test_rolled_cycle_extends_auto_renewing_subscription(make_lubricentro):
    renewing = make_lubricentro(status="active", subscription_plan="basic", auto_renewal=True,
                                subscription_renewal_type="monthly",
                                subscription_end_date=datetime(2026, 5, 15, 8, 0),
                                billing_cycle_end_date=datetime(2026, 5, 15, 8, 0))
    lapsing = make_lubricentro(status="active", subscription_plan="basic", auto_renewal=False,
                               subscription_renewal_type="monthly",
                               subscription_end_date=datetime(2026, 5, 15, 8, 0),
                               billing_cycle_end_date=datetime(2026, 5, 15, 8, 0))

    subscription_jobs.roll_billing_cycles(now=NOW)

    assert Lubricentro.get_by_id(renewing["_id"])["subscription_end_date"] == datetime(2026, 6, 15, 8, 0)
    assert Lubricentro.get_by_id(lapsing["_id"])["subscription_end_date"] == datetime(2026, 5, 15, 8, 0)
