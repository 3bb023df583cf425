# lubricentro/jobs/subscription_jobs.py

from datetime import datetime
from typing import Callable, Dict, Iterable, Optional

import click
from flask import current_app

from ..constants.plans import renewal_months
from ..constants.service_code import LUBRICENTRO_STATUS, PAYMENT_STATUS, AUDIT_EVENT_TYPES
from ..models.lubricentro_model import Lubricentro
from ..models.notification_model import Notification
from ..services import audit_service
from ..utils.helpers import utcnow, add_months, days_until, to_naive_utc
from ..utils.logger import Log


def _run(log_tag: str, items: Iterable[dict], handler: Callable[[dict], bool]) -> Dict:
    """
    Apply handler to each lubricentro. A failing item is counted and
    logged; the job carries on with the rest.
    """
    processed = 0
    errors = 0

    try:
        items = list(items)
        Log.info(f"{log_tag} Starting job | candidates={len(items)}")

        for lubricentro in items:
            try:
                if handler(lubricentro):
                    processed += 1
            except Exception as item_err:
                errors += 1
                Log.error(
                    f"{log_tag} Failed for lubricentro={lubricentro.get('_id')}: {item_err}",
                    exc_info=True,
                )

        Log.info(f"{log_tag} Completed | processed={processed} | errors={errors}")
        return {"success": True, "processed": processed, "errors": errors}

    except Exception as e:
        Log.critical(f"{log_tag} Job failed catastrophically: {e}", exc_info=True)
        return {"success": False, "processed": processed, "errors": errors + 1, "error": str(e)}


# =========================================================
# EXPIRE TRIALS
# =========================================================

def expire_trials(now: Optional[datetime] = None) -> Dict:
    """Trials past their end date become inactive."""
    now = now or utcnow()

    def handle(lubricentro):
        Lubricentro.update(lubricentro["_id"], status=LUBRICENTRO_STATUS["INACTIVE"])
        audit_service.log_subscription_action(
            AUDIT_EVENT_TYPES["SUBSCRIPTION_DEACTIVATED"],
            "Trial period expired",
            lubricentro,
            metadata={"trial_end_date": lubricentro.get("trial_end_date"), "job": "expire_trials"},
        )
        return True

    return _run("[subscription_jobs][expire_trials]", Lubricentro.get_expired_trials(now), handle)


# =========================================================
# EXPIRED SUBSCRIPTIONS
# =========================================================

def check_expired_subscriptions(now: Optional[datetime] = None) -> Dict:
    """
    Active subscriptions past their end date: auto-renewing ones wait for
    payment, the rest are deactivated.
    """
    now = now or utcnow()

    def handle(lubricentro):
        if lubricentro.get("auto_renewal"):
            if lubricentro.get("payment_status") == PAYMENT_STATUS["PENDING"]:
                return False
            Lubricentro.update(lubricentro["_id"], payment_status=PAYMENT_STATUS["PENDING"])
            return True

        Lubricentro.update(
            lubricentro["_id"],
            status=LUBRICENTRO_STATUS["INACTIVE"],
            payment_status=PAYMENT_STATUS["OVERDUE"],
        )
        audit_service.log_subscription_action(
            AUDIT_EVENT_TYPES["SUBSCRIPTION_DEACTIVATED"],
            "Subscription ended without auto renewal",
            lubricentro,
            metadata={"subscription_end_date": lubricentro.get("subscription_end_date"),
                      "job": "check_expired_subscriptions"},
        )
        return True

    return _run(
        "[subscription_jobs][check_expired_subscriptions]",
        Lubricentro.get_expired_subscriptions(now),
        handle,
    )


# =========================================================
# BILLING CYCLES
# =========================================================

def roll_billing_cycles(now: Optional[datetime] = None) -> Dict:
    """Advance billing cycles that have ended and mark the next payment as due."""
    now = now or utcnow()

    def handle(lubricentro):
        months = renewal_months(lubricentro.get("subscription_renewal_type"))
        cycle_end = to_naive_utc(lubricentro.get("billing_cycle_end_date"))
        while cycle_end < now:
            cycle_end = add_months(cycle_end, months)

        updates = {
            "billing_cycle_end_date": cycle_end,
            "next_payment_date": cycle_end,
            "payment_status": PAYMENT_STATUS["PENDING"],
        }
        # auto-renewing subscriptions run on with the cycle, awaiting payment
        if lubricentro.get("auto_renewal"):
            updates["subscription_end_date"] = cycle_end

        Lubricentro.update(lubricentro["_id"], **updates)
        return True

    return _run("[subscription_jobs][roll_billing_cycles]", Lubricentro.get_billing_cycles_due(now), handle)


# =========================================================
# MONTHLY COUNTERS
# =========================================================

def reset_monthly_service_counters(now: Optional[datetime] = None) -> Dict:
    log_tag = "[subscription_jobs][reset_monthly_service_counters]"
    try:
        modified = Lubricentro.reset_all_services_counters(now)
        Log.info(f"{log_tag} Completed | processed={modified}")
        return {"success": True, "processed": modified, "errors": 0}
    except Exception as e:
        Log.critical(f"{log_tag} Job failed: {e}", exc_info=True)
        return {"success": False, "processed": 0, "errors": 1, "error": str(e)}


# =========================================================
# PAYMENT REMINDERS
# =========================================================

def send_payment_reminders(days: int = 7, now: Optional[datetime] = None) -> Dict:
    """One reminder per lubricentro per upcoming payment date."""
    now = now or utcnow()

    def handle(lubricentro):
        due = to_naive_utc(lubricentro.get("next_payment_date"))
        reference = due.strftime("%Y-%m-%d")
        if Notification.exists(lubricentro["_id"], Notification.TYPE_PAYMENT_REMINDER, reference):
            return False

        days_left = days_until(due, now)
        Notification.create(
            lubricentro["_id"],
            Notification.TYPE_PAYMENT_REMINDER,
            "Upcoming payment",
            f"Your subscription payment is due in {days_left} day(s), on {reference}.",
            data={
                "reference": reference,
                "due_date": due,
                "days_left": days_left,
                "plan": lubricentro.get("subscription_plan"),
            },
        )
        return True

    return _run(
        "[subscription_jobs][send_payment_reminders]",
        Lubricentro.get_payments_due_within(days, now),
        handle,
    )


def run_all(now: Optional[datetime] = None, reminder_days: int = 7) -> Dict[str, Dict]:
    now = now or utcnow()
    return {
        "expire_trials": expire_trials(now),
        "check_expired_subscriptions": check_expired_subscriptions(now),
        "roll_billing_cycles": roll_billing_cycles(now),
        "reset_monthly_service_counters": reset_monthly_service_counters(now),
        "send_payment_reminders": send_payment_reminders(reminder_days, now),
    }


def register_subscription_commands(app):
    """
    Register Flask CLI commands for cron execution.
    """

    def _echo(name, result):
        click.echo(
            f"[{name}] success={result['success']} "
            f"processed={result['processed']} errors={result['errors']}"
        )

    @app.cli.command("expire-trials")
    def expire_trials_command():
        """Deactivate lubricentros whose trial has ended."""
        _echo("expire-trials", expire_trials())

    @app.cli.command("check-subscriptions")
    def check_subscriptions_command():
        """Handle subscriptions past their end date."""
        _echo("check-subscriptions", check_expired_subscriptions())

    @app.cli.command("roll-billing-cycles")
    def roll_billing_cycles_command():
        """Advance ended billing cycles."""
        _echo("roll-billing-cycles", roll_billing_cycles())

    @app.cli.command("reset-service-counters")
    def reset_service_counters_command():
        """Zero monthly service counters left over from a previous month."""
        _echo("reset-service-counters", reset_monthly_service_counters())

    @app.cli.command("payment-reminders")
    def payment_reminders_command():
        """Notify lubricentros with a payment due soon."""
        _echo("payment-reminders", send_payment_reminders(current_app.config["PAYMENT_REMINDER_DAYS"]))

    @app.cli.command("run-subscription-jobs")
    def run_subscription_jobs_command():
        """Run every subscription job in order."""
        for name, result in run_all(reminder_days=current_app.config["PAYMENT_REMINDER_DAYS"]).items():
            _echo(name, result)
