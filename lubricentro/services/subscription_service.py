# lubricentro/services/subscription_service.py

from datetime import datetime, timedelta
from typing import Dict, List, Optional

from ..constants.plans import (
    SUBSCRIPTION_PLANS,
    RENEWAL_TYPES,
    MIN_CONTRACT_MONTHS,
    USAGE_ATTENTION_RATIO,
    EXPIRING_SOON_DAYS,
    get_plan,
    plan_price,
    renewal_months,
)
from ..constants.service_code import (
    AUDIT_EVENT_TYPES,
    LUBRICENTRO_STATUS,
    PAYMENT_STATUS,
)
from ..models.lubricentro_model import Lubricentro
from ..models.user_model import User
from ..utils.errors import DomainValidationError, NotFoundError
from ..utils.helpers import utcnow, add_months, days_until, to_naive_utc
from ..utils.periods import month_key
from ..utils.logger import Log
from . import audit_service


BATCH_ACTIONS = ("activate", "deactivate", "extend_trial", "change_plan", "reset_services")


def _get_or_raise(lubricentro_id) -> dict:
    lubricentro = Lubricentro.get_by_id(lubricentro_id)
    if not lubricentro:
        raise NotFoundError("Lubricentro not found")
    return lubricentro


def _require_plan(plan_id):
    plan = get_plan(plan_id)
    if not plan:
        raise DomainValidationError(f"Unknown plan: {plan_id}", {"plan": ["Unknown plan."]})
    return plan


def _require_renewal_type(renewal_type):
    if renewal_type not in RENEWAL_TYPES:
        raise DomainValidationError(
            f"Unknown renewal type: {renewal_type}",
            {"renewal_type": [f"Must be one of: {', '.join(RENEWAL_TYPES)}."]},
        )
    return renewal_type


# =========================================================
# LIFECYCLE
# =========================================================

def activate_subscription(lubricentro_id, plan_id, renewal_type="monthly", actor=None,
                          payment_method=None, payment_reference=None,
                          now: Optional[datetime] = None) -> dict:
    """
    Put a lubricentro on a paid plan starting now.

    The contract always runs at least MIN_CONTRACT_MONTHS. When a payment
    method is given, a payment for the full renewal period is recorded.
    """
    now = now or utcnow()
    lubricentro = _get_or_raise(lubricentro_id)
    plan = _require_plan(plan_id)
    renewal_type = _require_renewal_type(renewal_type or "monthly")
    months = renewal_months(renewal_type)

    period_end = add_months(now, months)
    contract_end = to_naive_utc(lubricentro.get("contract_end_date"))
    min_contract_end = add_months(now, MIN_CONTRACT_MONTHS)
    if contract_end is None or contract_end < min_contract_end:
        contract_end = min_contract_end

    updates = {
        "status": LUBRICENTRO_STATUS["ACTIVE"],
        "subscription_plan": plan["id"],
        "subscription_renewal_type": renewal_type,
        "subscription_start_date": now,
        "subscription_end_date": period_end,
        "billing_cycle_end_date": period_end,
        "next_payment_date": period_end,
        "contract_end_date": contract_end,
        "payment_status": PAYMENT_STATUS["PAID"],
        "auto_renewal": True,
        "services_used_this_month": 0,
        "services_period": month_key(now),
    }

    amount = plan_price(plan["id"], renewal_type)
    if payment_method:
        updates["last_payment_date"] = now
        Lubricentro.push_payment(lubricentro_id, {
            "amount": amount,
            "date": now,
            "method": payment_method,
            "reference": payment_reference,
            "plan": plan["id"],
            "renewal_type": renewal_type,
        }, **updates)
    else:
        Lubricentro.update(lubricentro_id, **updates)

    Log.info(
        f"[subscription_service.py][activate_subscription] lubricentro={lubricentro_id} "
        f"plan={plan['id']} renewal={renewal_type}"
    )
    audit_service.log_subscription_action(
        AUDIT_EVENT_TYPES["SUBSCRIPTION_ACTIVATED"],
        f"Subscription activated: {plan['name']} ({renewal_type})",
        lubricentro,
        user=actor,
        metadata={"plan": plan["id"], "renewal_type": renewal_type, "amount": amount,
                  "payment_method": payment_method},
    )
    return Lubricentro.get_by_id(lubricentro_id)


def deactivate_subscription(lubricentro_id, reason=None, actor=None) -> dict:
    lubricentro = _get_or_raise(lubricentro_id)
    Lubricentro.update(
        lubricentro_id,
        status=LUBRICENTRO_STATUS["INACTIVE"],
        auto_renewal=False,
        payment_status=PAYMENT_STATUS["OVERDUE"],
    )
    Log.info(f"[subscription_service.py][deactivate_subscription] lubricentro={lubricentro_id} reason={reason}")
    audit_service.log_subscription_action(
        AUDIT_EVENT_TYPES["SUBSCRIPTION_DEACTIVATED"],
        f"Subscription deactivated: {reason or 'no reason given'}",
        lubricentro,
        user=actor,
        metadata={"reason": reason, "previous_status": lubricentro.get("status")},
    )
    return Lubricentro.get_by_id(lubricentro_id)


def extend_trial(lubricentro_id, days, actor=None, now: Optional[datetime] = None) -> dict:
    """
    Extend from the later of the current trial end and now, so an already
    expired trial gets the full extension.
    """
    now = now or utcnow()
    days = int(days)
    if days <= 0:
        raise DomainValidationError("Extension days must be positive", {"days": ["Must be greater than 0."]})

    lubricentro = _get_or_raise(lubricentro_id)
    current_end = to_naive_utc(lubricentro.get("trial_end_date"))
    base = current_end if current_end and current_end > now else now
    new_end = base + timedelta(days=days)

    Lubricentro.update(
        lubricentro_id,
        status=LUBRICENTRO_STATUS["TRIAL"],
        trial_end_date=new_end,
        services_used_this_month=0,
        services_period=month_key(now),
    )
    audit_service.log_subscription_action(
        AUDIT_EVENT_TYPES["TRIAL_EXTENDED"],
        f"Trial extended by {days} day(s)",
        lubricentro,
        user=actor,
        metadata={"days": days, "previous_end": current_end, "new_end": new_end},
    )
    return Lubricentro.get_by_id(lubricentro_id)


def validate_subscription_change(lubricentro: dict, new_plan_id, now: Optional[datetime] = None):
    """
    Returns (ok, message). A downgrade is refused while current usage
    exceeds what the new plan allows.
    """
    new_plan = get_plan(new_plan_id)
    if not new_plan:
        return False, f"Unknown plan: {new_plan_id}"

    if lubricentro.get("subscription_plan") == new_plan_id:
        return False, "The lubricentro is already on this plan"

    services_used = Lubricentro.effective_services_used(lubricentro, now)
    max_services = new_plan["max_monthly_services"]
    if max_services is not None and services_used > max_services:
        return False, (
            f"Cannot change to {new_plan['name']}: {services_used} services used this month "
            f"exceed its limit of {max_services}"
        )

    active_users = int(lubricentro.get("active_user_count") or 0)
    if active_users > new_plan["max_users"]:
        return False, (
            f"Cannot change to {new_plan['name']}: {active_users} active users "
            f"exceed its limit of {new_plan['max_users']}"
        )

    return True, None


def change_plan(lubricentro_id, new_plan_id, renewal_type=None, actor=None,
                now: Optional[datetime] = None) -> dict:
    lubricentro = _get_or_raise(lubricentro_id)
    if lubricentro.get("status") != LUBRICENTRO_STATUS["ACTIVE"]:
        raise DomainValidationError("Only active lubricentros can change plan")

    ok, message = validate_subscription_change(lubricentro, new_plan_id, now)
    if not ok:
        raise DomainValidationError(message, {"plan": [message]})

    updates = {"subscription_plan": new_plan_id}
    if renewal_type:
        updates["subscription_renewal_type"] = _require_renewal_type(renewal_type)
    Lubricentro.update(lubricentro_id, **updates)

    audit_service.log_subscription_action(
        AUDIT_EVENT_TYPES["SUBSCRIPTION_CHANGED"],
        f"Plan changed from {lubricentro.get('subscription_plan')} to {new_plan_id}",
        lubricentro,
        user=actor,
        metadata={"previous_plan": lubricentro.get("subscription_plan"), "new_plan": new_plan_id,
                  "renewal_type": renewal_type},
    )
    return Lubricentro.get_by_id(lubricentro_id)


def reset_services_counter(lubricentro_id, actor=None, now: Optional[datetime] = None) -> dict:
    lubricentro = _get_or_raise(lubricentro_id)
    Lubricentro.reset_services_counter(lubricentro_id, now)
    audit_service.log_event(
        AUDIT_EVENT_TYPES["ADMIN_ACTION"],
        "reset_services",
        "Monthly services counter reset",
        user=actor,
        lubricentro_id=lubricentro["_id"],
        lubricentro_name=lubricentro.get("fantasy_name"),
        metadata={"previous_count": lubricentro.get("services_used_this_month")},
    )
    return Lubricentro.get_by_id(lubricentro_id)


# =========================================================
# PAYMENTS / COUNTERS
# =========================================================

def record_payment(lubricentro_id, amount, method, reference=None, actor=None,
                   now: Optional[datetime] = None) -> dict:
    now = now or utcnow()
    lubricentro = _get_or_raise(lubricentro_id)
    if float(amount) <= 0:
        raise DomainValidationError("Payment amount must be positive", {"amount": ["Must be greater than 0."]})

    # a payment opens a new paid period starting now
    months = renewal_months(lubricentro.get("subscription_renewal_type"))
    next_payment = add_months(now, months)

    payment = {
        "amount": float(amount),
        "date": now,
        "method": method,
        "reference": reference,
        "plan": lubricentro.get("subscription_plan"),
    }
    Lubricentro.push_payment(
        lubricentro_id,
        payment,
        status=LUBRICENTRO_STATUS["ACTIVE"],
        payment_status=PAYMENT_STATUS["PAID"],
        last_payment_date=now,
        next_payment_date=next_payment,
        subscription_end_date=next_payment,
        billing_cycle_end_date=next_payment,
    )

    audit_service.log_event(
        AUDIT_EVENT_TYPES["ADMIN_ACTION"],
        "record_payment",
        f"Payment of {float(amount):.2f} recorded via {method}",
        user=actor,
        lubricentro_id=lubricentro["_id"],
        lubricentro_name=lubricentro.get("fantasy_name"),
        metadata={"amount": float(amount), "method": method, "reference": reference},
    )
    return Lubricentro.get_by_id(lubricentro_id)


def update_active_user_count(lubricentro_id) -> int:
    count = User.count_active(lubricentro_id)
    Lubricentro.set_active_user_count(lubricentro_id, count)
    return count


def increment_service_counter(lubricentro_id, now: Optional[datetime] = None) -> bool:
    return Lubricentro.increment_service_counter(lubricentro_id, now)


# =========================================================
# BATCH
# =========================================================

def _run_batch_action(action: dict, actor):
    action_type = action.get("type")
    lubricentro_id = action.get("lubricentro_id")
    data = action.get("data") or {}

    if action_type == "activate":
        return activate_subscription(lubricentro_id, data.get("plan"),
                                     data.get("renewal_type", "monthly"), actor=actor)
    if action_type == "deactivate":
        return deactivate_subscription(lubricentro_id, data.get("reason"), actor=actor)
    if action_type == "extend_trial":
        return extend_trial(lubricentro_id, data.get("days", 7), actor=actor)
    if action_type == "change_plan":
        return change_plan(lubricentro_id, data.get("plan"), data.get("renewal_type"), actor=actor)
    if action_type == "reset_services":
        return reset_services_counter(lubricentro_id, actor=actor)
    raise DomainValidationError(f"Unknown batch action: {action_type}")


def execute_batch_actions(actions: List[dict], actor=None) -> Dict[str, list]:
    """
    Apply each action independently; one failure does not stop the rest.
    """
    successful, failed = [], []
    for action in actions or []:
        lubricentro_id = action.get("lubricentro_id")
        try:
            _run_batch_action(action, actor)
            successful.append(lubricentro_id)
        except (DomainValidationError, NotFoundError) as e:
            failed.append({"lubricentro_id": lubricentro_id, "error": e.message})
        except Exception as e:
            Log.error(f"[subscription_service.py][execute_batch_actions] {action}: {e}", exc_info=True)
            audit_service.log_system_error("batch_action", e, user=actor, lubricentro_id=lubricentro_id)
            failed.append({"lubricentro_id": lubricentro_id, "error": str(e)})

    Log.info(
        f"[subscription_service.py][execute_batch_actions] successful={len(successful)} failed={len(failed)}"
    )
    return {"successful": successful, "failed": failed}


# =========================================================
# SUPERADMIN REPORTING
# =========================================================

def _monthly_revenue(lubricentro: dict) -> float:
    if lubricentro.get("status") != LUBRICENTRO_STATUS["ACTIVE"]:
        return 0
    plan = get_plan(lubricentro.get("subscription_plan"))
    return plan["price"]["monthly"] if plan else 0


def _days_remaining(lubricentro: dict, now) -> int:
    status = lubricentro.get("status")
    if status == LUBRICENTRO_STATUS["TRIAL"]:
        return days_until(lubricentro.get("trial_end_date"), now)
    if status == LUBRICENTRO_STATUS["ACTIVE"]:
        return days_until(lubricentro.get("subscription_end_date"), now)
    return 0


def _overview_row(lubricentro: dict, now) -> dict:
    status = lubricentro.get("status")
    days_remaining = _days_remaining(lubricentro, now)
    is_expiring = status != LUBRICENTRO_STATUS["INACTIVE"] and days_remaining <= EXPIRING_SOON_DAYS

    plan = get_plan(lubricentro.get("subscription_plan"))
    services_used = Lubricentro.effective_services_used(lubricentro, now)
    high_usage = bool(
        plan and plan["max_monthly_services"]
        and services_used >= plan["max_monthly_services"] * USAGE_ATTENTION_RATIO
    )
    payment_issue = (
        status == LUBRICENTRO_STATUS["ACTIVE"]
        and lubricentro.get("payment_status") in (PAYMENT_STATUS["OVERDUE"], PAYMENT_STATUS["PENDING"])
    )

    return {
        "_id": lubricentro["_id"],
        "fantasy_name": lubricentro.get("fantasy_name"),
        "status": status,
        "subscription_plan": lubricentro.get("subscription_plan"),
        "payment_status": lubricentro.get("payment_status"),
        "services_used_this_month": services_used,
        "active_user_count": lubricentro.get("active_user_count", 0),
        "days_remaining": days_remaining,
        "monthly_revenue": _monthly_revenue(lubricentro),
        "is_expiring": is_expiring,
        "needs_attention": is_expiring or payment_issue or high_usage,
    }


def get_subscriptions_overview(now: Optional[datetime] = None) -> List[dict]:
    now = now or utcnow()
    return [_overview_row(l, now) for l in Lubricentro.get_all()]


def get_lubricentros_needing_attention(now: Optional[datetime] = None) -> List[dict]:
    return [row for row in get_subscriptions_overview(now) if row["needs_attention"]]


def get_global_stats(now: Optional[datetime] = None) -> dict:
    now = now or utcnow()
    lubricentros = Lubricentro.get_all()

    counts = {status: 0 for status in LUBRICENTRO_STATUS.values()}
    plan_distribution = {plan_id: 0 for plan_id in SUBSCRIPTION_PLANS}
    revenue_by_plan = {plan_id: 0 for plan_id in SUBSCRIPTION_PLANS}
    total_revenue = 0

    for lubricentro in lubricentros:
        status = lubricentro.get("status")
        counts[status] = counts.get(status, 0) + 1
        if status != LUBRICENTRO_STATUS["ACTIVE"]:
            continue
        plan_id = lubricentro.get("subscription_plan")
        if plan_id in plan_distribution:
            revenue = _monthly_revenue(lubricentro)
            plan_distribution[plan_id] += 1
            revenue_by_plan[plan_id] += revenue
            total_revenue += revenue

    active = counts[LUBRICENTRO_STATUS["ACTIVE"]]
    inactive = counts[LUBRICENTRO_STATUS["INACTIVE"]]
    converted_pool = active + inactive

    return {
        "total": len(lubricentros),
        "active": active,
        "trial": counts[LUBRICENTRO_STATUS["TRIAL"]],
        "inactive": inactive,
        "total_monthly_revenue": total_revenue,
        "average_revenue_per_tenant": round(total_revenue / active, 2) if active else 0,
        "conversion_rate": round(active / converted_pool * 100, 2) if converted_pool else 0,
        "plan_distribution": plan_distribution,
        "revenue_by_plan": revenue_by_plan,
    }
