# lubricentro/models/lubricentro_model.py

import re
from datetime import datetime, timedelta
from typing import Optional

from .base_model import BaseModel
from ..constants.plans import TRIAL_LIMITS
from ..constants.service_code import LUBRICENTRO_STATUS, PAYMENT_STATUS
from ..utils.helpers import utcnow, to_object_id
from ..utils.periods import month_key
from ..utils.logger import Log


class Lubricentro(BaseModel):
    """
    Tenant record: contact data, lifecycle status, subscription state
    and the usage counters the entitlement check reads.
    """

    collection_name = "lubricentros"

    STATUS_TRIAL = LUBRICENTRO_STATUS["TRIAL"]
    STATUS_ACTIVE = LUBRICENTRO_STATUS["ACTIVE"]
    STATUS_INACTIVE = LUBRICENTRO_STATUS["INACTIVE"]

    IMMUTABLE_FIELDS = ("_id", "created_at", "owner_id")

    # -------------------------
    # Create / read
    # -------------------------
    @classmethod
    def create(cls, data: dict, now: Optional[datetime] = None) -> dict:
        """
        New tenants always start in trial.
        """
        now = now or utcnow()
        doc = {
            "fantasy_name": (data.get("fantasy_name") or "").strip(),
            "responsible": (data.get("responsible") or "").strip(),
            "domicile": (data.get("domicile") or "").strip(),
            "cuit": (data.get("cuit") or "").strip(),
            "phone": (data.get("phone") or "").strip(),
            "email": (data.get("email") or "").strip().lower(),
            "logo_url": data.get("logo_url"),
            "ticket_prefix": (data.get("ticket_prefix") or "").strip().upper(),
            "owner_id": data.get("owner_id"),
            "status": cls.STATUS_TRIAL,
            "trial_end_date": now + timedelta(days=TRIAL_LIMITS["days"]),
            "subscription_plan": None,
            "subscription_renewal_type": None,
            "payment_status": None,
            "auto_renewal": False,
            "services_used_this_month": 0,
            "services_period": month_key(now),
            "services_used_history": {},
            "active_user_count": 0,
            "payment_history": [],
            "created_at": now,
            "updated_at": now,
        }
        created = cls.insert(doc)
        Log.info(f"[lubricentro_model.py][Lubricentro][create] id={created['_id']} name={doc['fantasy_name']}")
        return created

    @classmethod
    def get_by_owner(cls, owner_id):
        return cls._normalise(cls.collection().find_one({"owner_id": str(owner_id)}))

    @classmethod
    def get_all(cls, status: Optional[str] = None):
        query = {"status": status} if status else {}
        cursor = cls.collection().find(query).sort("created_at", -1)
        return [cls._normalise(doc) for doc in cursor]

    @classmethod
    def search(cls, term: str):
        """Case-insensitive prefix match on the fantasy name."""
        term = (term or "").strip()
        if not term:
            return cls.get_all()
        cursor = cls.collection().find(
            {"fantasy_name": {"$regex": f"^{re.escape(term)}", "$options": "i"}}
        ).sort("fantasy_name", 1)
        return [cls._normalise(doc) for doc in cursor]

    # -------------------------
    # Status
    # -------------------------
    @classmethod
    def update_status(cls, lubricentro_id, status: str, now: Optional[datetime] = None) -> bool:
        updates = {"status": status}
        if status == cls.STATUS_TRIAL:
            updates["trial_end_date"] = (now or utcnow()) + timedelta(days=TRIAL_LIMITS["days"])
        return cls.update(lubricentro_id, **updates)

    # -------------------------
    # Usage counters
    # -------------------------
    @staticmethod
    def effective_services_used(lubricentro: dict, now: Optional[datetime] = None) -> int:
        """
        Services recorded in the current calendar month. A counter left over
        from a previous month reads as zero.
        """
        if not lubricentro:
            return 0
        if lubricentro.get("services_period") != month_key(now):
            return 0
        return int(lubricentro.get("services_used_this_month") or 0)

    @classmethod
    def increment_service_counter(cls, lubricentro_id, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        oid = to_object_id(lubricentro_id)
        if oid is None:
            return False

        current = cls.collection().find_one({"_id": oid}, {"services_period": 1})
        if not current:
            return False

        key = month_key(now)
        update = {
            "$inc": {f"services_used_history.{key}": 1},
            "$set": {"updated_at": now},
        }
        if current.get("services_period") == key:
            update["$inc"]["services_used_this_month"] = 1
        else:
            update["$set"]["services_used_this_month"] = 1
            update["$set"]["services_period"] = key

        result = cls.collection().update_one({"_id": oid}, update)
        return result.matched_count > 0

    @classmethod
    def reset_services_counter(cls, lubricentro_id, now: Optional[datetime] = None) -> bool:
        return cls.update(
            lubricentro_id,
            services_used_this_month=0,
            services_period=month_key(now),
        )

    @classmethod
    def reset_all_services_counters(cls, now: Optional[datetime] = None) -> int:
        now = now or utcnow()
        result = cls.collection().update_many(
            {"services_period": {"$ne": month_key(now)}},
            {"$set": {
                "services_used_this_month": 0,
                "services_period": month_key(now),
                "updated_at": now,
            }},
        )
        return result.modified_count

    @classmethod
    def set_active_user_count(cls, lubricentro_id, count: int) -> bool:
        return cls.update(lubricentro_id, active_user_count=int(count))

    # -------------------------
    # Payments
    # -------------------------
    @classmethod
    def push_payment(cls, lubricentro_id, payment: dict, **updates) -> bool:
        oid = to_object_id(lubricentro_id)
        if oid is None:
            return False
        updates["updated_at"] = utcnow()
        result = cls.collection().update_one(
            {"_id": oid},
            {"$push": {"payment_history": payment}, "$set": updates},
        )
        return result.matched_count > 0

    # -------------------------
    # Job queries
    # -------------------------
    @classmethod
    def get_expired_trials(cls, now: Optional[datetime] = None):
        now = now or utcnow()
        cursor = cls.collection().find({
            "status": cls.STATUS_TRIAL,
            "trial_end_date": {"$lt": now},
        })
        return [cls._normalise(doc) for doc in cursor]

    @classmethod
    def get_expired_subscriptions(cls, now: Optional[datetime] = None):
        now = now or utcnow()
        cursor = cls.collection().find({
            "status": cls.STATUS_ACTIVE,
            "subscription_end_date": {"$lt": now},
        })
        return [cls._normalise(doc) for doc in cursor]

    @classmethod
    def get_billing_cycles_due(cls, now: Optional[datetime] = None):
        now = now or utcnow()
        cursor = cls.collection().find({
            "status": cls.STATUS_ACTIVE,
            "billing_cycle_end_date": {"$lt": now},
        })
        return [cls._normalise(doc) for doc in cursor]

    @classmethod
    def get_payments_due_within(cls, days: int, now: Optional[datetime] = None):
        now = now or utcnow()
        cursor = cls.collection().find({
            "status": cls.STATUS_ACTIVE,
            "payment_status": {"$ne": PAYMENT_STATUS["OVERDUE"]},
            "next_payment_date": {"$gte": now, "$lte": now + timedelta(days=days)},
        })
        return [cls._normalise(doc) for doc in cursor]
