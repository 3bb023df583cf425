# lubricentro/models/oil_change_model.py

import re
from datetime import datetime, timedelta
from typing import Optional

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from .base_model import BaseModel
from ..extensions.db import db
from ..utils.helpers import utcnow, add_months, to_naive_utc
from ..utils.periods import month_bounds
from ..utils.validation import normalize_domain
from ..utils.logger import Log


EXTRA_SERVICES = (
    "oil_filter",
    "air_filter",
    "cabin_filter",
    "fuel_filter",
    "additive",
    "coolant",
    "differential",
    "gearbox",
    "greasing",
)

DEFAULT_KM_INTERVAL = 10000
DEFAULT_TICKET_PREFIX = "OC"
SEARCH_FIELDS = ("client_name", "vehicle_domain")


class OilChange(BaseModel):
    """
    Oil-change service record.
    """

    collection_name = "oil_changes"

    IMMUTABLE_FIELDS = ("_id", "created_at", "lubricentro_id", "service_number")

    # -------------------------
    # Numbering
    # -------------------------
    COUNTERS_COLLECTION = "service_counters"

    @classmethod
    def _highest_existing_number(cls, lubricentro_id, prefix: str) -> int:
        cursor = cls.collection().find(
            {
                "lubricentro_id": str(lubricentro_id),
                "service_number": {"$regex": f"^{re.escape(prefix)}-\\d+$"},
            },
            {"service_number": 1},
        )
        return max((int(doc["service_number"].rsplit("-", 1)[1]) for doc in cursor), default=0)

    @classmethod
    def next_service_number(cls, lubricentro_id, prefix: Optional[str]) -> str:
        """
        Reserve the next number for (lubricentro, prefix). The counter document
        is seeded once from the numbers already stored, then only incremented.
        """
        prefix = (prefix or DEFAULT_TICKET_PREFIX).strip().upper()
        counters = db.get_collection(cls.COUNTERS_COLLECTION)
        selector = {"lubricentro_id": str(lubricentro_id), "prefix": prefix}

        if counters.find_one(selector) is None:
            try:
                counters.update_one(
                    selector,
                    {"$setOnInsert": {"seq": cls._highest_existing_number(lubricentro_id, prefix)}},
                    upsert=True,
                )
            except DuplicateKeyError:
                pass

        counter = counters.find_one_and_update(
            selector,
            {"$inc": {"seq": 1}, "$set": {"updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        return f"{prefix}-{counter['seq']:05d}"

    @staticmethod
    def compute_next_service_date(service_date, periodicity_months) -> Optional[datetime]:
        service_date = to_naive_utc(service_date)
        if service_date is None:
            return None
        return add_months(service_date, int(periodicity_months or 0))

    # -------------------------
    # Create / update
    # -------------------------
    @classmethod
    def create(cls, data: dict, lubricentro: dict) -> dict:
        now = utcnow()
        service_date = to_naive_utc(data.get("service_date")) or now
        periodicity = int(data.get("service_periodicity_months") or 0)
        current_km = int(data.get("current_km") or 0)
        next_km = data.get("next_km")

        doc = {
            "lubricentro_id": str(lubricentro["_id"]),
            "lubricentro_name": lubricentro.get("fantasy_name"),
            "service_number": cls.next_service_number(lubricentro["_id"], lubricentro.get("ticket_prefix")),
            "client_name": (data.get("client_name") or "").strip(),
            "client_phone": (data.get("client_phone") or "").strip() or None,
            "vehicle_domain": normalize_domain(data.get("vehicle_domain")),
            "vehicle_brand": (data.get("vehicle_brand") or "").strip(),
            "vehicle_model": (data.get("vehicle_model") or "").strip(),
            "vehicle_type": (data.get("vehicle_type") or "").strip(),
            "vehicle_year": data.get("vehicle_year"),
            "current_km": current_km,
            "next_km": int(next_km) if next_km is not None else current_km + DEFAULT_KM_INTERVAL,
            "service_periodicity_months": periodicity,
            "service_date": service_date,
            "next_service_date": cls.compute_next_service_date(service_date, periodicity),
            "oil_brand": data.get("oil_brand"),
            "oil_type": data.get("oil_type"),
            "oil_viscosity": data.get("oil_viscosity"),
            "oil_quantity": data.get("oil_quantity"),
            "observations": data.get("observations"),
            "operator_name": data.get("operator_name"),
            "operator_id": str(data["operator_id"]) if data.get("operator_id") else None,
        }
        for extra in EXTRA_SERVICES:
            doc[extra] = bool(data.get(extra, False))
            doc[f"{extra}_note"] = data.get(f"{extra}_note")

        created = cls.insert(doc)
        Log.info(
            f"[oil_change_model.py][OilChange][create] id={created['_id']} "
            f"number={doc['service_number']} lubricentro={doc['lubricentro_id']}"
        )
        return created

    @classmethod
    def update(cls, record_id, **updates):
        """
        Recomputes next_service_date whenever the service date or
        periodicity changes.
        """
        if "vehicle_domain" in updates:
            updates["vehicle_domain"] = normalize_domain(updates["vehicle_domain"])

        if "service_date" in updates or "service_periodicity_months" in updates:
            existing = cls.get_by_id(record_id)
            if not existing:
                return False
            service_date = to_naive_utc(updates.get("service_date", existing.get("service_date")))
            periodicity = updates.get(
                "service_periodicity_months", existing.get("service_periodicity_months")
            )
            updates["service_date"] = service_date
            updates["next_service_date"] = cls.compute_next_service_date(service_date, periodicity)

        return super().update(record_id, **updates)

    # -------------------------
    # Queries
    # -------------------------
    @classmethod
    def get_by_number(cls, lubricentro_id, service_number):
        return cls._normalise(cls.collection().find_one({
            "lubricentro_id": str(lubricentro_id),
            "service_number": (service_number or "").strip().upper(),
        }))

    @classmethod
    def get_by_lubricentro(cls, lubricentro_id, page=1, per_page=20):
        return cls.paginate(
            {"lubricentro_id": str(lubricentro_id)},
            page=page,
            per_page=per_page,
            sort=[("created_at", -1)],
        )

    @classmethod
    def search(cls, lubricentro_id, term, field="client_name"):
        if field not in SEARCH_FIELDS:
            field = "client_name"
        term = (term or "").strip()
        if field == "vehicle_domain":
            term = normalize_domain(term)
        cursor = cls.collection().find({
            "lubricentro_id": str(lubricentro_id),
            field: {"$regex": re.escape(term), "$options": "i"},
        }).sort("created_at", -1)
        return [cls._normalise(doc) for doc in cursor]

    @classmethod
    def get_upcoming(cls, lubricentro_id, days=30, now: Optional[datetime] = None):
        now = now or utcnow()
        cursor = cls.collection().find({
            "lubricentro_id": str(lubricentro_id),
            "next_service_date": {"$gte": now, "$lte": now + timedelta(days=days)},
        }).sort("next_service_date", 1)
        return [cls._normalise(doc) for doc in cursor]

    @classmethod
    def get_by_vehicle(cls, domain):
        cursor = cls.collection().find(
            {"vehicle_domain": normalize_domain(domain)}
        ).sort("service_date", -1)
        return [cls._normalise(doc) for doc in cursor]

    @classmethod
    def get_stats(cls, lubricentro_id, now: Optional[datetime] = None) -> dict:
        now = now or utcnow()
        base = {"lubricentro_id": str(lubricentro_id)}
        this_start, this_end = month_bounds(now)
        last_start, last_end = month_bounds(now, offset=-1)

        col = cls.collection()
        return {
            "total": col.count_documents(base),
            "this_month": col.count_documents(
                {**base, "service_date": {"$gte": this_start, "$lt": this_end}}
            ),
            "last_month": col.count_documents(
                {**base, "service_date": {"$gte": last_start, "$lt": last_end}}
            ),
            "upcoming_30_days": col.count_documents(
                {**base, "next_service_date": {"$gte": now, "$lte": now + timedelta(days=30)}}
            ),
        }

    @classmethod
    def _date_query(cls, lubricentro_id, start=None, end=None):
        query = {"lubricentro_id": str(lubricentro_id)}
        date_range = {}
        if start:
            date_range["$gte"] = to_naive_utc(start)
        if end:
            date_range["$lte"] = to_naive_utc(end)
        if date_range:
            query["service_date"] = date_range
        return query

    @classmethod
    def get_by_operator(cls, lubricentro_id, operator_id, start=None, end=None):
        query = cls._date_query(lubricentro_id, start, end)
        query["operator_id"] = str(operator_id)
        cursor = cls.collection().find(query).sort("service_date", -1)
        return [cls._normalise(doc) for doc in cursor]

    @classmethod
    def get_operator_stats(cls, lubricentro_id, start=None, end=None):
        pipeline = [
            {"$match": cls._date_query(lubricentro_id, start, end)},
            {"$group": {
                "_id": {"operator_id": "$operator_id", "operator_name": "$operator_name"},
                "count": {"$sum": 1},
            }},
            {"$sort": {"count": -1}},
        ]
        return [
            {
                "operator_id": row["_id"].get("operator_id"),
                "operator_name": row["_id"].get("operator_name"),
                "count": row["count"],
            }
            for row in cls.collection().aggregate(pipeline)
        ]
