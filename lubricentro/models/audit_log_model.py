# lubricentro/models/audit_log_model.py

from datetime import timedelta

from .base_model import BaseModel
from ..constants.service_code import AUDIT_SEVERITIES
from ..utils.helpers import utcnow, to_naive_utc


class AuditLog(BaseModel):
    """Append-only audit events."""

    collection_name = "audit_logs"

    DEFAULT_LIMIT = 100
    RECENT_ERRORS_LIMIT = 10

    @classmethod
    def query(cls, lubricentro_id=None, user_id=None, type=None, severity=None,
              start_date=None, end_date=None, limit=None):
        query = {}
        if lubricentro_id:
            query["lubricentro_id"] = str(lubricentro_id)
        if user_id:
            query["user_id"] = str(user_id)
        if type:
            query["type"] = type
        if severity:
            query["severity"] = severity

        timestamp = {}
        if start_date:
            timestamp["$gte"] = to_naive_utc(start_date)
        if end_date:
            timestamp["$lte"] = to_naive_utc(end_date)
        if timestamp:
            query["timestamp"] = timestamp

        cursor = (
            cls.collection()
            .find(query)
            .sort("timestamp", -1)
            .limit(int(limit or cls.DEFAULT_LIMIT))
        )
        return [cls._normalise(doc) for doc in cursor]

    @classmethod
    def statistics(cls, lubricentro_id=None, days=30, now=None):
        now = now or utcnow()
        query = {"timestamp": {"$gte": now - timedelta(days=int(days))}}
        if lubricentro_id:
            query["lubricentro_id"] = str(lubricentro_id)

        events = [cls._normalise(doc) for doc in cls.collection().find(query).sort("timestamp", -1)]

        events_by_type = {}
        events_by_severity = {}
        recent_errors = []
        for event in events:
            events_by_type[event.get("type")] = events_by_type.get(event.get("type"), 0) + 1
            events_by_severity[event.get("severity")] = events_by_severity.get(event.get("severity"), 0) + 1
            if (
                event.get("severity") in (AUDIT_SEVERITIES["ERROR"], AUDIT_SEVERITIES["CRITICAL"])
                and len(recent_errors) < cls.RECENT_ERRORS_LIMIT
            ):
                recent_errors.append(event)

        return {
            "total_events": len(events),
            "events_by_type": events_by_type,
            "events_by_severity": events_by_severity,
            "recent_errors": recent_errors,
        }
