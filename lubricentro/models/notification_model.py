# lubricentro/models/notification_model.py

from .base_model import BaseModel


class Notification(BaseModel):
    """In-app notifications addressed to a lubricentro."""

    collection_name = "notifications"

    TYPE_PAYMENT_REMINDER = "payment_reminder"

    @classmethod
    def create(cls, lubricentro_id, type, title, message, data=None):
        return cls.insert({
            "lubricentro_id": str(lubricentro_id),
            "type": type,
            "title": title,
            "message": message,
            "data": data or {},
            "read": False,
        })

    @classmethod
    def exists(cls, lubricentro_id, type, reference):
        """True when a notification of this type already points at `reference`."""
        return cls.collection().count_documents({
            "lubricentro_id": str(lubricentro_id),
            "type": type,
            "data.reference": reference,
        }) > 0

    @classmethod
    def get_for_lubricentro(cls, lubricentro_id, unread_only=False):
        query = {"lubricentro_id": str(lubricentro_id)}
        if unread_only:
            query["read"] = False
        cursor = cls.collection().find(query).sort("created_at", -1)
        return [cls._normalise(doc) for doc in cursor]
