# lubricentro/models/base_model.py

import math

from bson.objectid import ObjectId

from ..extensions.db import db
from ..utils.helpers import utcnow, to_object_id
from ..utils.logger import Log


class BaseModel:
    """
    A base class for models providing common collection operations.
    Documents leave the model with `_id` converted to str.
    """
    collection_name = None

    # Fields that callers may never overwrite through update()
    IMMUTABLE_FIELDS = ("_id", "created_at")

    @classmethod
    def collection(cls):
        return db.get_collection(cls.collection_name)

    @classmethod
    def _normalise(cls, doc):
        if not doc:
            return None
        if isinstance(doc.get("_id"), ObjectId):
            doc["_id"] = str(doc["_id"])
        return doc

    @classmethod
    def insert(cls, doc):
        now = utcnow()
        doc.setdefault("created_at", now)
        doc.setdefault("updated_at", now)
        result = cls.collection().insert_one(doc)
        doc["_id"] = result.inserted_id
        return cls._normalise(doc)

    @classmethod
    def get_by_id(cls, record_id):
        """
        Retrieve a record by its ID. Returns None for unknown or malformed ids.
        """
        oid = to_object_id(record_id)
        if oid is None:
            return None
        return cls._normalise(cls.collection().find_one({"_id": oid}))

    @classmethod
    def update(cls, record_id, **updates):
        """
        Update a record by its ID. Immutable fields are dropped silently.
        Returns True when a document matched.
        """
        oid = to_object_id(record_id)
        if oid is None:
            return False

        clean = {k: v for k, v in updates.items() if k not in cls.IMMUTABLE_FIELDS}
        if not clean:
            return False
        clean["updated_at"] = utcnow()

        result = cls.collection().update_one({"_id": oid}, {"$set": clean})
        return result.matched_count > 0

    @classmethod
    def delete(cls, record_id):
        oid = to_object_id(record_id)
        if oid is None:
            return False
        result = cls.collection().delete_one({"_id": oid})
        Log.info(f"[base_model.py][{cls.__name__}][delete] id={record_id} deleted={result.deleted_count}")
        return result.deleted_count > 0

    @classmethod
    def paginate(cls, query, page=1, per_page=10, sort=None):
        """
        Page through query results.
        """
        page = max(int(page or 1), 1)
        per_page = max(int(per_page or 10), 1)

        total_count = cls.collection().count_documents(query)
        cursor = cls.collection().find(query)
        if sort:
            cursor = cursor.sort(sort)
        cursor = cursor.skip((page - 1) * per_page).limit(per_page)

        return {
            "items": [cls._normalise(doc) for doc in cursor],
            "total_count": total_count,
            "total_pages": math.ceil(total_count / per_page) if total_count else 0,
            "current_page": page,
            "per_page": per_page,
        }
