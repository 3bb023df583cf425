import re

import bcrypt

from .base_model import BaseModel
from ..constants.service_code import USER_ROLES, USER_STATUS
from ..utils.helpers import utcnow, to_object_id
from ..utils.logger import Log


class User(BaseModel):
    """
    Application user. Passwords are stored as bcrypt hashes and never
    returned from read methods.
    """

    collection_name = "users"

    ROLE_SUPER_ADMIN = USER_ROLES["SUPER_ADMIN"]
    ROLE_ADMIN = USER_ROLES["ADMIN"]
    ROLE_EMPLOYEE = USER_ROLES["EMPLOYEE"]

    STATUS_ACTIVE = USER_STATUS["ACTIVE"]
    STATUS_PENDING = USER_STATUS["PENDING"]
    STATUS_INACTIVE = USER_STATUS["INACTIVE"]

    IMMUTABLE_FIELDS = ("_id", "created_at", "email", "password")

    @classmethod
    def _normalise(cls, doc):
        doc = super()._normalise(doc)
        if doc:
            doc.pop("password", None)
        return doc

    @staticmethod
    def hash_password(password: str) -> str:
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")

    @classmethod
    def create(cls, email, password, first_name, last_name=None, role=None,
               status=None, lubricentro_id=None):
        doc = {
            "email": email.strip().lower(),
            "password": cls.hash_password(password),
            "first_name": (first_name or "").strip(),
            "last_name": (last_name or "").strip(),
            "role": role or cls.ROLE_EMPLOYEE,
            "status": status or cls.STATUS_ACTIVE,
            "lubricentro_id": str(lubricentro_id) if lubricentro_id else None,
            "last_login": None,
        }
        created = cls.insert(doc)
        created.pop("password", None)
        Log.info(f"[user_model.py][User][create] id={created['_id']} role={doc['role']}")
        return created

    @classmethod
    def get_by_email(cls, email):
        if not email:
            return None
        return cls._normalise(cls.collection().find_one({"email": email.strip().lower()}))

    @classmethod
    def get_by_lubricentro(cls, lubricentro_id, status=None):
        query = {"lubricentro_id": str(lubricentro_id)}
        if status:
            query["status"] = status
        cursor = cls.collection().find(query).sort("created_at", -1)
        return [cls._normalise(doc) for doc in cursor]

    @classmethod
    def get_superadmins(cls):
        cursor = cls.collection().find({"role": cls.ROLE_SUPER_ADMIN})
        return [cls._normalise(doc) for doc in cursor]

    @classmethod
    def update_status(cls, user_id, status):
        return cls.update(user_id, status=status)

    @classmethod
    def update_password(cls, user_id, new_password):
        # password is immutable through update(); write it directly
        oid = to_object_id(user_id)
        if oid is None:
            return False
        result = cls.collection().update_one(
            {"_id": oid},
            {"$set": {"password": cls.hash_password(new_password), "updated_at": utcnow()}},
        )
        return result.matched_count > 0

    @classmethod
    def verify_password(cls, email, password):
        """
        Return the user (without password) when the credentials match, else None.
        """
        raw = cls.collection().find_one({"email": (email or "").strip().lower()})
        if not raw or not raw.get("password"):
            return None
        if not bcrypt.checkpw(password.encode("utf-8"), raw["password"].encode("utf-8")):
            return None
        return cls._normalise(raw)

    @classmethod
    def record_login(cls, user_id):
        return cls.update(user_id, last_login=utcnow())

    @classmethod
    def search(cls, term, lubricentro_id=None):
        """Case-insensitive substring search on first and last name."""
        pattern = {"$regex": re.escape((term or "").strip()), "$options": "i"}
        query = {"$or": [{"first_name": pattern}, {"last_name": pattern}]}
        if lubricentro_id:
            query["lubricentro_id"] = str(lubricentro_id)
        cursor = cls.collection().find(query).sort("first_name", 1)
        return [cls._normalise(doc) for doc in cursor]

    @classmethod
    def count_active(cls, lubricentro_id):
        return cls.collection().count_documents({
            "lubricentro_id": str(lubricentro_id),
            "status": cls.STATUS_ACTIVE,
        })
