from pymongo import MongoClient, ASCENDING, DESCENDING


class MongoDB:
    def __init__(self):
        self.client = None
        self.db = None

    def init_app(self, app):
        uri = app.config.get("MONGO_URI")
        db_name = app.config.get("DB_NAME", "lubricentro")

        self.client = MongoClient(uri)
        self.db = self.client[db_name]
        app.mongo = self.db

    def create_indexes(self):
        """Create collection indexes (idempotent)."""
        # lubricentros
        self.db.lubricentros.create_index([("owner_id", ASCENDING)])
        self.db.lubricentros.create_index([("status", ASCENDING)])
        self.db.lubricentros.create_index([("fantasy_name", ASCENDING)])

        # users
        self.db.users.create_index([("email", ASCENDING)], unique=True)
        self.db.users.create_index([("lubricentro_id", ASCENDING), ("status", ASCENDING)])

        # oil_changes
        self.db.oil_changes.create_index([("lubricentro_id", ASCENDING), ("created_at", DESCENDING)])
        self.db.oil_changes.create_index([("lubricentro_id", ASCENDING), ("service_number", ASCENDING)])
        self.db.oil_changes.create_index([("vehicle_domain", ASCENDING)])
        self.db.oil_changes.create_index([("lubricentro_id", ASCENDING), ("next_service_date", ASCENDING)])

        # service_counters
        self.db.service_counters.create_index([("lubricentro_id", ASCENDING), ("prefix", ASCENDING)], unique=True)

        # audit_logs
        self.db.audit_logs.create_index([("timestamp", DESCENDING)])
        self.db.audit_logs.create_index([("lubricentro_id", ASCENDING), ("timestamp", DESCENDING)])
        self.db.audit_logs.create_index([("type", ASCENDING)])

    def get_collection(self, name):
        if self.db is None:
            raise RuntimeError("MongoDB not initialized")
        return self.db[name]


# Export the instance
db = MongoDB()
