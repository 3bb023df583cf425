# schemas/audit_schema.py

from marshmallow import Schema, fields, validate, EXCLUDE

from ..constants.service_code import AUDIT_EVENT_TYPES, AUDIT_SEVERITIES
from ..utils.validation import validate_objectid


class AuditLogQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    lubricentro_id = fields.Str(required=False, validate=validate_objectid)
    user_id = fields.Str(required=False)
    type = fields.Str(required=False, validate=validate.OneOf(list(AUDIT_EVENT_TYPES.values())))
    severity = fields.Str(required=False, validate=validate.OneOf(list(AUDIT_SEVERITIES.values())))
    start_date = fields.DateTime(required=False)
    end_date = fields.DateTime(required=False)
    limit = fields.Int(load_default=100, validate=validate.Range(min=1, max=1000))


class AuditStatsQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    lubricentro_id = fields.Str(required=False, validate=validate_objectid)
    days = fields.Int(load_default=30, validate=validate.Range(min=1, max=365))
