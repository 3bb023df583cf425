# schemas/user_schema.py

from marshmallow import Schema, fields, validate, EXCLUDE

from ..constants.service_code import USER_ROLES, USER_STATUS
from ..utils.validation import validate_objectid


class UserCreateSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    email = fields.Email(required=True, error_messages={"required": "Email is required"})
    password = fields.Str(required=True, load_only=True, validate=validate.Length(min=6))
    first_name = fields.Str(required=True, validate=validate.Length(min=2, max=100))
    last_name = fields.Str(load_default="", validate=validate.Length(max=100))
    role = fields.Str(
        load_default=USER_ROLES["EMPLOYEE"],
        validate=validate.OneOf(list(USER_ROLES.values())),
    )
    status = fields.Str(
        load_default=USER_STATUS["ACTIVE"],
        validate=validate.OneOf(list(USER_STATUS.values())),
    )
    lubricentro_id = fields.Str(required=False, allow_none=True, validate=validate_objectid)


class UserUpdateSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    first_name = fields.Str(validate=validate.Length(min=2, max=100))
    last_name = fields.Str(validate=validate.Length(max=100))
    role = fields.Str(validate=validate.OneOf(list(USER_ROLES.values())))


class UserStatusSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    status = fields.Str(
        required=True,
        validate=validate.OneOf(list(USER_STATUS.values())),
        error_messages={"required": "Status is required"},
    )


class UserQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    search = fields.Str(required=False)
    lubricentro_id = fields.Str(required=False, validate=validate_objectid)
