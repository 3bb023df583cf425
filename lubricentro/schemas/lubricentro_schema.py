# schemas/lubricentro_schema.py

from marshmallow import Schema, fields, validate, EXCLUDE

from ..constants.service_code import LUBRICENTRO_STATUS, ENTITLEMENT_ACTIONS
from ..utils.validation import validate_cuit, validate_phone


class LubricentroSchema(Schema):
    """Schema for lubricentro contact data."""
    class Meta:
        unknown = EXCLUDE

    fantasy_name = fields.Str(
        required=True,
        validate=validate.Length(min=2, max=150),
        error_messages={"required": "Fantasy name is required"},
    )
    responsible = fields.Str(
        required=True,
        validate=validate.Length(min=2, max=150),
        error_messages={"required": "Responsible person is required"},
    )
    domicile = fields.Str(
        required=True,
        validate=validate.Length(min=5, max=250),
        error_messages={"required": "Address is required"},
    )
    cuit = fields.Str(required=True, validate=validate_cuit)
    phone = fields.Str(required=True, validate=validate_phone)
    email = fields.Email(required=True, error_messages={"invalid": "Invalid email address"})
    logo_url = fields.Url(required=False, allow_none=True)
    ticket_prefix = fields.Str(
        load_default="OC",
        validate=validate.Regexp(r"^[A-Za-z]{1,5}$", error="Prefix must be 1 to 5 letters."),
    )


class LubricentroUpdateSchema(LubricentroSchema):
    class Meta:
        unknown = EXCLUDE

    fantasy_name = fields.Str(validate=validate.Length(min=2, max=150))
    responsible = fields.Str(validate=validate.Length(min=2, max=150))
    domicile = fields.Str(validate=validate.Length(min=5, max=250))
    cuit = fields.Str(validate=validate_cuit)
    phone = fields.Str(validate=validate_phone)
    email = fields.Email()
    ticket_prefix = fields.Str(
        validate=validate.Regexp(r"^[A-Za-z]{1,5}$", error="Prefix must be 1 to 5 letters."),
    )
    status = fields.Str(validate=validate.OneOf(list(LUBRICENTRO_STATUS.values())))


class LubricentroQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    search = fields.Str(required=False)
    status = fields.Str(required=False, validate=validate.OneOf(list(LUBRICENTRO_STATUS.values())))


class EntitlementCheckSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    action = fields.Str(
        required=True,
        validate=validate.OneOf(list(ENTITLEMENT_ACTIONS.values())),
        error_messages={"required": "Action is required"},
    )
