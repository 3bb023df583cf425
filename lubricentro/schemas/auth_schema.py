# schemas/auth_schema.py

from marshmallow import Schema, fields, validate, EXCLUDE, pre_load

from .lubricentro_schema import LubricentroSchema


class LoginSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    email = fields.Email(
        required=True,
        error_messages={"required": "Email is required", "invalid": "Invalid email address"},
    )
    password = fields.Str(
        required=True,
        load_only=True,
        validate=validate.Length(min=1),
        error_messages={"required": "Password is required"},
    )

    @pre_load
    def normalise_email(self, data, **kwargs):
        if isinstance(data, dict) and isinstance(data.get("email"), str):
            data = {**data, "email": data["email"].strip().lower()}
        return data


class OwnerSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    email = fields.Email(required=True, error_messages={"required": "Email is required"})
    password = fields.Str(required=True, load_only=True, validate=validate.Length(min=6))
    first_name = fields.Str(required=True, validate=validate.Length(min=2, max=100))
    last_name = fields.Str(load_default="", validate=validate.Length(max=100))


class RegisterSchema(Schema):
    """Sign-up payload: the owner account plus the lubricentro."""
    class Meta:
        unknown = EXCLUDE

    owner = fields.Nested(OwnerSchema, required=True)
    lubricentro = fields.Nested(LubricentroSchema, required=True)
