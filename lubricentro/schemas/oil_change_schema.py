# schemas/oil_change_schema.py

from marshmallow import Schema, fields, validate, EXCLUDE, pre_load, missing

from ..models.oil_change_model import SEARCH_FIELDS
from ..utils.validation import (
    validate_domain,
    validate_km,
    validate_objectid,
    validate_vehicle_year,
    normalize_domain,
)


class OilChangeSchema(Schema):
    """Schema for creating an oil-change service record."""
    class Meta:
        unknown = EXCLUDE

    lubricentro_id = fields.Str(required=False, allow_none=True, validate=validate_objectid)

    # client
    client_name = fields.Str(
        required=True,
        validate=validate.Length(min=2, max=150),
        error_messages={"required": "Client name is required"},
    )
    client_phone = fields.Str(required=False, allow_none=True, validate=validate.Length(max=30))

    # vehicle
    vehicle_domain = fields.Str(
        required=True,
        validate=validate_domain,
        error_messages={"required": "Licence plate is required"},
    )
    vehicle_brand = fields.Str(required=True, validate=validate.Length(min=1, max=80))
    vehicle_model = fields.Str(required=True, validate=validate.Length(min=1, max=80))
    vehicle_type = fields.Str(load_default="Automóvil", validate=validate.Length(max=50))
    vehicle_year = fields.Int(required=False, allow_none=True, validate=validate_vehicle_year)
    current_km = fields.Int(required=True, validate=validate_km)
    next_km = fields.Int(required=False, allow_none=True, validate=validate_km)
    service_periodicity_months = fields.Int(
        load_default=6,
        validate=validate.Range(min=1, max=24),
    )

    # service
    service_date = fields.DateTime(required=False, allow_none=True)
    oil_brand = fields.Str(required=True, validate=validate.Length(min=1, max=80))
    oil_type = fields.Str(required=True, validate=validate.Length(min=1, max=80))
    oil_viscosity = fields.Str(required=True, validate=validate.Length(min=1, max=20))
    oil_quantity = fields.Float(required=True, validate=validate.Range(min=0, max=100))
    observations = fields.Str(required=False, allow_none=True, validate=validate.Length(max=1000))

    # filters and extras: a flag plus an optional note each
    oil_filter = fields.Bool(load_default=False)
    oil_filter_note = fields.Str(required=False, allow_none=True, validate=validate.Length(max=200))
    air_filter = fields.Bool(load_default=False)
    air_filter_note = fields.Str(required=False, allow_none=True, validate=validate.Length(max=200))
    cabin_filter = fields.Bool(load_default=False)
    cabin_filter_note = fields.Str(required=False, allow_none=True, validate=validate.Length(max=200))
    fuel_filter = fields.Bool(load_default=False)
    fuel_filter_note = fields.Str(required=False, allow_none=True, validate=validate.Length(max=200))
    additive = fields.Bool(load_default=False)
    additive_note = fields.Str(required=False, allow_none=True, validate=validate.Length(max=200))
    coolant = fields.Bool(load_default=False)
    coolant_note = fields.Str(required=False, allow_none=True, validate=validate.Length(max=200))
    differential = fields.Bool(load_default=False)
    differential_note = fields.Str(required=False, allow_none=True, validate=validate.Length(max=200))
    gearbox = fields.Bool(load_default=False)
    gearbox_note = fields.Str(required=False, allow_none=True, validate=validate.Length(max=200))
    greasing = fields.Bool(load_default=False)
    greasing_note = fields.Str(required=False, allow_none=True, validate=validate.Length(max=200))

    # operator
    operator_name = fields.Str(required=False, allow_none=True)

    @pre_load
    def normalise(self, data, **kwargs):
        if isinstance(data, dict) and isinstance(data.get("vehicle_domain"), str):
            data = {**data, "vehicle_domain": normalize_domain(data["vehicle_domain"])}
        return data


class OilChangeUpdateSchema(OilChangeSchema):
    """Every field optional; only what is sent is updated."""
    class Meta:
        unknown = EXCLUDE

    def __init__(self, *args, **kwargs):
        kwargs.setdefault("partial", True)
        super().__init__(*args, **kwargs)

    def on_bind_field(self, field_name, field_obj):
        field_obj.load_default = missing
        super().on_bind_field(field_name, field_obj)


class OilChangeQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    page = fields.Int(load_default=1, validate=validate.Range(min=1))
    per_page = fields.Int(load_default=20, validate=validate.Range(min=1, max=100))
    search = fields.Str(required=False)
    field = fields.Str(load_default="client_name", validate=validate.OneOf(list(SEARCH_FIELDS)))
    lubricentro_id = fields.Str(required=False, validate=validate_objectid)


class TenantQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    lubricentro_id = fields.Str(required=False, validate=validate_objectid)


class UpcomingQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    days = fields.Int(load_default=30, validate=validate.Range(min=1, max=365))
    lubricentro_id = fields.Str(required=False, validate=validate_objectid)


class OperatorReportQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    start_date = fields.DateTime(required=False)
    end_date = fields.DateTime(required=False)
    operator_id = fields.Str(required=False)
    lubricentro_id = fields.Str(required=False, validate=validate_objectid)
