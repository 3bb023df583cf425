# schemas/subscription_schema.py

from marshmallow import Schema, fields, validate, EXCLUDE, validates_schema, ValidationError

from ..constants.plans import SUBSCRIPTION_PLANS, RENEWAL_TYPES
from ..services.subscription_service import BATCH_ACTIONS
from ..utils.validation import validate_objectid


PLAN_IDS = list(SUBSCRIPTION_PLANS)
RENEWAL_TYPE_IDS = list(RENEWAL_TYPES)
PAYMENT_METHODS = ["transfer", "cash", "card", "mercadopago", "other"]


class ActivateSubscriptionSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    plan = fields.Str(
        required=True,
        validate=validate.OneOf(PLAN_IDS),
        error_messages={"required": "Plan is required"},
    )
    renewal_type = fields.Str(load_default="monthly", validate=validate.OneOf(RENEWAL_TYPE_IDS))
    payment_method = fields.Str(required=False, allow_none=True, validate=validate.OneOf(PAYMENT_METHODS))
    payment_reference = fields.Str(required=False, allow_none=True, validate=validate.Length(max=120))


class DeactivateSubscriptionSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    reason = fields.Str(required=False, allow_none=True, validate=validate.Length(max=500))


class ExtendTrialSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    days = fields.Int(load_default=7, validate=validate.Range(min=1, max=90))


class ChangePlanSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    plan = fields.Str(required=True, validate=validate.OneOf(PLAN_IDS))
    renewal_type = fields.Str(required=False, allow_none=True, validate=validate.OneOf(RENEWAL_TYPE_IDS))


class PaymentSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    amount = fields.Float(
        required=True,
        validate=validate.Range(min=0, min_inclusive=False),
        error_messages={"required": "Amount is required"},
    )
    method = fields.Str(required=True, validate=validate.OneOf(PAYMENT_METHODS))
    reference = fields.Str(required=False, allow_none=True, validate=validate.Length(max=120))


class BatchActionItemSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    type = fields.Str(required=True, validate=validate.OneOf(list(BATCH_ACTIONS)))
    lubricentro_id = fields.Str(required=True, validate=validate_objectid)
    data = fields.Dict(load_default=dict)

    @validates_schema
    def validate_data(self, data, **kwargs):
        if data["type"] in ("activate", "change_plan") and data["data"].get("plan") not in PLAN_IDS:
            raise ValidationError({"data": ["A valid plan is required for this action."]})


class BatchActionsSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    actions = fields.List(
        fields.Nested(BatchActionItemSchema),
        required=True,
        validate=validate.Length(min=1, max=100),
    )
