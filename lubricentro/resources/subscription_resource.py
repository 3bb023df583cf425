# lubricentro/resources/subscription_resource.py

from flask import g
from flask.views import MethodView
from flask_smorest import Blueprint

from ..constants.plans import SUBSCRIPTION_PLANS, RENEWAL_TYPES, TRIAL_LIMITS
from ..schemas.subscription_schema import (
    ActivateSubscriptionSchema,
    DeactivateSubscriptionSchema,
    ExtendTrialSchema,
    ChangePlanSchema,
    PaymentSchema,
    BatchActionsSchema,
)
from ..services import subscription_service
from ..utils.helpers import resource_log_tag
from ..utils.json_response import prepared_response
from ..utils.logger import Log
from .auth_resource import token_required, superadmin_required
from .responses import HANDLED_ERRORS, system_error_response


blp_subscription = Blueprint(
    "subscriptions", __name__, url_prefix="/api/v1/subscriptions", description="Subscription management",
)


@blp_subscription.route("/plans", methods=["GET"])
class PlanList(MethodView):
    """Public plan catalog."""

    def get(self):
        return prepared_response(True, "OK", "Plans retrieved successfully", data={
            "plans": list(SUBSCRIPTION_PLANS.values()),
            "renewal_types": RENEWAL_TYPES,
            "trial": TRIAL_LIMITS,
        })


@blp_subscription.route("/overview", methods=["GET"])
class SubscriptionOverview(MethodView):

    @token_required
    @superadmin_required
    def get(self):
        rows = subscription_service.get_subscriptions_overview()
        return prepared_response(True, "OK", "Subscriptions retrieved successfully", data=rows)


@blp_subscription.route("/stats", methods=["GET"])
class SubscriptionStats(MethodView):

    @token_required
    @superadmin_required
    def get(self):
        return prepared_response(True, "OK", "Stats retrieved successfully", data=subscription_service.get_global_stats())


@blp_subscription.route("/needing-attention", methods=["GET"])
class SubscriptionsNeedingAttention(MethodView):
    """Trials or subscriptions expiring soon, or near their service limit."""

    @token_required
    @superadmin_required
    def get(self):
        rows = subscription_service.get_lubricentros_needing_attention()
        return prepared_response(True, "OK", "Lubricentros retrieved successfully", data=rows)


@blp_subscription.route("/<string:lubricentro_id>/activate", methods=["POST"])
class ActivateSubscription(MethodView):

    @token_required
    @superadmin_required
    @blp_subscription.arguments(ActivateSubscriptionSchema, location="json")
    def post(self, body, lubricentro_id):
        log_tag = resource_log_tag(
            "subscription_resource.py", "ActivateSubscription", "post", lubricentro_id,
            plan=body["plan"], renewal_type=body["renewal_type"],
        )
        Log.info(f"{log_tag} activating")
        try:
            lubricentro = subscription_service.activate_subscription(
                lubricentro_id,
                body["plan"],
                body["renewal_type"],
                actor=g.current_user,
                payment_method=body.get("payment_method"),
                payment_reference=body.get("payment_reference"),
            )
            return prepared_response(True, "OK", "Subscription activated successfully", data=lubricentro)
        except HANDLED_ERRORS:
            raise
        except Exception as e:
            return system_error_response(log_tag, "activate_subscription", e)


@blp_subscription.route("/<string:lubricentro_id>/deactivate", methods=["POST"])
class DeactivateSubscription(MethodView):

    @token_required
    @superadmin_required
    @blp_subscription.arguments(DeactivateSubscriptionSchema, location="json")
    def post(self, body, lubricentro_id):
        log_tag = resource_log_tag("subscription_resource.py", "DeactivateSubscription", "post", lubricentro_id)
        try:
            lubricentro = subscription_service.deactivate_subscription(
                lubricentro_id, reason=body.get("reason"), actor=g.current_user,
            )
            return prepared_response(True, "OK", "Subscription deactivated successfully", data=lubricentro)
        except HANDLED_ERRORS:
            raise
        except Exception as e:
            return system_error_response(log_tag, "deactivate_subscription", e)


@blp_subscription.route("/<string:lubricentro_id>/extend-trial", methods=["POST"])
class ExtendTrial(MethodView):

    @token_required
    @superadmin_required
    @blp_subscription.arguments(ExtendTrialSchema, location="json")
    def post(self, body, lubricentro_id):
        log_tag = resource_log_tag("subscription_resource.py", "ExtendTrial", "post", lubricentro_id, days=body["days"])
        try:
            lubricentro = subscription_service.extend_trial(lubricentro_id, body["days"], actor=g.current_user)
            return prepared_response(True, "OK", "Trial extended successfully", data=lubricentro)
        except HANDLED_ERRORS:
            raise
        except Exception as e:
            return system_error_response(log_tag, "extend_trial", e)


@blp_subscription.route("/<string:lubricentro_id>/change-plan", methods=["POST"])
class ChangePlan(MethodView):

    @token_required
    @superadmin_required
    @blp_subscription.arguments(ChangePlanSchema, location="json")
    def post(self, body, lubricentro_id):
        log_tag = resource_log_tag("subscription_resource.py", "ChangePlan", "post", lubricentro_id, plan=body["plan"])
        try:
            lubricentro = subscription_service.change_plan(
                lubricentro_id, body["plan"], renewal_type=body.get("renewal_type"), actor=g.current_user,
            )
            return prepared_response(True, "OK", "Plan changed successfully", data=lubricentro)
        except HANDLED_ERRORS:
            raise
        except Exception as e:
            return system_error_response(log_tag, "change_plan", e)


@blp_subscription.route("/<string:lubricentro_id>/reset-services", methods=["POST"])
class ResetServices(MethodView):

    @token_required
    @superadmin_required
    def post(self, lubricentro_id):
        log_tag = resource_log_tag("subscription_resource.py", "ResetServices", "post", lubricentro_id)
        try:
            lubricentro = subscription_service.reset_services_counter(lubricentro_id, actor=g.current_user)
            return prepared_response(True, "OK", "Service counter reset", data=lubricentro)
        except HANDLED_ERRORS:
            raise
        except Exception as e:
            return system_error_response(log_tag, "reset_services", e)


@blp_subscription.route("/<string:lubricentro_id>/payments", methods=["POST"])
class RecordPayment(MethodView):

    @token_required
    @superadmin_required
    @blp_subscription.arguments(PaymentSchema, location="json")
    def post(self, body, lubricentro_id):
        log_tag = resource_log_tag(
            "subscription_resource.py", "RecordPayment", "post", lubricentro_id, method=body["method"],
        )
        try:
            lubricentro = subscription_service.record_payment(
                lubricentro_id, body["amount"], body["method"],
                reference=body.get("reference"), actor=g.current_user,
            )
            return prepared_response(True, "CREATED", "Payment recorded successfully", data=lubricentro)
        except HANDLED_ERRORS:
            raise
        except Exception as e:
            return system_error_response(log_tag, "record_payment", e)


@blp_subscription.route("/batch", methods=["POST"])
class BatchActions(MethodView):
    """
    Run several subscription actions. Each action succeeds or fails on
    its own; the response lists both.
    """

    @token_required
    @superadmin_required
    @blp_subscription.arguments(BatchActionsSchema, location="json")
    def post(self, body):
        log_tag = resource_log_tag("subscription_resource.py", "BatchActions", "post", count=len(body["actions"]))
        try:
            result = subscription_service.execute_batch_actions(body["actions"], actor=g.current_user)
            Log.info(f"{log_tag} successful={len(result['successful'])} failed={len(result['failed'])}")
            return prepared_response(True, "OK", "Batch processed", data=result)
        except HANDLED_ERRORS:
            raise
        except Exception as e:
            return system_error_response(log_tag, "batch_actions", e)
