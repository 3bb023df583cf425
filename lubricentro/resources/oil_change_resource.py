# lubricentro/resources/oil_change_resource.py

from flask import g
from flask.views import MethodView
from flask_smorest import Blueprint

from ..constants.service_code import ENTITLEMENT_ACTIONS
from ..models.oil_change_model import OilChange
from ..schemas.oil_change_schema import (
    OilChangeSchema,
    OilChangeUpdateSchema,
    OilChangeQuerySchema,
    UpcomingQuerySchema,
    OperatorReportQuerySchema,
    TenantQuerySchema,
)
from ..services import oil_change_service
from ..services.access import is_superadmin
from ..utils.entitlement_enforcer import require_entitlement
from ..utils.helpers import resource_log_tag
from ..utils.json_response import prepared_response
from ..utils.logger import Log
from ..utils.rate_limits import public_history_limiter
from ..utils.validation import is_valid_domain
from .auth_resource import token_required
from .responses import HANDLED_ERRORS, system_error_response


blp_oil_change = Blueprint("oil_changes", __name__, url_prefix="/api/v1", description="Oil change services")


@blp_oil_change.route("/oil-changes", methods=["GET", "POST"])
class OilChangeList(MethodView):

    @token_required
    @blp_oil_change.arguments(OilChangeQuerySchema, location="query")
    def get(self, query):
        result = oil_change_service.list_oil_changes(
            g.current_user,
            page=query["page"],
            per_page=query["per_page"],
            term=query.get("search"),
            field=query["field"],
            lubricentro_id=query.get("lubricentro_id"),
        )
        return prepared_response(True, "OK", "Services retrieved successfully", data=result)

    @token_required
    @blp_oil_change.arguments(OilChangeSchema, location="json")
    def post(self, service_data):
        log_tag = resource_log_tag(
            "oil_change_resource.py", "OilChangeList", "post",
            service_data.get("lubricentro_id") or g.current_user.get("lubricentro_id"),
            domain=service_data.get("vehicle_domain"),
        )
        Log.info(f"{log_tag} creating service")
        try:
            oil_change = oil_change_service.create_oil_change(service_data, g.current_user)
            Log.info(f"{log_tag} created {oil_change['service_number']}")
            return prepared_response(True, "CREATED", "Service created successfully", data=oil_change)
        except HANDLED_ERRORS:
            raise
        except Exception as e:
            return system_error_response(log_tag, "create_service", e)


@blp_oil_change.route("/oil-changes/upcoming", methods=["GET"])
class OilChangeUpcoming(MethodView):
    """Services whose next change falls within the coming days."""

    @token_required
    @blp_oil_change.arguments(UpcomingQuerySchema, location="query")
    def get(self, query):
        items = oil_change_service.get_upcoming(g.current_user, query["days"], query.get("lubricentro_id"))
        return prepared_response(True, "OK", "Upcoming services retrieved successfully", data=items)


@blp_oil_change.route("/oil-changes/stats", methods=["GET"])
class OilChangeStats(MethodView):

    @token_required
    @blp_oil_change.arguments(UpcomingQuerySchema, location="query")
    def get(self, query):
        stats = oil_change_service.get_stats(g.current_user, query.get("lubricentro_id"))
        return prepared_response(True, "OK", "Stats retrieved successfully", data=stats)


@blp_oil_change.route("/oil-changes/number/<string:service_number>", methods=["GET"])
class OilChangeByNumber(MethodView):

    @token_required
    @blp_oil_change.arguments(TenantQuerySchema, location="query")
    def get(self, query, service_number):
        oil_change = oil_change_service.get_oil_change_by_number(
            g.current_user, service_number, query.get("lubricentro_id"),
        )
        return prepared_response(True, "OK", "Service retrieved successfully", data=oil_change)


@blp_oil_change.route("/oil-changes/<string:oil_change_id>", methods=["GET", "PATCH", "DELETE"])
class OilChangeDetail(MethodView):

    @token_required
    def get(self, oil_change_id):
        oil_change = oil_change_service.get_oil_change(oil_change_id, g.current_user)
        return prepared_response(True, "OK", "Service retrieved successfully", data=oil_change)

    @token_required
    @blp_oil_change.arguments(OilChangeUpdateSchema, location="json")
    def patch(self, updates, oil_change_id):
        log_tag = resource_log_tag("oil_change_resource.py", "OilChangeDetail", "patch", oil_change_id=oil_change_id)
        try:
            oil_change = oil_change_service.update_oil_change(oil_change_id, updates, g.current_user)
            return prepared_response(True, "OK", "Service updated successfully", data=oil_change)
        except HANDLED_ERRORS:
            raise
        except Exception as e:
            return system_error_response(log_tag, "update_service", e)

    @token_required
    def delete(self, oil_change_id):
        log_tag = resource_log_tag("oil_change_resource.py", "OilChangeDetail", "delete", oil_change_id=oil_change_id)
        try:
            oil_change_service.delete_oil_change(oil_change_id, g.current_user)
            return prepared_response(True, "OK", "Service deleted successfully")
        except HANDLED_ERRORS:
            raise
        except Exception as e:
            return system_error_response(log_tag, "delete_service", e)


def _report_lubricentro_id(args, kwargs):
    user = g.get("current_user") or {}
    query = args[-1] if args and isinstance(args[-1], dict) else {}
    if is_superadmin(user) and query.get("lubricentro_id"):
        return query["lubricentro_id"]
    return user.get("lubricentro_id")


@blp_oil_change.route("/reports/operators", methods=["GET"])
class OperatorReport(MethodView):
    """Service count per operator; optionally one operator's services."""

    @token_required
    @blp_oil_change.arguments(OperatorReportQuerySchema, location="query")
    @require_entitlement(ENTITLEMENT_ACTIONS["VIEW_REPORTS"], lubricentro_id_resolver=_report_lubricentro_id)
    def get(self, query):
        lubricentro_id = _report_lubricentro_id((query,), {})
        if query.get("operator_id"):
            items = OilChange.get_by_operator(
                lubricentro_id, query["operator_id"], query.get("start_date"), query.get("end_date"),
            )
            return prepared_response(True, "OK", "Operator services retrieved successfully", data=items)

        stats = oil_change_service.get_operator_report(
            g.current_user, query.get("start_date"), query.get("end_date"), lubricentro_id,
        )
        return prepared_response(True, "OK", "Operator report retrieved successfully", data=stats)


@blp_oil_change.route("/public/vehicles/<string:domain>/history", methods=["GET"])
class PublicVehicleHistory(MethodView):
    """Public service history for a licence plate."""

    @public_history_limiter
    def get(self, domain):
        if not is_valid_domain(domain):
            return prepared_response(False, "BAD_REQUEST", "Invalid licence plate")

        history = [
            {
                "service_number": item.get("service_number"),
                "lubricentro_name": item.get("lubricentro_name"),
                "vehicle_domain": item.get("vehicle_domain"),
                "vehicle_brand": item.get("vehicle_brand"),
                "vehicle_model": item.get("vehicle_model"),
                "service_date": item.get("service_date"),
                "next_service_date": item.get("next_service_date"),
                "current_km": item.get("current_km"),
                "next_km": item.get("next_km"),
                "oil_brand": item.get("oil_brand"),
                "oil_viscosity": item.get("oil_viscosity"),
            }
            for item in OilChange.get_by_vehicle(domain)
        ]
        return prepared_response(True, "OK", "Vehicle history retrieved successfully", data=history)
