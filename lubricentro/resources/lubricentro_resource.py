# lubricentro/resources/lubricentro_resource.py

from flask import g
from flask.views import MethodView
from flask_smorest import Blueprint

from ..models.lubricentro_model import Lubricentro
from ..models.notification_model import Notification
from ..schemas.lubricentro_schema import (
    LubricentroUpdateSchema,
    LubricentroQuerySchema,
    EntitlementCheckSchema,
)
from ..services import entitlement_service, lubricentro_service
from ..services.access import ensure_lubricentro_access
from ..utils.helpers import resource_log_tag
from ..utils.json_response import prepared_response
from ..utils.logger import Log
from .auth_resource import token_required
from .responses import HANDLED_ERRORS, system_error_response


blp_lubricentro = Blueprint("lubricentros", __name__, url_prefix="/api/v1", description="Lubricentro management")


@blp_lubricentro.route("/lubricentros", methods=["GET"])
class LubricentroList(MethodView):
    """List lubricentros (superadmin only)."""

    @token_required
    @blp_lubricentro.arguments(LubricentroQuerySchema, location="query")
    def get(self, query):
        log_tag = resource_log_tag("lubricentro_resource.py", "LubricentroList", "get")
        try:
            items = lubricentro_service.list_lubricentros(
                g.current_user, term=query.get("search"), status=query.get("status"),
            )
            Log.info(f"{log_tag} returned {len(items)} lubricentros")
            return prepared_response(True, "OK", "Lubricentros retrieved successfully", data=items)
        except HANDLED_ERRORS:
            raise
        except Exception as e:
            return system_error_response(log_tag, "list_lubricentros", e)


@blp_lubricentro.route("/lubricentros/<string:lubricentro_id>", methods=["GET", "PATCH"])
class LubricentroDetail(MethodView):

    @token_required
    def get(self, lubricentro_id):
        lubricentro = lubricentro_service.get_lubricentro(lubricentro_id, g.current_user)
        return prepared_response(True, "OK", "Lubricentro retrieved successfully", data=lubricentro)

    @token_required
    @blp_lubricentro.arguments(LubricentroUpdateSchema, location="json")
    def patch(self, updates, lubricentro_id):
        log_tag = resource_log_tag("lubricentro_resource.py", "LubricentroDetail", "patch", lubricentro_id)
        Log.info(f"{log_tag} updating fields={sorted(updates)}")
        try:
            lubricentro = lubricentro_service.update_lubricentro(lubricentro_id, updates, g.current_user)
            return prepared_response(True, "OK", "Lubricentro updated successfully", data=lubricentro)
        except HANDLED_ERRORS:
            raise
        except Exception as e:
            return system_error_response(log_tag, "update_lubricentro", e)


@blp_lubricentro.route("/lubricentros/<string:lubricentro_id>/limits", methods=["GET"])
class LubricentroLimits(MethodView):
    """Trial/plan limits and current usage."""

    @token_required
    def get(self, lubricentro_id):
        lubricentro = lubricentro_service.get_lubricentro(lubricentro_id, g.current_user)
        limits = entitlement_service.get_subscription_limits(lubricentro)
        return prepared_response(True, "OK", "Limits retrieved successfully", data=limits)


@blp_lubricentro.route("/lubricentros/<string:lubricentro_id>/entitlement", methods=["POST"])
class LubricentroEntitlement(MethodView):
    """
    Ask whether the current user may perform an action. Always 200;
    the decision is in data.allowed.
    """

    @token_required
    @blp_lubricentro.arguments(EntitlementCheckSchema, location="json")
    def post(self, body, lubricentro_id):
        ensure_lubricentro_access(g.current_user, lubricentro_id)
        result = entitlement_service.check(lubricentro_id, body["action"], g.current_user)
        return prepared_response(True, "OK", result.reason or "Action allowed", data=result.to_dict())


@blp_lubricentro.route("/lubricentros/<string:lubricentro_id>/notifications", methods=["GET"])
class LubricentroNotifications(MethodView):

    @token_required
    def get(self, lubricentro_id):
        ensure_lubricentro_access(g.current_user, lubricentro_id)
        if not Lubricentro.get_by_id(lubricentro_id):
            return prepared_response(False, "NOT_FOUND", "Lubricentro not found")
        return prepared_response(
            True, "OK", "Notifications retrieved successfully",
            data=Notification.get_for_lubricentro(lubricentro_id),
        )
