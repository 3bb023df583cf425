# lubricentro/resources/audit_resource.py

from flask import g
from flask.views import MethodView
from flask_smorest import Blueprint, abort

from ..schemas.audit_schema import AuditLogQuerySchema, AuditStatsQuerySchema
from ..services import audit_service
from ..services.access import is_admin, is_superadmin
from ..utils.json_response import prepared_response
from .auth_resource import token_required


blp_audit = Blueprint("audit", __name__, url_prefix="/api/v1/audit", description="Audit trail")


def _scope(query):
    """Superadmins may filter any lubricentro; admins only read their own."""
    user = g.current_user
    if not is_admin(user):
        audit_service.log_permission_denied("view_audit_logs", "administrator role required", user=user)
        abort(403, message="Administrator role required")
    if is_superadmin(user):
        return query.get("lubricentro_id")
    return user.get("lubricentro_id")


@blp_audit.route("/logs", methods=["GET"])
class AuditLogList(MethodView):

    @token_required
    @blp_audit.arguments(AuditLogQuerySchema, location="query")
    def get(self, query):
        logs = audit_service.get_audit_logs(
            lubricentro_id=_scope(query),
            user_id=query.get("user_id"),
            event_type=query.get("type"),
            severity=query.get("severity"),
            start_date=query.get("start_date"),
            end_date=query.get("end_date"),
            limit=query["limit"],
        )
        return prepared_response(True, "OK", "Audit logs retrieved successfully", data=logs)


@blp_audit.route("/statistics", methods=["GET"])
class AuditStatistics(MethodView):

    @token_required
    @blp_audit.arguments(AuditStatsQuerySchema, location="query")
    def get(self, query):
        stats = audit_service.get_audit_statistics(lubricentro_id=_scope(query), days=query["days"])
        return prepared_response(True, "OK", "Audit statistics retrieved successfully", data=stats)
