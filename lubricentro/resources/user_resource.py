# lubricentro/resources/user_resource.py

from flask import g
from flask.views import MethodView
from flask_smorest import Blueprint

from ..schemas.user_schema import (
    UserCreateSchema,
    UserUpdateSchema,
    UserStatusSchema,
    UserQuerySchema,
)
from ..services import user_service
from ..utils.helpers import resource_log_tag
from ..utils.json_response import prepared_response
from ..utils.logger import Log
from .auth_resource import token_required
from .responses import HANDLED_ERRORS, system_error_response


blp_user = Blueprint("users", __name__, url_prefix="/api/v1", description="User management")


@blp_user.route("/users", methods=["GET", "POST"])
class UserList(MethodView):

    @token_required
    @blp_user.arguments(UserQuerySchema, location="query")
    def get(self, query):
        users = user_service.list_users(
            g.current_user,
            lubricentro_id=query.get("lubricentro_id"),
            term=query.get("search"),
        )
        return prepared_response(True, "OK", "Users retrieved successfully", data=users)

    @token_required
    @blp_user.arguments(UserCreateSchema, location="json")
    def post(self, user_data):
        log_tag = resource_log_tag(
            "user_resource.py", "UserList", "post", user_data.get("lubricentro_id"), role_requested=user_data.get("role"),
        )
        Log.info(f"{log_tag} creating user")
        try:
            user = user_service.create_user(user_data, g.current_user)
            Log.info(f"{log_tag} created user {user['_id']}")
            return prepared_response(True, "CREATED", "User created successfully", data=user)
        except HANDLED_ERRORS:
            raise
        except Exception as e:
            return system_error_response(log_tag, "create_user", e)


@blp_user.route("/users/<string:user_id>", methods=["GET", "PATCH", "DELETE"])
class UserDetail(MethodView):

    @token_required
    def get(self, user_id):
        user = user_service.get_user(user_id, g.current_user)
        return prepared_response(True, "OK", "User retrieved successfully", data=user)

    @token_required
    @blp_user.arguments(UserUpdateSchema, location="json")
    def patch(self, updates, user_id):
        log_tag = resource_log_tag("user_resource.py", "UserDetail", "patch", user_id=user_id)
        try:
            user = user_service.update_user(user_id, updates, g.current_user)
            return prepared_response(True, "OK", "User updated successfully", data=user)
        except HANDLED_ERRORS:
            raise
        except Exception as e:
            return system_error_response(log_tag, "update_user", e)

    @token_required
    def delete(self, user_id):
        log_tag = resource_log_tag("user_resource.py", "UserDetail", "delete", user_id=user_id)
        try:
            user_service.delete_user(user_id, g.current_user)
            return prepared_response(True, "OK", "User deleted successfully")
        except HANDLED_ERRORS:
            raise
        except Exception as e:
            return system_error_response(log_tag, "delete_user", e)


@blp_user.route("/users/<string:user_id>/status", methods=["PATCH"])
class UserStatus(MethodView):

    @token_required
    @blp_user.arguments(UserStatusSchema, location="json")
    def patch(self, body, user_id):
        log_tag = resource_log_tag("user_resource.py", "UserStatus", "patch", user_id=user_id)
        try:
            user = user_service.update_user_status(user_id, body["status"], g.current_user)
            return prepared_response(True, "OK", "User status updated successfully", data=user)
        except HANDLED_ERRORS:
            raise
        except Exception as e:
            return system_error_response(log_tag, "update_user_status", e)
