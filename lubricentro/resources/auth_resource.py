import time
from datetime import datetime, timedelta, timezone
from functools import wraps

import jwt
from flask import current_app, g, request
from flask.views import MethodView
from flask_smorest import Blueprint, abort

from ..constants.service_code import AUTHENTICATION_MESSAGES, USER_STATUS, USER_ROLES
from ..models.user_model import User
from ..schemas.auth_schema import LoginSchema, RegisterSchema
from ..services import audit_service, lubricentro_service
from ..utils.helpers import make_log_tag, resource_log_tag
from ..utils.json_response import prepared_response
from ..utils.logger import Log
from ..utils.rate_limits import login_limiter, register_limiter
from .responses import HANDLED_ERRORS, system_error_response


blp_auth = Blueprint("Auth", __name__, url_prefix="/api/v1/auth", description="Authentication management")


def generate_access_token(user):
    expires_at = datetime.now(timezone.utc) + timedelta(hours=current_app.config["JWT_EXPIRES_HOURS"])
    payload = {
        "user_id": str(user["_id"]),
        "role": user.get("role"),
        "lubricentro_id": user.get("lubricentro_id"),
        "exp": expires_at,
    }
    token = jwt.encode(payload, current_app.config["SECRET_KEY"], algorithm="HS256")
    return token, int(expires_at.timestamp())


def token_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            abort(401, message=AUTHENTICATION_MESSAGES["AUTHENTICATION_REQUIRED"])

        token = auth_header.split()[1]
        log_tag = f"[auth_resource.py][token_required][{request.remote_addr}]"

        try:
            data = jwt.decode(token, current_app.config["SECRET_KEY"], algorithms=["HS256"])
        except jwt.ExpiredSignatureError:
            abort(401, message=AUTHENTICATION_MESSAGES["TOKEN_EXPIRED"])
        except jwt.InvalidTokenError:
            abort(401, message=AUTHENTICATION_MESSAGES["INVALID_TOKEN"])

        user = User.get_by_id(data.get("user_id"))
        if user is None:
            Log.info(f"{log_tag} token for unknown user {data.get('user_id')}")
            abort(401, message=AUTHENTICATION_MESSAGES["INVALID_TOKEN"])

        if user.get("status") != USER_STATUS["ACTIVE"]:
            abort(401, message=AUTHENTICATION_MESSAGES["ACCOUNT_INACTIVE"])

        g.current_user = user
        return f(*args, **kwargs)
    return decorated


def superadmin_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        user = g.get("current_user") or {}
        if user.get("role") != USER_ROLES["SUPER_ADMIN"]:
            audit_service.log_permission_denied(
                request.endpoint or "superadmin", "superadmin role required", user=user,
            )
            abort(403, message="Superadmin role required")
        return f(*args, **kwargs)
    return decorated


# =========================================
# LOGIN
# =========================================
@blp_auth.route("/login", methods=["POST"])
class LoginResource(MethodView):

    @login_limiter
    @blp_auth.arguments(LoginSchema, location="json")
    def post(self, credentials):
        log_tag = make_log_tag(
            "auth_resource.py", "LoginResource", "post", request.remote_addr,
            None, None, None, None, email=credentials["email"],
        )
        start_time = time.time()

        try:
            user = User.verify_password(credentials["email"], credentials["password"])
            if not user:
                Log.info(f"{log_tag} invalid credentials")
                return prepared_response(False, "UNAUTHORIZED", AUTHENTICATION_MESSAGES["INVALID_CREDENTIALS"])

            if user.get("status") != USER_STATUS["ACTIVE"]:
                Log.info(f"{log_tag} login refused, status={user.get('status')}")
                return prepared_response(False, "FORBIDDEN", AUTHENTICATION_MESSAGES["ACCOUNT_INACTIVE"])

            token, expires_at = generate_access_token(user)
            User.record_login(user["_id"])
            audit_service.log_user_action("login", f"User {user['email']} logged in", user=user)

            Log.info(f"{log_tag} login ok in {time.time() - start_time:.2f}s")
            return prepared_response(True, "OK", "Login successful", data={
                "access_token": token,
                "token_type": "Bearer",
                "expires_at": expires_at,
                "user": user,
            })

        except HANDLED_ERRORS:
            raise
        except Exception as e:
            return system_error_response(log_tag, "login", e)


@blp_auth.route("/logout", methods=["POST"])
class LogoutResource(MethodView):

    @token_required
    def post(self):
        user = g.current_user
        audit_service.log_user_action("logout", f"User {user['email']} logged out", user=user)
        return prepared_response(True, "OK", "Logged out")


@blp_auth.route("/me", methods=["GET"])
class MeResource(MethodView):

    @token_required
    def get(self):
        return prepared_response(True, "OK", "Profile retrieved", data=g.current_user)


# =========================================
# REGISTER
# =========================================
@blp_auth.route("/register", methods=["POST"])
class RegisterResource(MethodView):
    """
    Register a lubricentro and its owner. The lubricentro starts a trial.
    """

    @register_limiter
    @blp_auth.arguments(RegisterSchema, location="json")
    def post(self, payload):
        log_tag = resource_log_tag("auth_resource.py", "RegisterResource", "post")
        Log.info(f"{log_tag} registering {payload['lubricentro']['fantasy_name']}")

        try:
            result = lubricentro_service.register_lubricentro(payload["owner"], payload["lubricentro"])
            token, expires_at = generate_access_token(result["owner"])

            return prepared_response(True, "CREATED", "Lubricentro registered. Your trial has started.", data={
                "lubricentro": result["lubricentro"],
                "user": result["owner"],
                "access_token": token,
                "token_type": "Bearer",
                "expires_at": expires_at,
            })

        except HANDLED_ERRORS:
            raise
        except Exception as e:
            return system_error_response(log_tag, "register_lubricentro", e)
