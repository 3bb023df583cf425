from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix
from marshmallow import ValidationError
from flask_smorest import Api
from flask_limiter.errors import RateLimitExceeded
from pymongo.errors import PyMongoError

from .utils.rate_limits import limiter
from .extensions import db, cors
from .config import load_config
from .routes import register_routes
from .jobs.subscription_jobs import register_subscription_commands
from .utils.errors import DomainValidationError, EntitlementError, NotFoundError
from .utils.error_handlers import (
    handle_permission_error, handle_validation_error, handle_type_error,
    handle_domain_validation_error, handle_not_found_error, handle_entitlement_error,
    handle_rate_limit,
)
from .utils.logger import Log


def create_app(config_name=None):
    app = Flask(__name__)

    #get actual client IP
    app.wsgi_app = ProxyFix(
        app.wsgi_app,
        x_for=1,      # Trust X-Forwarded-For
        x_proto=1,    # Trust X-Forwarded-Proto
        x_host=1,     # Trust X-Forwarded-Host
        x_port=1,     # Trust X-Forwarded-Port
        x_prefix=1    # Trust X-Forwarded-Prefix
    )

    # Load configuration (ensure it does NOT override Flask-Smorest keys)
    load_config(app, config_name)

    app.config["API_TITLE"] = "Lubricentro API"
    app.config["API_VERSION"] = "v1"
    app.config["OPENAPI_VERSION"] = "3.0.3"
    app.config["OPENAPI_URL_PREFIX"] = "/api"
    app.config["OPENAPI_JSON_PATH"] = "openapi.json"
    app.config["OPENAPI_SWAGGER_UI_PATH"] = "/docs"
    app.config["OPENAPI_SWAGGER_UI_URL"] = "https://cdn.jsdelivr.net/npm/swagger-ui-dist/"

    api = Api(app)

    # Initialize all extensions
    db.init_app(app)
    cors.init_app(app, origins=app.config["ALLOWED_ORIGINS"])
    limiter.init_app(app)

    # Setup database indexes; tests swap in an in-memory database afterwards
    if not app.config.get("TESTING"):
        with app.app_context():
            try:
                db.create_indexes()
            except PyMongoError as e:
                Log.error(f"[__init__.py][create_app] index setup failed: {e}")

    # Register custom error handlers
    app.errorhandler(PermissionError)(handle_permission_error)
    app.errorhandler(ValidationError)(handle_validation_error)
    app.errorhandler(TypeError)(handle_type_error)
    app.errorhandler(DomainValidationError)(handle_domain_validation_error)
    app.errorhandler(NotFoundError)(handle_not_found_error)
    app.errorhandler(EntitlementError)(handle_entitlement_error)
    app.errorhandler(RateLimitExceeded)(handle_rate_limit)

    # Register all blueprints using `api.register_blueprint(...)`
    register_routes(app, api)
    register_subscription_commands(app)

    return app
