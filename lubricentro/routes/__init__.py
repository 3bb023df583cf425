from ..resources import (
    blp_auth,
    blp_lubricentro,
    blp_user,
    blp_oil_change,
    blp_subscription,
    blp_audit,
)


def register_routes(app, api):
    # Each blueprint carries its own /api/v1 prefix
    blueprints = [
        blp_auth,
        blp_lubricentro,
        blp_user,
        blp_oil_change,
        blp_subscription,
        blp_audit,
    ]

    for blueprint in blueprints:
        api.register_blueprint(blueprint)

    # Root route
    @app.route('/')
    def index():
        return {"message": "Welcome to the Lubricentro API"}

    @app.route('/health')
    def health():
        return {"status": "ok"}
