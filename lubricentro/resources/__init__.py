from .auth_resource import blp_auth
from .lubricentro_resource import blp_lubricentro
from .user_resource import blp_user
from .oil_change_resource import blp_oil_change
from .subscription_resource import blp_subscription
from .audit_resource import blp_audit
