HTTP_STATUS_CODES = {
    "OK": 200,
    "CREATED": 201,
    "NO_CONTENT": 204,
    "BAD_REQUEST": 400,
    "UNAUTHORIZED": 401,
    "PAYMENT_REQUIRED": 402,
    "FORBIDDEN": 403,
    "NOT_FOUND": 404,
    "CONFLICT": 409,
    "VALIDATION_ERROR": 422,
    "TOO_MANY_REQUESTS": 429,
    "INTERNAL_SERVER_ERROR": 500,
    "SERVICE_UNAVAILABLE": 503,
}

ERROR_MESSAGES = {
    "VALIDATION_FAILED": "Validation failed. Please check your inputs.",
    "UNAUTHORIZED_ACCESS": "You are not authorized to access this resource.",
    "RESOURCE_NOT_FOUND": "The requested resource could not be found.",
    "DUPLICATE_RESOURCE": "The resource already exists.",
    "SERVER_ERROR": "An unexpected error occurred. Please try again later.",
    "NO_DATA_WAS_FOUND": "No data was found",
}

AUTHENTICATION_MESSAGES = {
    "AUTHENTICATION_REQUIRED": "Authentication Required",
    "TOKEN_EXPIRED": "Token expired",
    "INVALID_TOKEN": "Invalid access token",
    "ACCOUNT_INACTIVE": "Your account is not active",
    "INVALID_CREDENTIALS": "Invalid email or password",
}

# -------------------------
# Users
# -------------------------
USER_ROLES = {
    "SUPER_ADMIN": "superadmin",
    "ADMIN": "admin",
    "EMPLOYEE": "employee",
}

USER_STATUS = {
    "ACTIVE": "active",
    "PENDING": "pending",
    "INACTIVE": "inactive",
}

# -------------------------
# Tenants (lubricentros)
# -------------------------
LUBRICENTRO_STATUS = {
    "TRIAL": "trial",
    "ACTIVE": "active",
    "INACTIVE": "inactive",
}

PAYMENT_STATUS = {
    "PENDING": "pending",
    "PAID": "paid",
    "OVERDUE": "overdue",
}

# -------------------------
# Entitlement actions
# -------------------------
ENTITLEMENT_ACTIONS = {
    "CREATE_SERVICE": "create_service",
    "CREATE_USER": "create_user",
    "ADMIN_ACTION": "admin_action",
    "VIEW_REPORTS": "view_reports",
}

SUGGESTED_ACTIONS = {
    "CONTACT_SUPPORT": "contact_support",
    "UPGRADE_PLAN": "upgrade_plan",
    "EXTEND_TRIAL": "extend_trial",
    "LOGIN_REQUIRED": "login_required",
}

ROLE_PERMISSIONS = {
    USER_ROLES["SUPER_ADMIN"]: set(ENTITLEMENT_ACTIONS.values()),
    USER_ROLES["ADMIN"]: {
        ENTITLEMENT_ACTIONS["CREATE_SERVICE"],
        ENTITLEMENT_ACTIONS["CREATE_USER"],
        ENTITLEMENT_ACTIONS["ADMIN_ACTION"],
        ENTITLEMENT_ACTIONS["VIEW_REPORTS"],
    },
    USER_ROLES["EMPLOYEE"]: {
        ENTITLEMENT_ACTIONS["CREATE_SERVICE"],
    },
}

# -------------------------
# Audit
# -------------------------
AUDIT_EVENT_TYPES = {
    "USER_LOGIN": "user_login",
    "USER_LOGOUT": "user_logout",
    "SERVICE_CREATED": "service_created",
    "SERVICE_UPDATED": "service_updated",
    "SERVICE_DELETED": "service_deleted",
    "USER_CREATED": "user_created",
    "USER_UPDATED": "user_updated",
    "USER_DELETED": "user_deleted",
    "SUBSCRIPTION_ACTIVATED": "subscription_activated",
    "SUBSCRIPTION_DEACTIVATED": "subscription_deactivated",
    "SUBSCRIPTION_CHANGED": "subscription_changed",
    "TRIAL_EXTENDED": "trial_extended",
    "ADMIN_ACTION": "admin_action",
    "SYSTEM_ERROR": "system_error",
    "VALIDATION_FAILED": "validation_failed",
    "PERMISSION_DENIED": "permission_denied",
}

AUDIT_SEVERITIES = {
    "INFO": "info",
    "WARNING": "warning",
    "ERROR": "error",
    "CRITICAL": "critical",
}
