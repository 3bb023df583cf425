# lubricentro/services/access.py

from ..constants.service_code import USER_ROLES


def is_superadmin(user) -> bool:
    return bool(user) and user.get("role") == USER_ROLES["SUPER_ADMIN"]


def is_admin(user) -> bool:
    return bool(user) and user.get("role") in (USER_ROLES["ADMIN"], USER_ROLES["SUPER_ADMIN"])


def can_access_lubricentro(user, lubricentro_id) -> bool:
    """Superadmins see every lubricentro; everyone else only their own."""
    if not user:
        return False
    if is_superadmin(user):
        return True
    return lubricentro_id is not None and str(user.get("lubricentro_id")) == str(lubricentro_id)


def ensure_lubricentro_access(user, lubricentro_id):
    if not can_access_lubricentro(user, lubricentro_id):
        raise PermissionError("You do not have access to this lubricentro.")


def ensure_admin_of(user, lubricentro_id):
    if not is_admin(user):
        raise PermissionError("Administrator role required.")
    ensure_lubricentro_access(user, lubricentro_id)
