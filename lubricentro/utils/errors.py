# lubricentro/utils/errors.py


class DomainValidationError(Exception):
    """Input failed a business validation rule."""

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.message = message
        self.errors = errors or {}


class NotFoundError(Exception):
    def __init__(self, message="Resource not found"):
        super().__init__(message)
        self.message = message


class EntitlementError(Exception):
    """Raised when an entitlement check rejects an action."""

    def __init__(self, code: str, message: str, suggested_action=None, meta=None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggested_action = suggested_action
        self.meta = meta or {}
