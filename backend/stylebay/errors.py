"""
业务异常 - 服务层抛出，HTTP 层统一转换为 {"error": message}
"""


class MarketplaceError(Exception):
    """Base class for errors that are safe to show to the client."""

    status_code = 400

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {'error': self.message}


class ValidationError(MarketplaceError):
    """Missing or invalid fields."""
    status_code = 400


class ConflictError(MarketplaceError):
    """Duplicate unique value (e.g. email already registered)."""
    status_code = 400


class AuthError(MarketplaceError):
    """Bad credentials."""
    status_code = 401


class NotFoundError(MarketplaceError):
    """Unknown record id."""
    status_code = 404
