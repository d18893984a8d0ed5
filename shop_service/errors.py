# shop_service/errors.py

"""
Error taxonomy shared by the service layer and the HTTP layer.
Each error carries the HTTP status it is reported with.
"""

from fastapi import status


class ShopServiceError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message, error=None):
        super().__init__(message)
        self.message = message
        self.error = error

    def to_dict(self):
        body = {"success": False, "message": self.message}
        if self.error is not None:
            body["error"] = self.error
        return body


class ValidationError(ShopServiceError):
    """Malformed client input."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(ShopServiceError):
    status_code = status.HTTP_404_NOT_FOUND


class PersistenceError(ShopServiceError):
    """A database failure. The session has already been rolled back."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    @classmethod
    def from_exception(cls, message, exc):
        return cls(message, error=str(exc))
