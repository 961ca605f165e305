"""
Error taxonomy shared by every router.

Each error carries an English and an Uzbek message; the handlers in
``edusmart.main`` render them as ``{success, message, message_uz}``.
"""
from typing import Any, Optional

from fastapi import HTTPException, status


class ApiError(HTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Internal server error"
    message_uz = "Ichki server xatosi"

    def __init__(
        self,
        message: Optional[str] = None,
        message_uz: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        extra: Optional[dict] = None,
    ):
        code = status_code or type(self).status_code
        self.message = message or type(self).message
        self.message_uz = message_uz or type(self).message_uz
        self.extra = extra or {}
        super().__init__(status_code=code, detail=self.message)

    def to_dict(self) -> dict[str, Any]:
        body = {
            "success": False,
            "message": self.message,
            "message_uz": self.message_uz,
        }
        body.update(self.extra)
        return body


class ValidationError(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Validation error"
    message_uz = "Ma'lumot tekshirish xatosi"


class AuthenticationError(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Authentication required"
    message_uz = "Autentifikatsiya talab qilinadi"


class AuthorizationError(ApiError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Insufficient permissions"
    message_uz = "Ruxsat etilmagan"


class NotFoundError(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Resource not found"
    message_uz = "Resurs topilmadi"


class ConflictError(ApiError):
    status_code = status.HTTP_409_CONFLICT
    message = "Resource already exists"
    message_uz = "Resurs allaqachon mavjud"


class InvalidReferenceError(ApiError):
    """A write pointed at a related row that does not exist."""
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid reference"
    message_uz = "Yaroqsiz havola"


class UnexpectedError(ApiError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
