from __future__ import annotations

from fastapi import HTTPException, status


class ServiceError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str, *, status_code: int | None = None) -> None:
        super().__init__(detail)
        if status_code:
            self.status_code = status_code
        self.detail = detail

    def to_http(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=self.detail)


class InvalidCredential(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED


class NotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND


class NotOwner(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN


class NotAdministrator(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN


class NotPremium(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN


class Conflict(ServiceError):
    """Raised by repositories when a unique constraint rejects a write."""

    status_code = status.HTTP_409_CONFLICT


class PaymentConfigError(ServiceError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class PaymentProviderError(ServiceError):
    status_code = status.HTTP_502_BAD_GATEWAY


__all__ = [
    "Conflict",
    "InvalidCredential",
    "NotAdministrator",
    "NotFound",
    "NotOwner",
    "NotPremium",
    "PaymentConfigError",
    "PaymentProviderError",
    "ServiceError",
]
