"""Translation of domain errors into HTTP errors."""

from fastapi import HTTPException, status

from src.domain.models.errors import (
    DomainConflict,
    SmtpDomainNotFound,
    TenancyConflict,
    TenancyNotFound,
    TenancyValidationError,
)


def to_http_error(error: Exception) -> HTTPException:
    """Map a domain error raised by an admin service to an HTTPException."""
    if isinstance(error, TenancyValidationError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"errors": error.errors}
        )
    if isinstance(error, (TenancyNotFound, SmtpDomainNotFound)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, (TenancyConflict, DomainConflict)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Internal error: {str(error)}"
    )


ADMIN_ERRORS = (
    TenancyValidationError,
    TenancyNotFound,
    SmtpDomainNotFound,
    TenancyConflict,
    DomainConflict,
)
