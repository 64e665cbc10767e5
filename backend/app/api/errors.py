"""Translate domain errors into HTTP responses."""
from fastapi import HTTPException

from app.errors import (
    ConsoleError,
    ValidationError,
    NotFoundError,
    InvalidStateTransition,
    CodeExpired,
    CodeAlreadyUsed,
    InvalidActivationCode,
    CodeGenerationError,
)

# Most specific class wins (looked up along the exception's MRO)
STATUS_CODES = {
    ValidationError: 400,
    InvalidActivationCode: 403,
    NotFoundError: 404,
    InvalidStateTransition: 409,
    CodeExpired: 409,
    CodeAlreadyUsed: 409,
    CodeGenerationError: 503,
}


def http_error(exc: ConsoleError) -> HTTPException:
    """
    Build the HTTPException for a domain error.

    detail is {"code": <stable error code>, "message": <human text>} so the
    console can show the message and branch on the code.
    """
    status_code = 500
    for cls in type(exc).__mro__:
        if cls in STATUS_CODES:
            status_code = STATUS_CODES[cls]
            break
    return HTTPException(
        status_code=status_code,
        detail={"code": exc.code, "message": exc.message},
    )
