"""
    Centralized exception handling for the FastAPI application.
"""
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
import logging

log = logging.getLogger(__name__)

class APIException(Exception):
    """Base class for API exceptions."""
    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(self.detail)

class DecodeError(APIException):
    """Exception for image payloads that are empty or not valid base64."""
    def __init__(self, detail: str):
        super().__init__(status_code=400, detail=detail)

class UnrecognizedFormatError(APIException):
    """Exception for payloads whose bytes are neither PNG nor JPEG."""
    def __init__(self, detail: str = "Could not detect image MIME type or dimensions"):
        super().__init__(status_code=415, detail=detail)

class StoreUnavailableError(APIException):
    """Exception for object store failures."""
    def __init__(self, detail: str):
        super().__init__(status_code=500, detail=detail)

class SignedUrlProviderError(Exception):
    """Raised when the store returns something that is not a signed URL."""

class DimensionDriftWarning(UserWarning):
    """Sniffed dimensions are far from the ones the caller asked the generator for."""

async def api_exception_handler(request: Request, exc: APIException):
    """Handles API exceptions."""
    log.error(f"API Exception: {exc.detail}", exc_info=exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )

async def store_exception_handler(request: Request, exc: StoreUnavailableError):
    """Handles object store failures with the service error shape."""
    log.error(f"Store Exception: {exc.detail}", exc_info=exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
    )

async def http_exception_handler(request: Request, exc: HTTPException):
    """Handles FastAPI HTTP exceptions."""
    log.error(f"HTTP Exception: {exc.detail}", exc_info=exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )

async def generic_exception_handler(request: Request, exc: Exception):
    """Handles all other exceptions."""
    log.error(f"Unhandled Exception: {str(exc)}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "An unexpected error occurred."},
    )

def add_exception_handlers(app):
    """Adds exception handlers to the FastAPI app."""
    app.add_exception_handler(StoreUnavailableError, store_exception_handler)
    app.add_exception_handler(APIException, api_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
