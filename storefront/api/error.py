"""HTTP error surface

Use cases return Error values; routes raise ClientError, which renders as
{"error": {"code", "message"}}. The internal `reason` is never sent.
"""

import logging
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from storefront.libs.result import Error

logger = logging.getLogger(__name__)

STATUS_BY_CODE = {
    "VALIDATION_ERROR": status.HTTP_400_BAD_REQUEST,
    "SIGNATURE_INVALID": status.HTTP_400_BAD_REQUEST,
    "INSUFFICIENT_FUNDS": status.HTTP_402_PAYMENT_REQUIRED,
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "UNKNOWN_ORDER": status.HTTP_404_NOT_FOUND,
    "INVENTORY_EXHAUSTED": status.HTTP_409_CONFLICT,
    "INVALID_STATE": status.HTTP_409_CONFLICT,
    "ALREADY_TERMINAL": status.HTTP_409_CONFLICT,
    "CONCURRENCY_CONFLICT": status.HTTP_409_CONFLICT,
    "GATEWAY_ERROR": status.HTTP_502_BAD_GATEWAY,
}


class ClientError(Exception):
    def __init__(self, error: Error, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(error.message)
        self.error = error
        self.status_code = status_code


def status_for(error: Error) -> int:
    """HTTP status for an error code; unexpected failures are 500"""
    return STATUS_BY_CODE.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)


def error_body(code: str, message: str) -> dict:
    return {"error": {"code": code, "message": message}}


async def client_error_handler(request: Request, exc: ClientError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            f"{request.method} {request.url.path} failed: {exc.error.code} ({exc.error.reason})"
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.error.code, exc.error.message),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', []))}: {err.get('msg')}"
        for err in exc.errors()
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("VALIDATION_ERROR", f"Invalid request parameters: {details}"),
    )
