"""
Helpers d'enveloppe pour les réponses du store distant.
"""

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from sems_scanner.schemas.envelope import ApiError, ApiResponse

ERROR_CODES = {
    400: "BAD_REQUEST",
    404: "NOT_FOUND",
    422: "INVALID_BODY",
    500: "INTERNAL_ERROR",
}


def success(data) -> ApiResponse:
    return ApiResponse(data=data)


def error_response(status_code: int, message: str, code: str = None) -> JSONResponse:
    body = ApiResponse(
        success=False,
        error=ApiError(code=code or ERROR_CODES.get(status_code, "ERROR"), message=message),
    )
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))
