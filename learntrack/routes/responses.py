"""Map tagged service results to HTTP responses."""

from fastapi import status
from fastapi.responses import JSONResponse

from learntrack.exceptions import ErrorReason
from learntrack.schemas.results import OperationResult

REASON_STATUS_CODES = {
    ErrorReason.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorReason.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    ErrorReason.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorReason.SOURCE_UNAVAILABLE: status.HTTP_502_BAD_GATEWAY,
    ErrorReason.SOURCE_EMPTY: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorReason.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
}


def result_response(
    result: OperationResult,
    success_status: int = status.HTTP_200_OK,
) -> JSONResponse:
    """Serialize a result, choosing the status code from its reason."""
    if result.success:
        code = success_status
    else:
        code = REASON_STATUS_CODES.get(result.reason, status.HTTP_400_BAD_REQUEST)  # type: ignore[arg-type]

    return JSONResponse(
        status_code=code,
        content=result.model_dump(mode="json", exclude_none=True),
    )
