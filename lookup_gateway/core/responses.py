from typing import Any, Generic, TypeVar

from fastapi import status
from pydantic import BaseModel, ConfigDict
from fastapi.responses import JSONResponse

T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    success: bool
    message: str = ""
    data: T | None = None
    status_code: int = status.HTTP_200_OK


class ErrorResponse(BaseModel):
    """Failure body returned to clients; extra keys are passed through."""

    model_config = ConfigDict(extra="allow")

    success: bool = False
    message: str
    detalle: Any = None


def send_success(
    message: str = "Success", data: Any = None, status_code: int = status.HTTP_200_OK
) -> APIResponse:
    return APIResponse(
        success=True, message=message, data=data, status_code=status_code
    )


def send_error(message: str = "Error", detalle: Any = None, **extra: Any) -> ErrorResponse:
    return ErrorResponse(message=message, detalle=detalle, **extra)


def create_error_response(
    status_code: int, message: str, detalle: Any = None, **extra: Any
) -> JSONResponse:
    body = send_error(message, detalle, **extra).model_dump()
    content = {key: value for key, value in body.items() if value is not None}
    return JSONResponse(content=content, status_code=status_code)
