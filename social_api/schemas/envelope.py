"""
Social API — Response Envelopes
=================================

What:  Pydantic models defining the JSON bodies the API returns.
Why:   Every JSON response uses one of two shapes, so clients can branch on
       the key alone: "msg" for informational payloads, "error" for failures.
How:   Route handlers build these models; json_response()/error_response()
       serialize them with the status code the handler chose.

    MessageResponse → {"msg": "Not yet implemented"}
    ErrorResponse   → {"error": "not logged in"}
"""

from typing import Union

from pydantic import BaseModel, Field
from starlette.responses import JSONResponse


class MessageResponse(BaseModel):
    """Informational payload (including placeholder "not implemented" notes)."""
    msg: str = Field(description="Human-readable message")


class ErrorResponse(BaseModel):
    """Error payload returned by handlers and the HTTPFailure handler."""
    error: str = Field(description="Human-readable error description")


def json_response(
    status_code: int,
    body: BaseModel,
) -> JSONResponse:
    """Serialize an envelope model with the given status code."""
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(),
    )


def error_response(
    status_code: int,
    error: Union[Exception, str],
) -> JSONResponse:
    """Wrap an exception (or plain message) in the {"error": ...} envelope."""
    message = getattr(error, "message", None) or str(error)
    return json_response(status_code, ErrorResponse(error=message))
