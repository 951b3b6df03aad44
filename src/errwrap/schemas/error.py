"""Error serialization schemas.

Two shapes leave an ErrorWrapper:
- ErrorResponse: {"action": "...", "message": "..."}, the body sent to clients.
- ErrorRecord: {"action": "...", "message": "...", "payload": {...}}, the
  structured form used in logs. The HTTP status and the cause are not part of
  either; the status goes on the response line, the cause in the traceback.
"""

from typing import Any

from pydantic import BaseModel, field_validator


class ErrorResponse(BaseModel):
    """Client-facing error body."""

    action: str
    message: str


class ErrorRecord(BaseModel):
    """Structured error record for log sinks."""

    action: str
    message: str
    payload: dict[str, str] | None = None

    @field_validator("payload", mode="before")
    @classmethod
    def _stringify_values(cls, value: Any) -> Any:
        # Payload dicts can be edited in place, so values may not be str here
        if isinstance(value, dict):
            return {str(k): str(v) for k, v in value.items()}
        return value
