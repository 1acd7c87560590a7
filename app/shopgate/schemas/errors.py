from pydantic import BaseModel


class ApiErrorResponse(BaseModel):
    """Body of every non-2xx response."""

    code: str
    message: str
    details: dict | list | None = None
    trace_id: str | None = None


def error_responses(*status_codes: int) -> dict:
    """OpenAPI `responses=` mapping documenting the shared error body."""
    return {status_code: {"model": ApiErrorResponse} for status_code in status_codes}
