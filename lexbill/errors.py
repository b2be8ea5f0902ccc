"""Error taxonomy.

Each failure class maps to one HTTP status so services can raise them directly
and FastAPI renders `{"detail": <message>}` without per-route translation.
Messages are single sentences and never include internal identifiers.
"""

from fastapi import HTTPException, status


class ValidationFailed(HTTPException):
    """Malformed or out-of-range input."""

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class BusinessRuleViolation(HTTPException):
    """Well-formed input that conflicts with the current billing state."""

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class NotAuthenticated(HTTPException):
    def __init__(self, detail: str = "Not authenticated") -> None:
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class PermissionDenied(HTTPException):
    def __init__(self, detail: str = "Insufficient permissions") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFound(HTTPException):
    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class InternalFailure(HTTPException):
    """Store or unexpected failure; detail is a generic per-operation message."""

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
