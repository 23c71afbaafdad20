from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base class for business-rule failures raised by the services."""

    status_code = 400
    code = "DOMAIN_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"detail": self.message, "code": self.code}
        payload.update(self.details)
        return payload


class ValidationError(DomainError):
    status_code = 422
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, details={"field": field} if field else None)
        self.field = field


class ForbiddenError(DomainError):
    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(DomainError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, resource: str):
        super().__init__(f"{resource} not found")
        self.resource = resource


class ConflictError(DomainError):
    status_code = 409
    code = "CONFLICT"


class InternalError(DomainError):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str = "Internal Server Error"):
        super().__init__(message)
