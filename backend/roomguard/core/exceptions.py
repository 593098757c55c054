class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict | None = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class ValidationError(AppError):
    """Raised for malformed times, inverted intervals and policy violations."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=400, details=details)

class ConflictError(AppError):
    """Raised when a room, instructor or cohort overlap blocks an operation."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=409, details=details)

class InvalidTransitionError(AppError):
    """Raised when a reservation cannot move from its current status."""
    def __init__(self, message: str, current_status: str | None = None):
        details = {"current_status": current_status} if current_status else None
        super().__init__(message, status_code=409, details=details)

class PermissionDeniedError(AppError):
    def __init__(self, message: str):
        super().__init__(message, status_code=403)

class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(f"{resource_type} with id {resource_id} not found", status_code=404)

class TransientInfrastructureError(AppError):
    """Raised when storage or notification delivery fails mid-operation."""
    def __init__(self, message: str):
        super().__init__(message, status_code=503)
