class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class SchedulerError(AppError):
    """Raised when the scheduler encounters a logical error or invalid state."""
    def __init__(self, message: str, details: dict = None, status_code: int = 400):
        super().__init__(message, status_code=status_code, details=details)

class InfeasibleScheduleError(SchedulerError):
    """No complete assignment exists for the requested selection."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, details=details, status_code=422)

class GenerationTimeoutError(InfeasibleScheduleError):
    """The backtracking search hit its node or wall-clock cap."""

class TimetableRejectedError(AppError):
    """A proposed timetable failed validation; details carry errors and warnings."""
    def __init__(self, message: str, errors: list[dict], warnings: list[dict]):
        super().__init__(message, status_code=400, details={"errors": errors, "warnings": warnings})

class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(f"{resource_type} with id {resource_id} not found", status_code=404)

class DuplicateResourceError(AppError):
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=409, details=details)

class CollaboratorError(AppError):
    """Storage or lookup failed, so the outcome of the operation is unknown."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=503, details=details)

class InternalConsistencyError(AppError):
    """The generator produced a schedule that breaks its own invariants."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=500, details=details)
