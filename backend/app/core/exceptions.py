class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class ConfigurationError(AppError):
    """Raised when a schedule configuration breaks one or more rules.

    ``errors`` holds one human readable message per violated rule.
    """
    def __init__(self, message: str, errors: list[str] | None = None):
        self.errors = list(errors or [message])
        super().__init__(message, status_code=422, details={"errors": self.errors})

class ConflictError(AppError):
    """Raised when a placement is rejected by the conflict checks."""
    def __init__(self, reason: str, details: dict = None):
        self.reason = reason
        super().__init__(reason, status_code=409, details={"reason": reason, **(details or {})})

class CommitError(AppError):
    """Raised when a partition of a batch commit fails.

    Entries of the failed partition (and of any partition after it) remain
    pending in the edit session.
    """
    def __init__(self, failed_action: str, message: str, details: dict = None):
        self.failed_action = failed_action
        super().__init__(message, status_code=409, details={"failed_action": failed_action, **(details or {})})

class SessionLockedError(AppError):
    """Raised when an edit session is asked to discard or commit mid-commit."""
    def __init__(self, message: str = "Edit session is committing"):
        super().__init__(message, status_code=423)

class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(f"{resource_type} with id {resource_id} not found", status_code=404)
