from typing import List, Optional


class ReleaseTrackerError(Exception):
    status_code = 500

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class ValidationError(ReleaseTrackerError):
    status_code = 400


class InvalidVersion(ValidationError):
    def __init__(self, value):
        super().__init__(f"invalid version string: {value!r}")
        self.value = value


class NotFoundError(ReleaseTrackerError):
    status_code = 404


class ConflictError(ReleaseTrackerError):
    status_code = 409
