"""Domain errors.

Each error knows its HTTP status and the JSON body returned to the client;
``main.py`` registers a single handler that renders them.
"""

from typing import Any, Dict, List, Optional, Sequence


class PassManagementError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.message}


class ValidationError(PassManagementError):
    status_code = 400
    default_message = "Invalid request"

    def __init__(self, message: Optional[str] = None, fields: Sequence[str] = ()):
        super().__init__(message)
        self.fields: List[str] = list(fields)

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.message, "fields": self.fields}


class MissingFieldsError(ValidationError):
    default_message = "Please fill out all the fields!"

    def __init__(self, fields: Sequence[str]):
        super().__init__(None, fields)

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.message, "emptyFields": self.fields}


class NotFoundError(PassManagementError):
    status_code = 404
    default_message = "No such pass"


class AuthenticationError(PassManagementError):
    status_code = 401
    default_message = "Authentication required"


class PermissionDeniedError(PassManagementError):
    status_code = 403
    default_message = "Not allowed"


class EncodingError(PassManagementError):
    default_message = "QR encoding failed"


class OccupancyUnavailableError(PassManagementError):
    default_message = "Failed to fetch live visitors"

    def to_body(self) -> Dict[str, Any]:
        return {"message": self.message}
