"""
Error taxonomy for the attendance service.

Every error carries the HTTP status the API layer answers with, so handlers
can turn any of them into the same ``{"success": false, "message": ...}``
envelope.
"""


class AttendanceError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AttendanceError):
    """Malformed or missing request fields."""
    status_code = 400


class AuthError(AttendanceError):
    """Unknown identity or bad password. The message never says which."""
    status_code = 401

    def __init__(self, message: str = "Invalid User ID or Password"):
        super().__init__(message)


class ForbiddenError(AttendanceError):
    status_code = 403


class NotFoundError(AttendanceError):
    status_code = 404


class SessionNotOpenError(AttendanceError):
    status_code = 400

    def __init__(self, message: str = "Teacher has not started this session yet."):
        super().__init__(message)


class LocationMismatchError(AttendanceError):
    status_code = 400

    def __init__(self, distance_meters: float):
        self.distance_meters = distance_meters
        super().__init__(
            f"Location Mismatch. You are {round(distance_meters)} meters away from class."
        )


class StoreError(AttendanceError):
    """The document store is unreachable or rejected an operation."""
    status_code = 500


class CredentialError(AttendanceError):
    status_code = 500
