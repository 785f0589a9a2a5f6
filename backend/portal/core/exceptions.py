"""
Custom Exceptions for Timetable Portal
======================================

Use these instead of generic Exception so the API layer can map every
failure to a stable error code and HTTP status.

Usage:
    from portal.core.exceptions import FetchError, MalformedTimeValueError

    try:
        rows = await store.select(settings.TIMETABLE_TABLE, filters={"level": level})
    except DirectoryStoreError as e:
        raise FetchError(settings.TIMETABLE_TABLE, str(e)) from e
"""

from typing import Optional, Any, Dict


class PortalError(Exception):
    """Base exception for all portal errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(PortalError):
    """User authentication failed"""

    status_code = 401

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, code="AUTH_FAILED")


class InvalidTokenError(AuthenticationError):
    """Session token is invalid or expired"""

    def __init__(self):
        super().__init__("Could not validate credentials")
        self.code = "INVALID_TOKEN"


class AuthorizationError(PortalError):
    """User not authorized for this action"""

    status_code = 403

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, code="NOT_AUTHORIZED")


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(PortalError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} with ID '{resource_id}' not found",
            code=f"{resource_type.upper().replace(' ', '_')}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


class UserNotFoundError(ResourceNotFoundError):
    def __init__(self, user_id: str):
        super().__init__("User", user_id)


class CourseNotFoundError(ResourceNotFoundError):
    def __init__(self, course_id: str):
        super().__init__("Course", course_id)


class TimetableEntryNotFoundError(ResourceNotFoundError):
    def __init__(self, entry_id: str):
        super().__init__("Timetable entry", entry_id)


class AnnouncementNotFoundError(ResourceNotFoundError):
    def __init__(self, announcement_id: str):
        super().__init__("Announcement", announcement_id)


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(PortalError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class MalformedTimeValueError(ValidationError):
    """A time-of-day value is not a zero-padded 24-hour HH:MM string"""

    def __init__(self, value: Any, field: Optional[str] = None):
        super().__init__(
            f"Malformed time value {value!r}: expected zero-padded 24-hour HH:MM",
            field=field
        )
        self.code = "MALFORMED_TIME_VALUE"
        self.details["value"] = value


# ============================================
# Directory Store / Change Feed Errors
# ============================================

class DirectoryStoreError(PortalError):
    """The hosted database rejected a request or could not be reached"""

    status_code = 502

    def __init__(
        self,
        message: str,
        table: Optional[str] = None,
        status: Optional[int] = None
    ):
        super().__init__(message, code="DIRECTORY_STORE_ERROR")
        if table:
            self.details["table"] = table
        if status is not None:
            self.details["status"] = status


class FetchError(DirectoryStoreError):
    """A read query failed or returned no data"""

    def __init__(self, table: str, message: str = "Query returned no data"):
        super().__init__(f"Failed to fetch {table}: {message}", table=table)
        self.code = "FETCH_FAILED"


class SubscriptionError(PortalError):
    """A change-feed subscription could not be established"""

    status_code = 503

    def __init__(self, table: str, message: str = "Subscription failed"):
        super().__init__(
            f"Could not subscribe to {table}: {message}",
            code="SUBSCRIPTION_FAILED",
            details={"table": table}
        )


# ============================================
# Helper function for API responses
# ============================================

def error_response(error: PortalError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    return {
        "success": False,
        "error": error.to_dict()
    }
