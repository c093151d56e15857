"""
Custom Exception Classes for the Application
Provides a unified error handling system with proper HTTP status codes and messages.
"""

from typing import Any, Dict, Optional
from fastapi import HTTPException, status


class AppException(HTTPException):
    """
    Base exception class for all application exceptions.
    Provides consistent error response format.
    """

    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}
        super().__init__(
            status_code=status_code,
            detail={
                "error_code": error_code,
                "message": message,
                "details": self.details,
            },
            headers=headers,
        )


# ==================== Authorization Exceptions ====================


class PermissionDeniedException(AppException):
    """Raised when user doesn't have permission to perform an action."""

    def __init__(
        self, message: str = "You don't have permission to perform this action"
    ):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="permission_denied",
            message=message,
        )


class AccessDeniedException(AppException):
    """Raised when the requester's role is not allowed to read a material."""

    def __init__(self, material_id: Optional[str] = None, role: Optional[str] = None):
        details = {}
        if material_id is not None:
            details["material_id"] = str(material_id)
        if role:
            details["role"] = role
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="access_denied",
            message="You do not have access to this material",
            details=details,
        )


class RoleNotSetException(AppException):
    """Raised when the requester has no role yet; the caller should prompt for one."""

    def __init__(self):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="role_not_set",
            message="Please complete your profile by selecting a role to access materials",
            details={"action": "complete_profile"},
        )


# ==================== Resource Exceptions ====================


class ResourceNotFoundException(AppException):
    """Raised when a requested resource is not found."""

    def __init__(
        self,
        resource: str,
        identifier: Optional[Any] = None,
        error_code: str = "resource_not_found",
    ):
        details = {}
        if identifier is not None:
            details["identifier"] = str(identifier)

        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error_code=error_code,
            message=f"{resource} not found",
            details=details,
        )


class UnknownUserException(ResourceNotFoundException):
    """Raised when the acting user does not exist in the user directory."""

    def __init__(self, user_id: Any):
        super().__init__("User", user_id, error_code="unknown_user")


class CollaborationRequestNotFoundException(ResourceNotFoundException):
    """Raised when a collaboration request id does not resolve."""

    def __init__(self, request_id: Any):
        super().__init__(
            "Collaboration request", request_id, error_code="request_not_found"
        )


class PendingEntryNotFoundException(ResourceNotFoundException):
    """Raised when the per-invitee pending entry is missing for a request."""

    def __init__(self, request_id: Any, author_id: Any):
        super().__init__(
            "Pending collaboration",
            f"{request_id}/{author_id}",
            error_code="pending_entry_not_found",
        )


class InviteeNotFoundException(ResourceNotFoundException):
    """Raised when an author was not invited by the collaboration request."""

    def __init__(self, request_id: Any, author_id: Any):
        super().__init__(
            "Invitee",
            f"{request_id}/{author_id}",
            error_code="invitee_not_found",
        )
        self.message = "This author was not requested for collaboration"
        self.detail["message"] = self.message


class ResourceAlreadyExistsException(AppException):
    """Raised when trying to create a resource that already exists."""

    def __init__(self, resource: str, field: Optional[str] = None):
        details = {}
        if field:
            details["field"] = field

        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error_code="resource_already_exists",
            message=f"{resource} already exists",
            details=details,
        )


class ResourceConflictException(AppException):
    """Raised when there's a conflict with the resource state."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: str = "resource_conflict",
    ):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error_code=error_code,
            message=message,
            details=details,
        )


class InvalidTransitionException(ResourceConflictException):
    """Raised when an invitee in a terminal state is asked to change state."""

    def __init__(self, current: str, requested: str):
        super().__init__(
            message=f"Invitation already {current}; it cannot be {requested}",
            details={"current": current, "requested": requested},
            error_code="invalid_transition",
        )


# ==================== Integrity Exceptions ====================


class IntegrityFailureException(AppException):
    """Raised when stored content does not match its recorded or attested hash."""

    def __init__(self, material_id: Optional[Any] = None, reason: str = "hash_mismatch"):
        details = {"reason": reason}
        if material_id is not None:
            details["material_id"] = str(material_id)
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error_code="integrity_failure",
            message="File integrity check failed",
            details=details,
        )


class IntegrityUnknownException(AppException):
    """Raised when ledger corroboration is required but the ledger could not answer."""

    def __init__(self, material_id: Optional[Any] = None, reason: Optional[str] = None):
        details = {}
        if material_id is not None:
            details["material_id"] = str(material_id)
        if reason:
            details["reason"] = reason
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code="integrity_unknown",
            message="File integrity could not be confirmed. Please try again later.",
            details=details,
        )


# ==================== Validation Exceptions ====================


class ValidationException(AppException):
    """Raised when input validation fails."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {}
        if field:
            details["field"] = field

        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="validation_error",
            message=message,
            details=details,
        )


class MissingPayloadException(AppException):
    """Raised when an upload arrives without its file."""

    def __init__(self, field: str = "file"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="missing_payload",
            message="Material file is missing or incorrectly uploaded. Please try again.",
            details={"field": field},
        )


class FileSizeLimitException(ValidationException):
    """Raised when uploaded file exceeds size limit."""

    def __init__(self, max_size: Optional[str] = None):
        details = {}
        if max_size:
            details["max_size"] = max_size

        super().__init__(
            message="File size exceeds the limit",
        )
        self.details.update(details)


# ==================== External Service Exceptions ====================


class ExternalServiceException(AppException):
    """Raised when an external service fails."""

    def __init__(
        self,
        service_name: str,
        message: Optional[str] = None,
        error_code: str = "external_service_error",
    ):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code=error_code,
            message=message or f"{service_name} service is currently unavailable",
            details={"service": service_name},
        )


class ExternalAttestationException(ExternalServiceException):
    """Raised when the ledger is unreachable or rejects a call that must succeed."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(
            "ledger",
            message=message,
            error_code="external_attestation_error",
        )


class DatabaseException(AppException):
    """Raised when database operation fails."""

    def __init__(self, message: str = "Database operation failed"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="database_error",
            message=message,
        )
