"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

Every exception carries a stable ``error_code`` and an HTTP ``status_code``.
The API layer turns them into ``{"error": <code>}`` bodies; nothing else
about the exception is exposed to the caller.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    error_code: str = "internal_error"
    status_code: int = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class RepositoryException(ApplicationException):
    """
    Raised when the persistent store fails.

    The store's own message is what the caller sees, so ``error_code``
    mirrors ``message``.
    """

    status_code = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, details)
        self.error_code = message


class ValidationException(ApplicationException):
    """Exception for caller input that fails validation."""

    status_code = 400

    def __init__(
        self,
        error_code: str,
        message: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.error_code = error_code
        super().__init__(message or error_code, details)


class PreconditionFailedException(DomainException):
    """An operation's own state precondition does not hold."""

    status_code = 400

    def __init__(self, error_code: str, details: Optional[dict] = None):
        self.error_code = error_code
        super().__init__(error_code, details)


class ConflictException(DomainException):
    """The resource is already in the state the caller tried to move it to."""

    status_code = 409

    def __init__(self, error_code: str, details: Optional[dict] = None):
        self.error_code = error_code
        super().__init__(error_code, details)


class UnauthorizedException(ApplicationException):
    error_code = "unauthorized"
    status_code = 401

    def __init__(self, message: str = "unauthorized"):
        super().__init__(message)


class ForbiddenException(ApplicationException):
    error_code = "forbidden"
    status_code = 403

    def __init__(self, message: str = "forbidden"):
        super().__init__(message)


class FeatureDisabledException(ApplicationException):
    error_code = "feature_disabled"
    status_code = 403

    def __init__(self, feature: str):
        self.feature = feature
        super().__init__(f"{feature} is disabled", {"feature": feature})


class ResourceNotFoundException(ApplicationException):
    """Exception when a requested resource is not found."""

    status_code = 404

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        self.error_code = f"{resource_type}_not_found"
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""

    error_code = "configuration_error"


class ExternalServiceException(ApplicationException):
    """Base exception for external service failures."""

    error_code = "external_service_error"
    status_code = 502

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


class AssignmentResolverException(ExternalServiceException):
    """Exception for round-robin assignment failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Assignment Resolver", message, details)
