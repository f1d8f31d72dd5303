"""
Custom exceptions for MDB_PERMISSIONS.

Authorization denial is never an exception: decisions come back as booleans.
These exceptions cover genuine faults only (bad input, missing referenced
records, invalid configuration or policy documents).
"""

from typing import Any, Dict, List, Optional


class PermissionsError(RuntimeError):
    """
    Base exception for permission engine errors.

    Attributes:
        message: Error message
        context: Optional dictionary with additional context (model, role, user, etc.)
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            context: Optional dictionary with additional context information
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return formatted error message with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


class InvalidInputError(PermissionsError):
    """
    Raised when an administrative request or lookup argument is invalid.

    Examples: a grant naming neither a role nor a user, an empty list of
    usernames for a role membership change, an unknown action or HTTP method.
    Raised before any store mutation is performed.
    """


class NotFoundError(PermissionsError):
    """
    Raised when a referenced role, user or model name does not resolve.

    Attributes:
        message: Error message
        entity: Kind of record that was looked up ("model", "role", "user")
        name: The name that failed to resolve
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        entity: Optional[str] = None,
        name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if entity:
            context["entity"] = entity
        if name is not None:
            context["name"] = name
        super().__init__(message, context=context)
        self.entity = entity
        self.name = name


class ConfigurationError(PermissionsError):
    """
    Raised when configuration is invalid or missing.

    Attributes:
        message: Error message
        config_key: Configuration key that caused the error (if available)
        config_value: Configuration value that caused the error (if available)
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize the configuration error.

        Args:
            message: Error message
            config_key: Configuration key that caused the error (if available)
            config_value: Configuration value that caused the error (if available)
            context: Additional context information
        """
        context = context or {}
        if config_key:
            context["config_key"] = config_key
        if config_value is not None:
            context["config_value"] = config_value
        super().__init__(message, context=context)
        self.config_key = config_key
        self.config_value = config_value


class PolicyValidationError(PermissionsError):
    """
    Raised when a policy document fails schema validation.

    Attributes:
        message: Error message
        error_paths: List of JSON paths with validation errors
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        error_paths: Optional[List[str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if error_paths:
            context["error_paths"] = error_paths
        super().__init__(message, context=context)
        self.error_paths = error_paths
