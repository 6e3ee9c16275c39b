"""
Custom Exception Hierarchy for the AD Replication Reporter

This module provides the exception hierarchy used across the reporter so that
usage problems, filesystem problems and directory-service failures can be told
apart at the process boundary and rendered with useful context.
"""

from typing import Any, Dict, List, Optional


class ADReportError(Exception):
    """
    Base exception class for all reporter errors.

    Provides structured error information including context, error codes,
    and optional recovery suggestions.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recovery_suggestion: Optional[str] = None,
    ) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            context: Optional dictionary with error context
            cause: Optional underlying exception that caused this error
            recovery_suggestion: Optional suggestion for error recovery
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause
        self.recovery_suggestion = recovery_suggestion

    def __str__(self) -> str:
        """Return a formatted error message with context."""
        result = self.message
        if self.error_code:
            result = f"[{self.error_code}] {result}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            result += f" (context: {context_str})"
        if self.cause:
            result += f" (caused by: {self.cause})"
        if self.recovery_suggestion:
            result += f" (suggestion: {self.recovery_suggestion})"
        return result

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
            "recovery_suggestion": self.recovery_suggestion,
        }


class UsageError(ADReportError):
    """Raised when a required argument is missing or the action is unknown."""

    def __init__(
        self, message: str, parameter: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if parameter:
            context["parameter"] = parameter
        kwargs["context"] = context
        kwargs.setdefault("error_code", "USAGE_ERROR")
        kwargs.setdefault(
            "recovery_suggestion",
            "Run 'ad-repl-report --help' to see the accepted options",
        )
        super().__init__(message, **kwargs)


class OutputPathError(ADReportError):
    """Raised when the report directory or a report file cannot be written."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs: Any) -> None:
        context = kwargs.get("context", {})
        if path:
            context["path"] = path
        kwargs["context"] = context
        kwargs.setdefault("error_code", "OUTPUT_PATH_ERROR")
        kwargs.setdefault(
            "recovery_suggestion",
            "Check that the path is valid and writable by the current user",
        )
        super().__init__(message, **kwargs)


# Directory-service exceptions
class DirectoryServiceError(ADReportError):
    """Base class for directory query failures."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "DIRECTORY_SERVICE_ERROR")
        super().__init__(message, **kwargs)


class DirectoryConnectionError(DirectoryServiceError):
    """Raised when a domain controller cannot be reached."""

    def __init__(self, message: str, host: Optional[str] = None, **kwargs: Any) -> None:
        context = kwargs.get("context", {})
        if host:
            context["host"] = host
        kwargs["context"] = context
        kwargs.setdefault("error_code", "DIRECTORY_UNREACHABLE")
        kwargs.setdefault(
            "recovery_suggestion",
            "Check DNS resolution and LDAP connectivity to the domain controller",
        )
        super().__init__(message, **kwargs)


class DirectoryAuthenticationError(DirectoryServiceError):
    """Raised when the LDAP bind is rejected."""

    def __init__(self, message: str, host: Optional[str] = None, **kwargs: Any) -> None:
        context = kwargs.get("context", {})
        if host:
            context["host"] = host
        kwargs["context"] = context
        kwargs.setdefault("error_code", "DIRECTORY_AUTH_FAILED")
        kwargs.setdefault(
            "recovery_suggestion",
            "Check AD_USERNAME/AD_PASSWORD or obtain a Kerberos ticket with kinit",
        )
        super().__init__(message, **kwargs)


class DirectoryObjectNotFoundError(DirectoryServiceError):
    """Raised when a distinguished name or one of its attributes does not exist."""

    def __init__(
        self,
        message: str,
        dn: Optional[str] = None,
        attribute: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if dn:
            context["dn"] = dn
        if attribute:
            context["attribute"] = attribute
        kwargs["context"] = context
        kwargs.setdefault("error_code", "DIRECTORY_OBJECT_NOT_FOUND")
        super().__init__(message, **kwargs)


class DomainNotFoundError(DirectoryServiceError):
    """Raised when a domain name cannot be resolved to any domain controller."""

    def __init__(
        self, message: str, domain: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if domain:
            context["domain"] = domain
        kwargs["context"] = context
        kwargs.setdefault("error_code", "DOMAIN_NOT_FOUND")
        kwargs.setdefault(
            "recovery_suggestion",
            "Pass the fully qualified DNS name of the domain, e.g. corp.example.com",
        )
        super().__init__(message, **kwargs)


class ReplicationDataError(DirectoryServiceError):
    """Raised when a replication attribute value cannot be decoded."""

    def __init__(
        self, message: str, attribute: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if attribute:
            context["attribute"] = attribute
        kwargs["context"] = context
        kwargs.setdefault("error_code", "REPLICATION_DATA_INVALID")
        super().__init__(message, **kwargs)


class DCReplicationError(DirectoryServiceError):
    """Raised after a continue-on-error run in which some controllers failed."""

    def __init__(
        self, message: str, failed_hosts: Optional[List[str]] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if failed_hosts:
            context["failed_hosts"] = ", ".join(failed_hosts)
        kwargs["context"] = context
        kwargs.setdefault("error_code", "DC_REPLICATION_FAILED")
        super().__init__(message, **kwargs)
        self.failed_hosts = list(failed_hosts or [])
