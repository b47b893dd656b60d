"""Errors raised by the resource providers."""

from typing import Any, Optional


class ResourceProviderError(Exception):
    """Base class for all errors a resource provider raises on purpose."""


class ConfigurationShapeError(ResourceProviderError):
    """
    A configuration block is structurally malformed (e.g. present but empty) or a required property is missing.
    Raised before any request is dispatched to the remote service.
    """


class InvalidPropertyError(ResourceProviderError):
    """A property holds a value outside of its fixed set of allowed values."""

    def __init__(self, property_name: str, value: Any, allowed: tuple | list):
        self.property_name = property_name
        self.value = value
        self.allowed = tuple(allowed)
        super().__init__(
            f"Invalid value {value!r} for property {property_name}, allowed values: {', '.join(self.allowed)}"
        )


class MissingIdentifierError(ResourceProviderError):
    """The resource model carries no primary identifier, so the remote object cannot be addressed."""


class RemoteOperationError(ResourceProviderError):
    """
    Wraps a failed call to the remote service.

    :param operation: the failed operation, one of ``create``, ``update``, ``delete``
    :param cause: the underlying botocore error
    :param resource_name: human-readable name of the resource type, used in the message
    """

    def __init__(self, operation: str, cause: Exception, resource_name: Optional[str] = None):
        self.operation = operation
        self.cause = cause
        self.resource_name = resource_name or "resource"
        super().__init__(f"Error {_gerund(operation)} {self.resource_name}: {cause}")

    @property
    def error_code(self) -> Optional[str]:
        """The service error code of the cause, if the remote service answered with one."""
        response = getattr(self.cause, "response", None) or {}
        return response.get("Error", {}).get("Code")


def _gerund(operation: str) -> str:
    return f"{operation[:-1]}ing" if operation.endswith("e") else f"{operation}ing"
