"""Application-level exception types.

This module defines the error taxonomy raised by application code and
converted by the boundary adapters (gRPC interceptor, HTTP middleware) into
their wire representation.

Every error carries:
- error_code: Stable, machine-readable code (variant default or explicit).
- message: Human-readable description.
- details: Ordered free-form context, surfaced to callers.
- correlation_id: Set once resolved by an adapter or by application code.
- cause: Wrapped lower-level failure, for diagnostics only.
"""

from __future__ import annotations

from typing import Any, ClassVar, Iterable, Mapping


class ApplicationError(Exception):
    """Base error for application/domain failures.

    Not instantiated directly; raise one of the variants below.

    Attributes:
        message: Human-readable error message.
        details: Insertion-ordered structured context for clients.
        correlation_id: Correlation identifier, None until attached.
    """

    default_code: ClassVar[str] = "APPLICATION_ERROR"
    default_message: ClassVar[str | None] = None

    def __init__(
        self,
        message: str | None = None,
        code: str | None = None,
        *,
        cause: BaseException | None = None,
    ) -> None:
        if type(self) is ApplicationError:
            raise TypeError("ApplicationError is abstract; raise a concrete variant")
        if code is not None and not code:
            raise ValueError("code must be a non-empty string")

        resolved = message if message is not None else self.default_message
        self.message: str = resolved if resolved is not None else ""
        self._error_code = code or self.default_code
        self.details: dict[str, Any] = {}
        self.correlation_id: str | None = None

        super().__init__(self.message)
        if cause is not None:
            self.__cause__ = cause

    @property
    def error_code(self) -> str:
        """Stable machine-readable code, fixed at construction."""
        return self._error_code

    @property
    def cause(self) -> BaseException | None:
        """Wrapped failure (also set by ``raise ... from exc``)."""
        return self.__cause__

    def add_detail(self, key: str, value: Any) -> ApplicationError:
        """Attach a detail entry and return the same error for chaining.

        Args:
            key: Detail name; an existing key is overwritten.
            value: Any value; stringified by the gRPC adapter, JSON-encoded
                by the HTTP adapter.
        """
        self.details[key] = value
        return self

    def attach_correlation_id(self, correlation_id: str) -> ApplicationError:
        """Set the correlation id and return the same error for chaining."""
        self.correlation_id = correlation_id
        return self

    def __repr__(self) -> str:
        return f"{type(self).__name__}(message={self.message!r}, error_code={self.error_code!r})"


class BusinessError(ApplicationError):
    """Raised when a business rule is violated."""

    default_code = "BUSINESS_ERROR"


class ValidationError(ApplicationError):
    """Raised when input validation fails.

    Field errors are grouped per field name, in insertion order; a field
    never maps to an empty list.
    """

    default_code = "VALIDATION_ERROR"
    default_message = "One or more validation errors occurred"

    def __init__(
        self,
        message: str | None = None,
        code: str | None = None,
        *,
        field_errors: Mapping[str, Iterable[str]] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, code, cause=cause)
        self.field_errors: dict[str, list[str]] = {}
        for field, messages in (field_errors or {}).items():
            for msg in messages:
                self.add_field_error(field, msg)

    @classmethod
    def from_field_errors(cls, field_errors: Mapping[str, Iterable[str]]) -> ValidationError:
        """Build an error with the default message from a field mapping."""
        return cls(field_errors=field_errors)

    def add_field_error(self, field: str, message: str) -> ValidationError:
        """Append a message for ``field`` and return the same error."""
        self.field_errors.setdefault(field, []).append(message)
        return self


class NotFoundError(ApplicationError):
    """Raised when a requested resource does not exist.

    Positional forms:
        NotFoundError(message)
        NotFoundError(resource_type, resource_id)
        NotFoundError(message, resource_type, resource_id)

    The two-argument form synthesizes
    "<resource_type> with id '<resource_id>' was not found". The error code
    is keyword-only (``code=``).
    """

    default_code = "NOT_FOUND"

    def __init__(
        self,
        *args: Any,
        code: str | None = None,
        resource_type: str | None = None,
        resource_id: Any = None,
        cause: BaseException | None = None,
    ) -> None:
        message: str | None = None
        if len(args) == 1:
            (message,) = args
        elif len(args) == 2:
            resource_type, resource_id = args
        elif len(args) == 3:
            message, resource_type, resource_id = args
        elif args:
            raise TypeError(
                f"NotFoundError takes at most 3 positional arguments ({len(args)} given)"
            )

        if resource_id is not None:
            resource_id = str(resource_id)
        if message is None and resource_type is not None and resource_id is not None:
            message = f"{resource_type} with id '{resource_id}' was not found"
        super().__init__(message, code, cause=cause)
        self.resource_type = resource_type
        self.resource_id: str | None = resource_id

    @classmethod
    def for_resource(cls, resource_type: str, resource_id: Any) -> NotFoundError:
        """Build the standard "<type> with id '<id>' was not found" error."""
        return cls(resource_type=resource_type, resource_id=resource_id)


class UnauthorizedError(ApplicationError):
    """Raised when the caller is not authenticated."""

    default_code = "UNAUTHORIZED"
    default_message = "Authentication required"

    def __init__(
        self,
        message: str | None = None,
        code: str | None = None,
        *,
        authentication_scheme: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, code, cause=cause)
        self.authentication_scheme = authentication_scheme


class ForbiddenError(ApplicationError):
    """Raised when an authenticated caller lacks a permission.

    Positional forms:
        ForbiddenError()
        ForbiddenError(message)
        ForbiddenError(message, resource, required_permission)
        ForbiddenError(resource, required_permission, user_permissions)

    A non-string third argument selects the last form, which synthesizes
    "Access denied to <resource>. Required permission: <permission>". The
    error code is keyword-only (``code=``).
    """

    default_code = "FORBIDDEN"
    default_message = "Access denied"

    def __init__(
        self,
        *args: Any,
        code: str | None = None,
        resource: str | None = None,
        required_permission: str | None = None,
        user_permissions: Iterable[str] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        message: str | None = None
        if len(args) == 1:
            (message,) = args
        elif len(args) == 3 and isinstance(args[2], str):
            message, resource, required_permission = args
        elif len(args) == 3:
            resource, required_permission, user_permissions = args
        elif args:
            raise TypeError(
                "ForbiddenError takes 0, 1 or 3 positional arguments "
                f"({len(args)} given); pass code= as a keyword"
            )

        if message is None and resource is not None and required_permission is not None:
            message = f"Access denied to {resource}. Required permission: {required_permission}"
        super().__init__(message, code, cause=cause)
        self.resource = resource
        self.required_permission = required_permission
        self.user_permissions: list[str] | None = (
            list(user_permissions) if user_permissions is not None else None
        )

    @classmethod
    def for_permission(
        cls,
        resource: str,
        required_permission: str,
        user_permissions: Iterable[str] | None = None,
    ) -> ForbiddenError:
        """Build the standard "Access denied to <resource>" error."""
        return cls(
            resource=resource,
            required_permission=required_permission,
            user_permissions=user_permissions,
        )


class ConflictError(ApplicationError):
    """Raised when an operation conflicts with existing state (e.g. duplicates).

    The second positional argument is the conflict type:
    ``ConflictError("Resource already exists", "DUPLICATE")``. Pass ``code=``
    to override the error code.
    """

    default_code = "CONFLICT"

    def __init__(
        self,
        message: str | None = None,
        conflict_type: str | None = None,
        *,
        code: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, code, cause=cause)
        self.conflict_type = conflict_type


__all__ = [
    "ApplicationError",
    "BusinessError",
    "ConflictError",
    "ForbiddenError",
    "NotFoundError",
    "UnauthorizedError",
    "ValidationError",
]
