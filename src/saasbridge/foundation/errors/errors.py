"""Structured error taxonomy for backend adapters.

Every failure carries an ErrorKind discriminator chosen where the outcome is
known (status code, decode failure, lookup miss), so callers branch on
`exc.kind` instead of inspecting message text.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)


class ErrorKind(StrEnum):
    """Structural classification of adapter failures."""
    CONFIGURATION = "configuration"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    TRANSPORT = "transport"
    PARSE_FAILURE = "parse_failure"
    VERIFICATION_FAILURE = "verification_failure"


_RECOVERABLE_KINDS: frozenset[ErrorKind] = frozenset({
    ErrorKind.TRANSPORT,
    ErrorKind.PARSE_FAILURE,
})


class AdapterError(BaseModel):
    """Structured error response for adapter failures.

    Attributes:
        backend: Name of the backend integration that failed
        message: Human-readable error message
        kind: Machine-readable classification
        status_code: HTTP status when the failure came from a response
        recoverable: Whether the caller might succeed by retrying
        details: Optional detailed information (e.g., response body)
    """

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        validate_default=True,
        json_schema_extra={
            "title": "Adapter Error",
            "examples": [{
                "backend": "bugsnag",
                "message": "Invalid filter key: user.nmae",
                "kind": "validation",
                "recoverable": False,
            }],
        },
    )

    backend: Annotated[str, Field(min_length=1, description="Backend that produced the error")]
    message: Annotated[str, Field(min_length=1, description="Human-readable error message")]
    kind: ErrorKind = Field(description="Structural error classification")
    status_code: int | None = Field(default=None, description="HTTP status, if any")
    recoverable: bool = Field(default=False, description="Whether retry might succeed")
    details: str | None = Field(default=None, repr=False)

    @field_validator("message", mode="before")
    @classmethod
    def _ensure_message(cls, v: str | Exception) -> str:
        """Accept Exception objects and extract message."""
        return str(v) if isinstance(v, Exception) else v

    @computed_field
    @property
    def is_client_error(self) -> bool:
        """Whether the upstream rejected the request itself (4xx)."""
        return self.status_code is not None and 400 <= self.status_code < 500

    def render(self) -> str:
        """Format error for caller consumption."""
        parts = [f"**{self.backend} error ({self.kind}):** {self.message}"]
        if self.status_code is not None:
            parts.append(f" [HTTP {self.status_code}]")
        if self.recoverable:
            parts.append("\n_This error may be recoverable - consider retrying._")
        if self.details:
            parts.append(f"\n\nDetails:\n```\n{self.details}\n```")
        return "".join(parts)

    __str__ = render


class AdapterException(Exception):
    """Exception wrapping an AdapterError for raising.

    Subclasses pin `kind`; construct them with a backend name and message.
    """

    kind: ErrorKind = ErrorKind.CONFIGURATION

    def __init__(
        self,
        message: str,
        *,
        backend: str = "adapter",
        status_code: int | None = None,
        details: str | None = None,
    ) -> None:
        self.error = AdapterError(
            backend=backend,
            message=message,
            kind=self.kind,
            status_code=status_code,
            recoverable=self.kind in _RECOVERABLE_KINDS,
            details=details,
        )
        super().__init__(message)

    @property
    def status_code(self) -> int | None:
        return self.error.status_code

    @classmethod
    def from_error(cls, error: AdapterError) -> Self:
        exc = cls.__new__(cls)
        Exception.__init__(exc, error.message)
        exc.error = error
        return exc


# ─────────────────────────────────────────────────────────────────────────────
# Configuration
# ─────────────────────────────────────────────────────────────────────────────

class ConfigurationError(AdapterException):
    """No usable organization/project context."""
    kind = ErrorKind.CONFIGURATION


class NoOrganizations(ConfigurationError):
    def __init__(self, *, backend: str = "adapter") -> None:
        super().__init__("No organizations found for the current user.", backend=backend)


class NoCurrentProject(ConfigurationError):
    def __init__(self, *, backend: str = "adapter") -> None:
        super().__init__(
            "No current project found. Please provide a projectId or configure a project API key.",
            backend=backend,
        )


# ─────────────────────────────────────────────────────────────────────────────
# Lookup
# ─────────────────────────────────────────────────────────────────────────────

class NotFoundError(AdapterException):
    kind = ErrorKind.NOT_FOUND


class ProjectNotFound(NotFoundError):
    def __init__(self, project_id: str, *, backend: str = "adapter") -> None:
        self.project_id = project_id
        super().__init__(f"Project with ID {project_id} not found.", backend=backend)


# ─────────────────────────────────────────────────────────────────────────────
# Validation
# ─────────────────────────────────────────────────────────────────────────────

class ValidationError(AdapterException):
    """Caller input rejected before any request was issued."""
    kind = ErrorKind.VALIDATION


class InvalidFilterKey(ValidationError):
    def __init__(self, key: str, *, backend: str = "adapter") -> None:
        self.key = key
        super().__init__(f"Invalid filter key: {key}", backend=backend)


class InvalidURL(ValidationError):
    def __init__(self, url: str, reason: str = "", *, backend: str = "adapter") -> None:
        self.url = url
        super().__init__(f"Invalid URL: {url}" + (f" ({reason})" if reason else ""), backend=backend)


class InvalidEntityKey(ValidationError):
    def __init__(self, key: str, expected: str, *, backend: str = "adapter") -> None:
        self.key = key
        super().__init__(f"Invalid key format: {key}. Expected format: {expected}", backend=backend)


# ─────────────────────────────────────────────────────────────────────────────
# Transport
# ─────────────────────────────────────────────────────────────────────────────

class TransportError(AdapterException):
    """Non-2xx response or connectivity failure. Never eligible for write verification."""
    kind = ErrorKind.TRANSPORT


class ParseFailure(AdapterException):
    """2xx response whose body could not be decoded."""
    kind = ErrorKind.PARSE_FAILURE

    def __init__(self, message: str, *, raw_body: str = "", **kw: Any) -> None:
        self.raw_body = raw_body
        super().__init__(message, **kw)


class FieldMismatch(BaseModel):
    """One field whose upstream value differs from the intended value."""

    model_config = ConfigDict(frozen=True)

    field: str
    expected: Any = None
    actual: Any = None

    def __str__(self) -> str:
        return f"{self.field}: expected {self.expected!r}, got {self.actual!r}"


class VerificationFailure(AdapterException):
    """Post-write reconciliation found the upstream state differs from the intent."""
    kind = ErrorKind.VERIFICATION_FAILURE

    def __init__(self, entity_id: str, mismatches: list[FieldMismatch], *, backend: str = "adapter") -> None:
        self.entity_id = entity_id
        self.mismatches = list(mismatches)
        super().__init__(
            f"Update of {entity_id} could not be confirmed: " + "; ".join(str(m) for m in self.mismatches),
            backend=backend,
        )
