"""Unified error handling for saasbridge.

- ErrorKind: structural discriminator for every adapter failure
- AdapterError/AdapterException: structured errors and their raisable wrapper
- Result/Ok/Err: explicit success/failure values
"""

from .errors import (
    AdapterError,
    AdapterException,
    ConfigurationError,
    ErrorKind,
    FieldMismatch,
    InvalidEntityKey,
    InvalidFilterKey,
    InvalidURL,
    NoCurrentProject,
    NoOrganizations,
    NotFoundError,
    ParseFailure,
    ProjectNotFound,
    TransportError,
    ValidationError,
    VerificationFailure,
)
from .result import Err, Ok, Result

__all__ = [
    # Core errors
    "ErrorKind", "AdapterError", "AdapterException",
    # Taxonomy
    "ConfigurationError", "NoOrganizations", "NoCurrentProject",
    "NotFoundError", "ProjectNotFound",
    "ValidationError", "InvalidFilterKey", "InvalidURL", "InvalidEntityKey",
    "TransportError", "ParseFailure", "VerificationFailure", "FieldMismatch",
    # Result
    "Result", "Ok", "Err",
]
