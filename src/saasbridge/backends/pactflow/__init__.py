"""Contract testing backend."""

from .client import MatrixQuery, MatrixSelector, PactflowClient
from .operations import register_operations

__all__ = ["MatrixQuery", "MatrixSelector", "PactflowClient", "register_operations"]
