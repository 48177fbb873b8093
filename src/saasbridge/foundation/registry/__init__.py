"""Operation registry: symbolic names to typed async handlers."""

from .registry import OPERATION_NAME, Operation, OperationRegistry

__all__ = ["OPERATION_NAME", "Operation", "OperationRegistry"]
