"""Error monitoring backend."""

from .api import BugsnagApi
from .client import (
    DEFAULT_DOMAIN,
    DEFAULT_ERROR_FILTERS,
    HUB_DOMAIN,
    HUB_PREFIX,
    OPERATION_STATUS,
    UPDATE_OPERATIONS,
    BugsnagClient,
)
from .operations import register_operations

__all__ = [
    "BugsnagApi",
    "BugsnagClient",
    "DEFAULT_DOMAIN",
    "DEFAULT_ERROR_FILTERS",
    "HUB_DOMAIN",
    "HUB_PREFIX",
    "OPERATION_STATUS",
    "UPDATE_OPERATIONS",
    "register_operations",
]
