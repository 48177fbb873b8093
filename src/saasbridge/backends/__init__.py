"""Backend integrations built on the shared adapter components.

Each backend exposes a client plus `register_operations(registry, client)`.
"""

from .bugsnag import BugsnagClient
from .pactflow import PactflowClient
from .zephyr import ZephyrClient

__all__ = ["BugsnagClient", "PactflowClient", "ZephyrClient"]
