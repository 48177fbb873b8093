"""Test management backend."""

from .client import (
    TEST_CASE_KEY,
    TEST_CYCLE_KEY,
    TEST_EXECUTION_KEY,
    NewFolder,
    NewTestCase,
    NewTestCycle,
    NewTestScript,
    ZephyrClient,
    deep_merge,
)
from .operations import register_operations

__all__ = [
    "TEST_CASE_KEY",
    "TEST_CYCLE_KEY",
    "TEST_EXECUTION_KEY",
    "NewFolder",
    "NewTestCase",
    "NewTestCycle",
    "NewTestScript",
    "ZephyrClient",
    "deep_merge",
    "register_operations",
]
