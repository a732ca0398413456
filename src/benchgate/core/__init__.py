"""Core module for benchgate.

This module contains the exceptions, configuration and run context
used throughout the library.
"""

from __future__ import annotations

from benchgate.core.config import Settings
from benchgate.core.context import RunContext
from benchgate.core.exceptions import (
    BenchgateError,
    ConfigurationError,
    MalformedArtifactError,
    NameMismatchError,
    RegressionDetectedError,
    StorageError,
    ThresholdExceededError,
)
from benchgate.core.protocols import ExecutorProtocol

__all__ = [
    "BenchgateError",
    "ConfigurationError",
    "ExecutorProtocol",
    "MalformedArtifactError",
    "NameMismatchError",
    "RegressionDetectedError",
    "RunContext",
    "Settings",
    "StorageError",
    "ThresholdExceededError",
]
