"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of TestIT Importer, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Exception types raised by the importer.
"""

from enum import Enum
from os import PathLike


class ErrorKind(str, Enum):
    """Normalized classification of a failed outbound call."""

    TRANSIENT_NETWORK = "transient-network"
    TRANSIENT_SERVER = "transient-server"
    FATAL = "fatal"

    @property
    def is_transient(self) -> bool:
        return self is not ErrorKind.FATAL


class ImporterError(Exception):
    """Base class for importer errors."""


class ConfigurationError(ImporterError):
    """Raised when the importer configuration is missing or invalid."""


class ProjectCollisionError(ImporterError):
    """Raised when the target project exists and reuse is not allowed."""

    def __init__(self, project_name: str):
        super().__init__(f"Project with the same name already exists: {project_name}")
        self.project_name = project_name


class SourceReadError(ImporterError, FileNotFoundError):
    """Raised when an export file is missing, empty or unreadable."""

    def __init__(self, message: str, path: str | PathLike | None = None):
        super().__init__(message)
        self.path = path


class TmsApiError(ImporterError):
    """
    Raised by the Test IT client when a request fails.

    The client decides the error kind at the boundary, so the retry layer
    does not have to guess from the message.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        kind: ErrorKind = ErrorKind.FATAL,
        body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.kind = kind
        self.body = body

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code is not None:
            return f"{base} (HTTP {self.status_code})"
        return base
