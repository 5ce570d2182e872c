"""Exceptions raised by the sync engine and the TaskRobin API client."""

from __future__ import annotations


class SyncError(Exception):
    """Base class for all sync failures."""


class ConfigurationError(SyncError):
    """Required settings (origin email, token or target folder) are missing or invalid."""


class NetworkError(SyncError):
    """Transport failure or non-success HTTP status from the TaskRobin API."""


class FileDownloadError(SyncError):
    """A single email file could not be fetched or written."""


class RemoteRejection(SyncError):
    """The API answered with a well-formed payload whose status is not 'success'."""
