"""
Error taxonomy for the watcher.

Fetch and normalization errors are recovered inside a refresh cycle,
persistence errors are logged, validation errors reach the caller.
"""

from typing import Optional


class WatcherError(Exception):
    """Base class for all watcher errors."""


class FetchError(WatcherError):
    """A resource could not be retrieved (timeout, DNS, non-2xx, transport)."""

    def __init__(self, url: str, reason: str, status_code: Optional[int] = None):
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Failed to fetch {url}: {reason}")


class NormalizationError(WatcherError):
    """Fetched content could not be canonicalized."""


class PersistenceError(WatcherError):
    """The tracked resource list could not be saved or loaded."""


class ResourceValidationError(WatcherError):
    """A resource could not be added to the tracked list."""


class DuplicateResourceError(ResourceValidationError):
    """A resource with the same URL is already tracked."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"This resource already exists in the list: {url}")


class ResourceNotFoundError(WatcherError):
    """No tracked resource has the given id."""

    def __init__(self, resource_id: str):
        self.resource_id = resource_id
        super().__init__(f"Resource with ID '{resource_id}' not found")
