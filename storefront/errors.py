"""
Exception types shared by the catalogue and the security helpers.

Two families of failure exist. ``DataUnavailable`` means the product
list could not be fetched at all; callers surface it as a retryable
error. ``InvalidInput`` means a value coming from the user (a price
bound, a price range, a malformed record) could not be interpreted;
callers log it and fall back to a default instead of propagating it.
"""

from __future__ import annotations

from typing import Optional


class CatalogueError(Exception):
    """Base class for every error raised by this package."""


class DataUnavailable(CatalogueError):
    """The data source could not deliver products (network, permission, timeout)."""

    def __init__(self, message: str = "Products are unavailable", cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class InvalidInput(CatalogueError, ValueError):
    """A user-supplied value is malformed."""
