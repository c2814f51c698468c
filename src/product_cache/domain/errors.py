"""Errors raised by product store implementations."""


class ProductStoreError(Exception):
    """Base class for product store failures."""


class DeletionFailed(ProductStoreError):
    """Raised when the cached snapshot could not be deleted."""


class InsertionFailed(ProductStoreError):
    """Raised when a snapshot could not be written."""


class RetrievalFailed(ProductStoreError):
    """Raised when the cached snapshot could not be read."""
