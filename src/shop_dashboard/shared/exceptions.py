"""
Custom exceptions for the shop dashboard engine.

Aggregation itself never raises for malformed-but-present input; these
exceptions cover the seams around it: configuration loading, the initial
bulk fetch, calling the engine before data is loaded, and writes to the
shared key-value store.
"""

from pathlib import Path


class ShopDashboardException(Exception):
    """Base exception for all shop dashboard errors."""

    pass


class ConfigurationError(ShopDashboardException):
    """Exception raised when configuration cannot be loaded or is invalid."""

    def __init__(
        self,
        message: str,
        file_path: Path | None = None,
        original_error: Exception | None = None,
    ):
        self.file_path = file_path
        self.original_error = original_error

        if file_path:
            message = f"Error loading configuration '{file_path}': {message}"

        if original_error:
            message = f"{message} (Original error: {original_error})"

        super().__init__(message)


class RecordSourceError(ShopDashboardException):
    """Exception raised when the bulk fetch of source collections fails."""

    def __init__(
        self,
        message: str,
        collection: str | None = None,
        original_error: Exception | None = None,
    ):
        self.collection = collection
        self.original_error = original_error

        if collection:
            message = f"Failed to fetch '{collection}': {message}"

        if original_error:
            message = f"{message} (Original error: {original_error})"

        super().__init__(message)


class DashboardNotLoadedError(ShopDashboardException):
    """Exception raised when aggregation is requested before the initial load."""

    def __init__(self, message: str = "Dashboard data has not been loaded yet"):
        super().__init__(message)


class StoreError(ShopDashboardException):
    """Exception raised when the shared key-value store cannot be written."""

    def __init__(
        self,
        message: str,
        key: str | None = None,
        original_error: Exception | None = None,
    ):
        self.key = key
        self.original_error = original_error

        if key:
            message = f"Store error for key '{key}': {message}"

        if original_error:
            message = f"{message} (Original error: {original_error})"

        super().__init__(message)
