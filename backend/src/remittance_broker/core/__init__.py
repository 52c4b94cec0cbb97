"""Configuration, errors, clock and observability shared by every layer."""

from .config import Settings, SettingsError, load_settings
from .errors import ErrorCategory, ErrorKind, OperationResult, RemittanceError, StorageError

__all__ = [
    "Settings",
    "SettingsError",
    "load_settings",
    "ErrorCategory",
    "ErrorKind",
    "OperationResult",
    "RemittanceError",
    "StorageError",
]
