"""
Error types for Grant Revoker
"""

from typing import Optional


class GrantRevokerError(Exception):
    """Base class for all Grant Revoker errors"""


class ConfigError(GrantRevokerError):
    """Invalid run configuration or settings, raised before any directory call"""


class DirectoryError(GrantRevokerError):
    """A directory call failed"""

    def __init__(self, message: str, operation: str = '', status: Optional[int] = None):
        super().__init__(message)
        self.operation = operation
        self.status = status


class PermissionDenied(DirectoryError):
    """Caller lacks the admin privilege for the call"""


class NotFound(DirectoryError):
    """User or grant does not exist"""


class Unavailable(DirectoryError):
    """Directory unreachable, rate limited or timed out"""


class FatalDirectoryError(GrantRevokerError):
    """Users could not be enumerated at all, so the run cannot proceed"""

    def __init__(self, message: str, cause: Optional[DirectoryError] = None):
        super().__init__(message)
        self.cause = cause
