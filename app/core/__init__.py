"""
Core module for the Job Dispatch Service.

This module provides configuration and the exception hierarchy. The
OAuth2 authorization server components live in their own submodules
(``app.core.authorization_server`` and ``app.core.security``) and are
imported from there.
"""

from .config import Settings, get_settings
from .exceptions import (
    JobDispatchError,
    JobNotFoundError,
    JobConflictError,
)

__version__ = "1.0.0"

# Export all core components
__all__ = [
    "Settings",
    "get_settings",

    # Exception hierarchy
    "JobDispatchError",
    "JobNotFoundError",
    "JobConflictError",
]
